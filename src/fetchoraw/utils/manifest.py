"""
Manifest utilities for recording the resolutions performed by a rewrite call.

A result manifest is the per-call list of (url, fetch options, resolved path)
records. ``ManifestWriter`` persists manifests as JSON Lines, one record per
line, so several runs can append to the same file.
"""

import json
import os
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Iterable, List


@dataclass
class ManifestEntry:
    url: str
    fetch_options: Dict[str, Any] = field(default_factory=dict)
    resolved_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ManifestWriter:
    def __init__(self, path: str):
        self.path = path
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def append(self, entries: Iterable[ManifestEntry]) -> int:
        count = 0
        with open(self.path, 'a', encoding='utf-8') as f:
            for entry in entries:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
                count += 1
        return count

    def iter_records(self) -> Iterable[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                yield json.loads(line)

    def read_entries(self) -> List[ManifestEntry]:
        return [ManifestEntry(**rec) for rec in self.iter_records()]
