"""
Resolution Cache

Persistent mapping from a cache key, ``"{url}::{canonical fetch options}"``,
to a resolved descriptor. The whole map lives in one UTF-8 JSON file holding
an ordered list of ``[key, {"path": ..., "data": ...}]`` pairs.

There is no locking: one writer per cache file is assumed.
"""

import json
import logging
import os
from typing import Any, Dict, Iterator, List, Optional

from ..utils.paths import canonical_json
from .config import ExecutionMode
from .errors import CacheFormatError, CacheUnavailableError, FilesystemUnavailableError
from .models import Resolved


def make_cache_key(url: str, fetch_options: Optional[Dict[str, Any]] = None) -> str:
    """
    Build the cache key for a URL and its fetch options.

    Args:
        url: The URL as it appears in the document or was passed in
        fetch_options: Request options (key order does not matter)

    Returns:
        ``"{url}::{}"`` for empty options, ``"{url}::{sorted json}"`` otherwise
    """
    options = canonical_json(fetch_options) if fetch_options else "{}"
    return f"{url}::{options}"


class ResolutionCache:
    """
    In-memory view of the cache file.

    ``load`` re-reads the file completely every time it is called;
    ``put`` only touches memory until ``save`` writes the full map back.
    """

    def __init__(self, path: str, mode: ExecutionMode, filesystem=None):
        """
        Initialize the cache.

        Args:
            path: Location of the JSON cache file
            mode: Execution mode of the owning rewriter
            filesystem: Filesystem port used for reads and writes
        """
        self.path = path
        self.mode = ExecutionMode(mode)
        self.filesystem = filesystem
        self.logger = logging.getLogger(__name__)
        self._entries: Dict[str, Resolved] = {}

    def _require_filesystem(self):
        if self.filesystem is None:
            raise FilesystemUnavailableError(f"No filesystem available for cache file {self.path!r}")
        return self.filesystem

    def load(self) -> Dict[str, Resolved]:
        """
        Load the cache file into memory, replacing the current map.

        Returns:
            The loaded key -> descriptor map

        Raises:
            CacheUnavailableError: CACHE mode and the file is missing
            CacheFormatError: The file is not a list of [key, descriptor] pairs
        """
        fs = self._require_filesystem()
        if not self.path or not fs.exists(self.path):
            if self.mode == ExecutionMode.CACHE:
                raise CacheUnavailableError(self.path or "<unset>")
            self.logger.debug(f"No cache file at {self.path!r}; starting empty")
            self._entries = {}
            return self._entries

        try:
            raw = json.loads(fs.read_text(self.path))
        except ValueError as e:
            raise CacheFormatError(self.path, str(e)) from e
        if not isinstance(raw, list):
            raise CacheFormatError(self.path, "top level is not a list")

        entries: Dict[str, Resolved] = {}
        for index, pair in enumerate(raw):
            if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[0], str):
                raise CacheFormatError(self.path, f"entry {index} is not a [key, descriptor] pair")
            try:
                entries[pair[0]] = Resolved.from_outcome(pair[1])
            except TypeError as e:
                raise CacheFormatError(self.path, f"entry {index}: {e}") from e

        self._entries = entries
        self.logger.debug(f"Loaded {len(entries)} cache entries from {self.path}")
        return self._entries

    def get(self, key: str) -> Optional[Resolved]:
        return self._entries.get(key)

    def put(self, key: str, descriptor: Resolved) -> None:
        self._entries[key] = descriptor

    def save(self) -> None:
        """Write the full in-memory map to the cache file."""
        fs = self._require_filesystem()
        parent = os.path.dirname(self.path)
        if parent:
            fs.makedirs(parent)
        payload: List[list] = [[key, value.to_dict()] for key, value in self._entries.items()]
        fs.write_text(self.path, json.dumps(payload, indent=2, ensure_ascii=False))
        self.logger.debug(f"Saved {len(payload)} cache entries to {self.path}")

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
