"""
Save-path derivation for file-producing resolvers.

``derive_file_paths`` turns a URL into a filesystem-safe relative path and
returns where to write it (under the save root) and how the site refers to it
(under the public prefix). The result depends only on its inputs, so re-runs
and cache replays land on the same files.
"""

from __future__ import annotations

import hashlib
import json
import os
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qsl, unquote, urlparse

KeyString = Union[str, "re.Pattern[str]", None]

UNSAFE_NAME_CHARS = re.compile(r"[^\w\-.]")
LEADING_PARENT_DIRS = re.compile(r"^(?:\.\.(?:/|$))+")


@dataclass(frozen=True)
class DerivedPaths:
    save_path: str
    public_path: str


def canonical_json(value: Any) -> str:
    """Serialize with sorted keys and no whitespace, so key order never matters."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def short_hash(url: str, fetch_options: Optional[Dict[str, Any]], length: int) -> str:
    base = canonical_json({"url": url, "options": fetch_options or {}})
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:length]


def strip_key(value: str, key_string: KeyString) -> str:
    """Remove the first occurrence of a literal prefix or the first regex match."""
    if not key_string:
        return value
    if isinstance(key_string, re.Pattern):
        return key_string.sub("", value, count=1)
    return value.replace(key_string, "", 1)


def search_suffix(query: str) -> str:
    """Render query parameters as ``-{key}{value}`` in their original order."""
    parts = [f"-{key}{value}" for key, value in parse_qsl(query, keep_blank_values=True)]
    return UNSAFE_NAME_CHARS.sub("_", "".join(parts))


def derive_file_paths(
    url: str,
    fetch_options: Optional[Dict[str, Any]] = None,
    include_search: bool = False,
    hash_length: int = 0,
    forced_ext: str = "",
    save_root: str = "",
    key_string: KeyString = None,
    prepend_path: Optional[str] = "",
) -> DerivedPaths:
    """
    Derive the save path and public path for a URL.

    Args:
        url: Absolute asset URL
        fetch_options: Request options, part of the hash input
        include_search: Append each query parameter to the file name
        hash_length: Number of hex chars of the URL/options hash to append (0 = none)
        forced_ext: Extension replacing the original one (e.g. ".json")
        save_root: Local directory the file is written under
        key_string: Literal prefix or regex stripped from the URL first
        prepend_path: Public prefix for the returned site path

    Returns:
        DerivedPaths(save_path, public_path); public_path always starts with "/"
    """
    parsed = urlparse(url)
    bare = url.split("#", 1)[0].split("?", 1)[0]
    raw_path = unquote(strip_key(bare, key_string))

    directory, name = posixpath.split(raw_path)
    stem, ext = posixpath.splitext(name)
    if not name:
        stem = "index"

    suffix = search_suffix(parsed.query) if include_search else ""
    digest = f"-{short_hash(url, fetch_options, hash_length)}" if hash_length > 0 else ""
    if forced_ext:
        ext = forced_ext if forced_ext.startswith(".") else f".{forced_ext}"

    filename = f"{stem}{suffix}{digest}{ext}"
    untrusted = f"{directory}/{filename}" if directory else filename

    relative = posixpath.normpath(untrusted).lstrip("/")
    relative = LEADING_PARENT_DIRS.sub("", relative).lstrip("/")
    if relative in ("", "."):
        relative = filename.lstrip("./") or "index"

    save_path = os.path.join(save_root or "", relative)
    public_path = "/" + posixpath.join(prepend_path or "", relative).lstrip("/")
    return DerivedPaths(save_path=save_path, public_path=public_path)
