"""
Configuration objects and defaults for the rewriter and resolvers.

The engine never reads the process environment by itself. Hosts that want
environment-driven mode selection call ``mode_from_env`` (or
``AssetRewriter.from_env``) once and pass the result in.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ..utils.file_manager import LocalFileSystem
from .http_client import HttpFetcher


# Max size for inlining data URLs (2 MiB)
DEFAULT_INLINE_LIMIT = 2 * 1024 * 1024

# Any http(s) URL with a domain
DEFAULT_TARGET_PATTERN = re.compile(r"^https?://[^/]+/?")

# Scheme and host are stripped from saved paths
DEFAULT_KEY_STRING = re.compile(r"^https?://[^/]+/?")

DEFAULT_SAVE_ROOT = "dist/assets"
DEFAULT_PREPEND_PATH = "assets"
DEFAULT_JSON_HASH_LENGTH = 6

DEFAULT_ENV_NAME = "FETCHORAW_MODE"
DEFAULT_FETCH_ENV_VALUE = "FETCH"
DEFAULT_CACHE_ENV_VALUE = "CACHE"
DEFAULT_CACHE_FILE_PATH = os.path.join(".fetchoraw", "cache.json")
DEFAULT_PARSER = "lxml"

DEFAULT_ALLOW_MIME_TYPES = (
    re.compile(r"^image/"),
    re.compile(r"^audio/"),
    re.compile(r"^video/"),
    re.compile(r"^application/pdf$"),
)

# Never inlined, whatever the allow list says
DENY_ALWAYS_MIME_TYPES = (
    re.compile(r"^application/octet-stream$"),
    re.compile(r"^application/x-msdownload$"),
    re.compile(r"^application/zip$"),
    re.compile(r"^text/html$"),
    re.compile(r"^application/javascript$"),
)


class ExecutionMode(str, Enum):
    NONE = "none"
    FETCH = "fetch"
    CACHE = "cache"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class OnError(str, Enum):
    """What a resolver returns after a failure."""

    THROW = "throw"
    RETURN_URL = "return-url"
    RETURN_EMPTY = "return-empty"


DEFAULT_ON_ERROR = OnError.THROW


def mode_from_env(env_name: str = DEFAULT_ENV_NAME,
                  fetch_value: str = DEFAULT_FETCH_ENV_VALUE,
                  cache_value: str = DEFAULT_CACHE_ENV_VALUE,
                  environ: Optional[Mapping[str, str]] = None) -> ExecutionMode:
    """
    Select the execution mode from an environment variable.

    Args:
        env_name: Variable to read
        fetch_value: Value selecting FETCH mode
        cache_value: Value selecting CACHE mode
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        FETCH or CACHE on an exact match, NONE for any other value or absence
    """
    env = os.environ if environ is None else environ
    value = env.get(env_name) if env_name else None
    if value is None:
        return ExecutionMode.NONE
    if value == fetch_value:
        return ExecutionMode.FETCH
    if value == cache_value:
        return ExecutionMode.CACHE
    return ExecutionMode.NONE


@dataclass
class Capabilities:
    """
    Ports the engine may use for I/O.

    A ``None`` port means the capability is absent; resolvers needing it
    pass their input through unchanged.
    """

    network: Optional[Any] = None
    filesystem: Optional[Any] = None

    @classmethod
    def default(cls) -> "Capabilities":
        return cls(network=HttpFetcher(), filesystem=LocalFileSystem())


@dataclass
class RewriterConfig:
    """Settings that control how AssetRewriter resolves and caches."""

    mode: ExecutionMode = ExecutionMode.NONE
    cache_file_path: str = DEFAULT_CACHE_FILE_PATH
    parser: str = DEFAULT_PARSER
    # Public root used to re-check cached site paths in FETCH mode
    verify_root: Optional[str] = None

    def __post_init__(self):
        self.mode = ExecutionMode(self.mode)
