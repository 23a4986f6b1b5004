"""
Error Types

Exceptions raised by resolvers and the resolution cache. Resolver-internal
failures are normally dispatched through the resolver's ``on_error`` policy;
only what survives that policy reaches the rewriter.
"""

from typing import Optional


class FetchorawError(Exception):
    """Base class for all fetchoraw errors."""


class FetchError(FetchorawError):
    """The remote server answered with a non-success status."""

    def __init__(self, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch: {url} (status {status_code})")


class MimeUndeterminedError(FetchorawError):
    """No content type could be established from headers or extension."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unable to determine MIME type for: {url}")


class CacheUnavailableError(FetchorawError):
    """CACHE mode was selected but the cache file cannot be used."""

    def __init__(self, path: str, reason: str = "does not exist"):
        self.path = path
        self.reason = reason
        super().__init__(f"Cache file {path!r} {reason}")


class CacheFormatError(CacheUnavailableError):
    """The cache file exists but is not a list of [key, descriptor] pairs."""

    def __init__(self, path: str, detail: str):
        super().__init__(path, f"is malformed: {detail}")


class FilesystemUnavailableError(FetchorawError):
    """An operation needed filesystem access but no filesystem port was given."""
