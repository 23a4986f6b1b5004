"""
Resolver Strategies

A resolver turns a remote asset URL into a locally usable reference. Every
resolver is a callable ``resolver(url, fetch_options=None)`` returning either
a string or a ``Resolved`` descriptor:

- ``DataUrlResolver``: inline small, allow-listed content as a base64 data URL
- ``FileSaveResolver``: download into the save root and return its public path
- ``JsonFileSaveResolver``: fetch JSON, save it pretty-printed, return path and data
- ``SmartResolver``: force file-save for some URLs, otherwise inline first and
  save the file when inlining raises

URLs that do not match the target pattern, and ``javascript:`` URLs, are
returned unchanged without touching the network.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional

from ..utils.paths import KeyString, derive_file_paths
from ..utils.validators import (
    PatternSpec,
    compile_patterns,
    guess_mime_type,
    is_javascript_url,
    matches_any,
    media_type,
)
from .config import (
    DEFAULT_ALLOW_MIME_TYPES,
    DEFAULT_INLINE_LIMIT,
    DEFAULT_JSON_HASH_LENGTH,
    DEFAULT_KEY_STRING,
    DEFAULT_ON_ERROR,
    DEFAULT_PREPEND_PATH,
    DEFAULT_SAVE_ROOT,
    DEFAULT_TARGET_PATTERN,
    DENY_ALWAYS_MIME_TYPES,
    Capabilities,
    OnError,
)
from .errors import FetchError, MimeUndeterminedError
from .logger import ErrorTracker
from .models import Resolved, ResolverOutcome

logger = logging.getLogger(__name__)


def handle_error(error: Exception, on_error, url_value, empty_value,
                 url: Optional[str] = None, tracker: Optional[ErrorTracker] = None):
    """
    Apply an on_error policy to a failure.

    Args:
        error: The failure being handled
        on_error: OnError policy (or its string value)
        url_value: Returned for ``return-url``
        empty_value: Returned for ``return-empty``
        url: URL being resolved, for logging
        tracker: Optional ErrorTracker recording the failure

    Returns:
        ``url_value`` or ``empty_value`` depending on the policy

    Raises:
        The original error when the policy is ``throw``; it is not logged
        here, whoever catches it reports it
    """
    policy = OnError(on_error)
    if policy == OnError.THROW:
        raise error
    if tracker is not None:
        tracker.log_error(error, url=url, policy=policy.value)
    else:
        logger.warning(f"Error on process: {url} ({error}) [on_error={policy.value}]")
    if policy == OnError.RETURN_URL:
        return url_value
    return empty_value


class BaseResolver:
    """
    Shared behaviour: target matching, the javascript: guard, capability
    checks and on_error dispatch. Subclasses implement ``resolve``.
    """

    requires_filesystem = False

    def __init__(self,
                 target_pattern: PatternSpec = DEFAULT_TARGET_PATTERN,
                 on_error=DEFAULT_ON_ERROR,
                 capabilities: Optional[Capabilities] = None,
                 error_tracker: Optional[ErrorTracker] = None):
        self.patterns = compile_patterns(target_pattern)
        self.on_error = OnError(on_error)
        self.capabilities = capabilities if capabilities is not None else Capabilities.default()
        self.error_tracker = error_tracker
        self.logger = logging.getLogger(__name__)

    def accepts(self, url: str) -> bool:
        return not is_javascript_url(url) and matches_any(url, self.patterns)

    def available(self) -> bool:
        if self.capabilities.network is None:
            return False
        return not self.requires_filesystem or self.capabilities.filesystem is not None

    def passthrough(self, url: str) -> ResolverOutcome:
        return url

    def empty(self) -> ResolverOutcome:
        return ""

    def __call__(self, url: str, fetch_options: Optional[Dict[str, Any]] = None) -> ResolverOutcome:
        if not self.accepts(url):
            return self.passthrough(url)
        if not self.available():
            self.logger.debug(f"Required capability missing; leaving {url} unchanged")
            return self.passthrough(url)
        try:
            return self.resolve(url, fetch_options or {})
        except Exception as error:
            return self.handle_error(error, url)

    def handle_error(self, error: Exception, url: str) -> ResolverOutcome:
        return handle_error(error, self.on_error, self.passthrough(url), self.empty(),
                            url=url, tracker=self.error_tracker)

    def resolve(self, url: str, fetch_options: Dict[str, Any]) -> ResolverOutcome:
        raise NotImplementedError

    def fetch(self, url: str, fetch_options: Dict[str, Any]):
        response = self.capabilities.network.fetch(url, fetch_options)
        if not response.ok:
            raise FetchError(url, response.status_code)
        return response


class DataUrlResolver(BaseResolver):
    """Inline assets as ``data:`` URLs when they are small and of an allowed type."""

    def __init__(self,
                 inline_limit_bytes: int = DEFAULT_INLINE_LIMIT,
                 allow_mime_types: PatternSpec = None,
                 **kwargs):
        """
        Args:
            inline_limit_bytes: Bodies larger than this are left as URLs
            allow_mime_types: Content-type patterns that may be inlined
                (default: image/*, audio/*, video/*, application/pdf)
            **kwargs: target_pattern, on_error, capabilities, error_tracker
        """
        super().__init__(**kwargs)
        self.inline_limit_bytes = int(inline_limit_bytes)
        self.allow_mime_types = compile_patterns(
            DEFAULT_ALLOW_MIME_TYPES if allow_mime_types is None else allow_mime_types
        )

    def resolve(self, url: str, fetch_options: Dict[str, Any]) -> str:
        response = self.fetch(url, fetch_options)
        body = response.content
        if len(body) > self.inline_limit_bytes:
            self.logger.debug(f"Not inlining {url}: {len(body)} bytes over {self.inline_limit_bytes}")
            return url

        content_type = media_type(response.headers.get('content-type')) or guess_mime_type(url)
        if not content_type:
            raise MimeUndeterminedError(url)

        if matches_any(content_type, DENY_ALWAYS_MIME_TYPES):
            self.logger.debug(f"Not inlining {url}: {content_type} is never inlined")
            return url
        if not matches_any(content_type, self.allow_mime_types):
            self.logger.debug(f"Not inlining {url}: {content_type} not allowed")
            return url

        payload = base64.b64encode(body).decode('ascii')
        self.logger.info(f"Inlined: {url} ({len(body)} bytes)")
        return f"data:{content_type};base64,{payload}"


class FileSaveResolver(BaseResolver):
    """Download assets under ``save_root`` and return their public path."""

    requires_filesystem = True

    def __init__(self,
                 save_root: str = DEFAULT_SAVE_ROOT,
                 key_string: KeyString = DEFAULT_KEY_STRING,
                 prepend_path: Optional[str] = DEFAULT_PREPEND_PATH,
                 **kwargs):
        """
        Args:
            save_root: Local directory files are written under
            key_string: Literal prefix or regex stripped from URLs before deriving paths
            prepend_path: Public path prefix of the returned site path
            **kwargs: target_pattern, on_error, capabilities, error_tracker
        """
        super().__init__(**kwargs)
        self.save_root = save_root or ""
        self.key_string = key_string
        self.prepend_path = prepend_path or ""

    def resolve(self, url: str, fetch_options: Dict[str, Any]) -> ResolverOutcome:
        response = self.fetch(url, fetch_options)
        paths = derive_file_paths(
            url,
            fetch_options,
            include_search=True,
            hash_length=0,
            forced_ext="",
            save_root=self.save_root,
            key_string=self.key_string,
            prepend_path=self.prepend_path,
        )
        self.capabilities.filesystem.write_bytes(paths.save_path, response.content)
        self.logger.info(f"Saved: {paths.save_path}")
        return paths.public_path


class JsonFileSaveResolver(FileSaveResolver):
    """
    Fetch JSON, save it pretty-printed under a hashed ``.json`` name and
    return both the public path and the parsed data.
    """

    def __init__(self, hash_length: int = DEFAULT_JSON_HASH_LENGTH, **kwargs):
        super().__init__(**kwargs)
        self.hash_length = hash_length

    def passthrough(self, url: str) -> Resolved:
        return Resolved(path=url)

    def empty(self) -> Resolved:
        return Resolved(path="")

    def resolve(self, url: str, fetch_options: Dict[str, Any]) -> Resolved:
        response = self.fetch(url, fetch_options)
        data = response.json()
        paths = derive_file_paths(
            url,
            fetch_options,
            include_search=False,
            hash_length=self.hash_length,
            forced_ext=".json",
            save_root=self.save_root,
            key_string=self.key_string,
            prepend_path=self.prepend_path,
        )
        self.capabilities.filesystem.write_text(paths.save_path, json.dumps(data, indent=2, ensure_ascii=False))
        self.logger.info(f"Saved: {paths.save_path}")
        return Resolved(path=paths.public_path, data=data)


class SmartResolver(BaseResolver):
    """
    Inline first, save to a file when inlining raises.

    URLs matching ``require_file_patterns`` skip inlining entirely. An inline
    attempt that returns the URL unchanged (too large, type not allowed) is a
    final answer, not a failure.
    """

    def __init__(self,
                 require_file_patterns: PatternSpec = None,
                 target_pattern: PatternSpec = DEFAULT_TARGET_PATTERN,
                 on_error=DEFAULT_ON_ERROR,
                 inline_limit_bytes: int = DEFAULT_INLINE_LIMIT,
                 allow_mime_types: PatternSpec = None,
                 save_root: str = DEFAULT_SAVE_ROOT,
                 key_string: KeyString = DEFAULT_KEY_STRING,
                 prepend_path: Optional[str] = DEFAULT_PREPEND_PATH,
                 capabilities: Optional[Capabilities] = None,
                 error_tracker: Optional[ErrorTracker] = None):
        super().__init__(target_pattern=target_pattern, on_error=on_error,
                         capabilities=capabilities, error_tracker=error_tracker)
        self.require_file_patterns = compile_patterns(require_file_patterns)
        # Inner resolvers always raise so failures can trigger the fallback
        self.inline = DataUrlResolver(
            inline_limit_bytes=inline_limit_bytes,
            allow_mime_types=allow_mime_types,
            target_pattern=target_pattern,
            on_error=OnError.THROW,
            capabilities=self.capabilities,
        )
        self.file_save = FileSaveResolver(
            save_root=save_root,
            key_string=key_string,
            prepend_path=prepend_path,
            target_pattern=target_pattern,
            on_error=OnError.THROW,
            capabilities=self.capabilities,
        )

    def __call__(self, url: str, fetch_options: Optional[Dict[str, Any]] = None) -> ResolverOutcome:
        if not self.accepts(url):
            return url
        fetch_options = fetch_options or {}

        if matches_any(url, self.require_file_patterns):
            try:
                return self.file_save(url, fetch_options)
            except Exception as error:
                return self.handle_error(error, url)

        try:
            return self.inline(url, fetch_options)
        except Exception as inline_error:
            if self.error_tracker is not None:
                self.error_tracker.log_warning(f"Inlining failed ({inline_error}); saving file instead", url=url)
            else:
                self.logger.debug(f"Inlining failed for {url} ({inline_error}); saving file instead")
            try:
                return self.file_save(url, fetch_options)
            except Exception as error:
                return self.handle_error(error, url)
