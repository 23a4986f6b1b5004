"""
Asset rewriting for HTML documents and single URLs.

``AssetRewriter`` walks the selector targets of an HTML document (or takes a
single URL), consults the resolution cache, runs the resolver on a miss and
writes the result back. Behaviour depends on the execution mode fixed at
construction:

- NONE: pass everything through untouched; no cache, no network
- FETCH: resolve live, reuse cache hits, save the cache after each resolution
- CACHE: replay cache entries only; a miss leaves the reference unresolved

Elements are processed one at a time in document order and each distinct URL
is resolved at most once per call.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from bs4 import BeautifulSoup

from ..utils.file_manager import LocalFileSystem
from ..utils.manifest import ManifestEntry
from ..utils.validators import build_srcset, is_data_url, normalize_asset_url, parse_srcset
from .cache import ResolutionCache, make_cache_key
from .config import (
    DEFAULT_CACHE_ENV_VALUE,
    DEFAULT_ENV_NAME,
    DEFAULT_FETCH_ENV_VALUE,
    Capabilities,
    ExecutionMode,
    RewriterConfig,
    mode_from_env,
)
from .errors import CacheUnavailableError
from .models import HtmlResult, Resolved, ResolverOutcome, UrlResult
from .presets import DEFAULT_SELECTORS, Selector

Resolver = Callable[..., ResolverOutcome]
SelectorLike = Union[Selector, Dict[str, str]]

SRCSET_ATTRIBUTES = {"srcset", "imagesrcset"}


def _as_selector(target: SelectorLike) -> Selector:
    if isinstance(target, Selector):
        return target
    return Selector(selector=target["selector"], attr=target["attr"])


class AssetRewriter:
    """
    Rewrite asset references with a resolver, backed by a persistent cache.

    Example:
        rewriter = AssetRewriter(SmartResolver(), RewriterConfig(mode=ExecutionMode.FETCH))
        result = rewriter.rewrite_html('<img src="https://example.com/a.png">')
        result.html, result.map
    """

    def __init__(self, resolver: Resolver, config: Optional[RewriterConfig] = None,
                 capabilities: Optional[Capabilities] = None):
        """
        Initialize the rewriter.

        Args:
            resolver: Callable ``(url, fetch_options=None) -> str | Resolved``
            config: Mode, cache file location, parser and verify root
            capabilities: Filesystem port for the cache (network is the resolver's concern)
        """
        self.resolver = resolver
        self.config = config or RewriterConfig()
        self.mode = self.config.mode
        self.capabilities = capabilities if capabilities is not None else Capabilities(filesystem=LocalFileSystem())
        self.cache = ResolutionCache(self.config.cache_file_path, self.mode, self.capabilities.filesystem)
        self.logger = logging.getLogger(__name__)
        self.logger.debug(f"AssetRewriter ready (mode={self.mode.value}, cache={self.config.cache_file_path})")

    @classmethod
    def from_env(cls, resolver: Resolver,
                 env_name: str = DEFAULT_ENV_NAME,
                 fetch_value: str = DEFAULT_FETCH_ENV_VALUE,
                 cache_value: str = DEFAULT_CACHE_ENV_VALUE,
                 environ=None,
                 capabilities: Optional[Capabilities] = None,
                 **config_kwargs) -> "AssetRewriter":
        """Build a rewriter whose mode is read once from an environment variable."""
        mode = mode_from_env(env_name, fetch_value, cache_value, environ)
        return cls(resolver, RewriterConfig(mode=mode, **config_kwargs), capabilities)

    def _prepare(self) -> bool:
        """Load the cache for a call. Returns False when the call must pass through."""
        if self.mode == ExecutionMode.NONE:
            return False
        if self.capabilities.filesystem is None:
            self.logger.warning("No filesystem available; leaving input unresolved")
            return False
        try:
            self.cache.load()
        except CacheUnavailableError as e:
            self.logger.error(f"Cannot use resolution cache: {e}; leaving input unresolved")
            return False
        return True

    def _is_stale(self, cached: Resolved) -> bool:
        """In FETCH mode with a verify root, a cached site path whose file is gone is stale."""
        root = self.config.verify_root
        if self.mode != ExecutionMode.FETCH or not root:
            return False
        path = cached.path
        if not path.startswith('/') or path.startswith('//'):
            return False
        local = os.path.join(root, path.lstrip('/'))
        if self.capabilities.filesystem.exists(local):
            return False
        self.logger.info(f"Cached file missing, resolving again: {local}")
        return True

    def _lookup(self, url: str, fetch_options: Dict[str, Any],
                manifest: List[ManifestEntry]) -> Optional[Resolved]:
        """
        Resolve one URL through the cache.

        Args:
            url: URL to resolve
            fetch_options: Options forming the cache key and passed to the resolver
            manifest: Per-call manifest that receives the resolution

        Returns:
            The descriptor, or None for a miss in CACHE mode
        """
        key = make_cache_key(url, fetch_options)
        cached = self.cache.get(key)
        if cached is not None and not self._is_stale(cached):
            self.logger.debug(f"Cache hit: {url} -> {cached.path}")
            manifest.append(ManifestEntry(url=url, fetch_options=dict(fetch_options), resolved_path=cached.path))
            return cached

        if self.mode == ExecutionMode.CACHE:
            self.logger.info(f"Not in cache, left unresolved: {url}")
            return None

        outcome = self.resolver(url, fetch_options) if fetch_options else self.resolver(url)
        descriptor = Resolved.from_outcome(outcome)
        self.cache.put(key, descriptor)
        self.cache.save()
        manifest.append(ManifestEntry(url=url, fetch_options=dict(fetch_options), resolved_path=descriptor.path))
        return descriptor

    def _resolve_value(self, url: str, seen: Dict[str, Optional[str]],
                       manifest: List[ManifestEntry]) -> Optional[str]:
        if url not in seen:
            descriptor = self._lookup(url, {}, manifest)
            seen[url] = descriptor.path if descriptor is not None else None
        return seen[url]

    def _rewrite_srcset(self, value: str, seen: Dict[str, Optional[str]],
                        manifest: List[ManifestEntry]) -> Optional[str]:
        candidates = []
        changed = False
        for url, descriptor in parse_srcset(value):
            if is_data_url(url):
                candidates.append((url, descriptor))
                continue
            resolved = self._resolve_value(url, seen, manifest)
            if resolved is None:
                candidates.append((url, descriptor))
                continue
            changed = changed or resolved != url
            if resolved:
                candidates.append((resolved, descriptor))
        return build_srcset(candidates) if changed else None

    def rewrite_html(self, html: str, selectors: Optional[Iterable[SelectorLike]] = None) -> HtmlResult:
        """
        Rewrite asset references in an HTML document.

        Args:
            html: HTML string
            selectors: Selector targets (default: DEFAULT_SELECTORS)

        Returns:
            HtmlResult with the rewritten HTML and the manifest of this call
            (serialized by the parser: fragments come back inside
            ``<html><body>`` and void elements are self-closed, e.g. ``<img src="..."/>``)

        Raises:
            Whatever the resolver raises after its own on_error policy
        """
        manifest: List[ManifestEntry] = []
        if not html or not self._prepare():
            return HtmlResult(html=html, map=manifest)

        targets = [_as_selector(t) for t in (DEFAULT_SELECTORS if selectors is None else selectors)]
        soup = BeautifulSoup(html, self.config.parser)
        seen: Dict[str, Optional[str]] = {}

        for target in targets:
            for element in soup.select(target.selector):
                raw = element.get(target.attr)
                if isinstance(raw, list):
                    raw = " ".join(raw)
                value = (raw or "").strip()
                if not value:
                    continue

                if target.attr.lower() in SRCSET_ATTRIBUTES:
                    new_value = self._rewrite_srcset(value, seen, manifest)
                else:
                    new_value = self._resolve_value(value, seen, manifest)

                if new_value is not None and new_value != value:
                    element[target.attr] = new_value

        if self.mode == ExecutionMode.FETCH:
            self.cache.save()

        self.logger.info(f"Rewrote HTML: {len(manifest)} reference(s) resolved")
        return HtmlResult(html=str(soup), map=manifest)

    def rewrite_url(self, url: str, origin: Optional[str] = None,
                    fetch_options: Optional[Dict[str, Any]] = None) -> UrlResult:
        """
        Resolve a single URL.

        Args:
            url: Absolute, protocol-relative or relative URL
            origin: Base for relative URLs
            fetch_options: Request options; part of the cache key

        Returns:
            UrlResult with the resolved path, optional data and the manifest
        """
        manifest: List[ManifestEntry] = []
        if not url or self.mode == ExecutionMode.NONE:
            return UrlResult(path=url, map=manifest)

        target = normalize_asset_url(url, origin)
        if not self._prepare():
            return UrlResult(path=target, map=manifest)

        descriptor = self._lookup(target, dict(fetch_options or {}), manifest)
        if descriptor is None:
            return UrlResult(path=target, map=manifest)
        return UrlResult(path=descriptor.path, data=descriptor.data, map=manifest)
