"""
Fetchoraw: Asset Reference Rewriter

Rewrites remote asset references (images, scripts, stylesheets) found in HTML
documents or passed as bare URLs into locally resolvable ones: inlined data
URLs, saved files, or paths replayed from a persistent resolution cache.
"""

from .core.config import ExecutionMode, OnError, RewriterConfig, mode_from_env
from .core.errors import (
    CacheFormatError,
    CacheUnavailableError,
    FetchError,
    FetchorawError,
    FilesystemUnavailableError,
    MimeUndeterminedError,
)
from .core.models import HtmlResult, ManifestEntry, Resolved, UrlResult
from .core.presets import CMS_PRESETS, DEFAULT_SELECTORS, SELECTOR_PRESETS, Selector
from .core.resolvers import (
    DataUrlResolver,
    FileSaveResolver,
    JsonFileSaveResolver,
    SmartResolver,
)
from .core.rewriter import AssetRewriter

__version__ = "2.0"
__author__ = "Fetchoraw Project"
__description__ = "Asset Reference Rewriter"

__all__ = [
    "AssetRewriter",
    "CMS_PRESETS",
    "CacheFormatError",
    "CacheUnavailableError",
    "DEFAULT_SELECTORS",
    "DataUrlResolver",
    "ExecutionMode",
    "FetchError",
    "FetchorawError",
    "FileSaveResolver",
    "FilesystemUnavailableError",
    "HtmlResult",
    "JsonFileSaveResolver",
    "ManifestEntry",
    "MimeUndeterminedError",
    "OnError",
    "Resolved",
    "RewriterConfig",
    "SELECTOR_PRESETS",
    "Selector",
    "SmartResolver",
    "UrlResult",
    "mode_from_env",
]
