"""
URL Validation Utilities

This module provides URL matching and normalization helpers shared by the
resolvers and the rewriter: target-pattern compilation, the ``javascript:``
guard, single-URL normalization, srcset parsing and content-type handling.
"""

import re
import mimetypes
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin, urlparse


PatternLike = Union[str, re.Pattern]
PatternSpec = Union[PatternLike, Sequence[PatternLike], None]


def compile_patterns(spec: PatternSpec) -> List[re.Pattern]:
    """
    Compile one or more patterns.

    Args:
        spec: A regex string, compiled pattern, or a sequence of either

    Returns:
        List of compiled patterns (empty for None)
    """
    if spec is None:
        return []
    if isinstance(spec, (str, re.Pattern)):
        spec = [spec]
    return [p if isinstance(p, re.Pattern) else re.compile(p) for p in spec]


def matches_any(url: str, patterns: Iterable[re.Pattern]) -> bool:
    return any(p.search(url) for p in patterns)


def is_javascript_url(url: str) -> bool:
    return url.strip().lower().startswith("javascript:")


def normalize_asset_url(url: str, origin: Optional[str] = None) -> str:
    """
    Normalize a URL passed to the single-URL API.

    Args:
        url: Absolute, protocol-relative or relative URL
        origin: Base used to resolve relative URLs

    Returns:
        Absolute http(s) URLs unchanged, ``https:`` prepended to
        protocol-relative ones, others joined with ``origin`` when given
    """
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme in ('http', 'https') and parsed.netloc:
        return url
    if url.startswith('//'):
        return 'https:' + url
    if origin:
        return urljoin(origin, url)
    return url


def is_data_url(url: str) -> bool:
    return url.strip().lower().startswith("data:")


def parse_srcset(srcset: str) -> List[Tuple[str, str]]:
    """
    Split a srcset value into (url, descriptor) candidates.

    A URL is a run of non-whitespace, so commas inside it (as in
    ``data:image/png;base64,...``) are kept. Candidates are separated by a
    comma that ends a URL or follows its descriptors.

    Args:
        srcset: Raw attribute value, e.g. ``"a.png 1x, b.png 2x"``

    Returns:
        List of (url, descriptor) pairs; descriptor may be empty
    """
    candidates = []
    pos, length = 0, len(srcset)
    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ','):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor = ''
        if url.endswith(','):
            url = url.rstrip(',')
        else:
            start = pos
            while pos < length and srcset[pos] != ',':
                pos += 1
            descriptor = ' '.join(srcset[start:pos].split())

        if url:
            candidates.append((url, descriptor))
    return candidates


def build_srcset(candidates: Iterable[Tuple[str, str]]) -> str:
    return ', '.join(f"{url} {descriptor}".strip() for url, descriptor in candidates)


def media_type(content_type: Optional[str]) -> Optional[str]:
    """Return the lowercase media type of a Content-Type header, parameters dropped."""
    if not content_type:
        return None
    value = content_type.split(';')[0].strip().lower()
    return value or None


def guess_mime_type(url: str) -> Optional[str]:
    """Guess a content type from the URL path extension."""
    path = urlparse(url).path
    mime, _ = mimetypes.guess_type(path)
    return mime
