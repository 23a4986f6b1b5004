"""Preset selector targets and CMS asset URL patterns."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Selector:
    """A CSS selector paired with the attribute that holds the URL."""

    selector: str
    attr: str

    @classmethod
    def parse(cls, spec: str) -> "Selector":
        """Parse ``"css@attr"`` (e.g. ``"img[src]@src"``)."""
        css, sep, attr = spec.rpartition("@")
        if not sep or not css.strip() or not attr.strip():
            raise ValueError(f"Selector must look like 'css@attr': {spec!r}")
        return cls(selector=css.strip(), attr=attr.strip())


SELECTOR_PRESETS: Dict[str, Selector] = {
    "img_src": Selector("img[src]", "src"),
    "img_srcset": Selector("img[srcset]", "srcset"),
    "source_src": Selector("source[src]", "src"),
    "source_srcset": Selector("source[srcset]", "srcset"),
    "video_poster": Selector("video[poster]", "poster"),
    "video_src": Selector("video[src]", "src"),
    "audio_src": Selector("audio[src]", "src"),
    "a_href": Selector("a[href]", "href"),
    "link_href": Selector("link[href]", "href"),
    "link_stylesheet": Selector('link[rel~="stylesheet"][href]', "href"),
    "link_icon": Selector('link[rel~="icon"][href]', "href"),
    "script_src": Selector("script[src]", "src"),
    "object_data": Selector("object[data]", "data"),
    "og_image": Selector('meta[property="og:image"]', "content"),
    "twitter_image": Selector('meta[name="twitter:image"]', "content"),
}

DEFAULT_SELECTORS: List[Selector] = [
    SELECTOR_PRESETS[name]
    for name in (
        "img_src",
        "img_srcset",
        "source_src",
        "source_srcset",
        "video_poster",
        "video_src",
        "audio_src",
        "link_stylesheet",
        "link_icon",
        "script_src",
        "og_image",
        "twitter_image",
    )
]

CMS_PRESETS: Dict[str, "re.Pattern[str]"] = {
    "microcms": re.compile(r"^https?://images\.microcms-assets\.io/assets/"),
    "newt": re.compile(r"^https?://assets\.newt\.so/"),
    "contentful": re.compile(r"^https?://images\.ctfassets\.net/"),
    "storyblok": re.compile(r"^https?://a\.storyblok\.com/"),
}
