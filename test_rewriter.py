#!/usr/bin/env python3
"""
Tests for AssetRewriter: modes, cache replay, deduplication and manifests.
"""

import json
import sys
from pathlib import Path

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from conftest import FakeResponse
from fetchoraw.core.config import Capabilities, ExecutionMode, RewriterConfig
from fetchoraw.core.errors import FetchError
from fetchoraw.core.models import Resolved
from fetchoraw.core.presets import Selector
from fetchoraw.core.resolvers import FileSaveResolver, JsonFileSaveResolver
from fetchoraw.core.rewriter import AssetRewriter
from fetchoraw.utils.file_manager import LocalFileSystem


class RecordingResolver:
    def __init__(self, mapping=None, error=None):
        self.mapping = mapping or {}
        self.error = error
        self.calls = []

    def __call__(self, url, fetch_options=None):
        self.calls.append((url, fetch_options))
        if self.error is not None:
            raise self.error
        return self.mapping.get(url, "/resolved/" + url.rsplit("/", 1)[-1])


def make_rewriter(resolver, tmp_path, mode=ExecutionMode.FETCH, **config):
    config.setdefault("cache_file_path", str(tmp_path / "cache" / "cache.json"))
    return AssetRewriter(resolver, RewriterConfig(mode=mode, **config),
                         Capabilities(filesystem=LocalFileSystem()))


def write_cache(path, pairs):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(pairs), encoding="utf-8")


def test_none_mode_returns_input_unchanged(tmp_path):
    html = '<p>hi</p><img src="https://example.com/a.png">'
    resolver = RecordingResolver()
    result = make_rewriter(resolver, tmp_path, mode=ExecutionMode.NONE).rewrite_html(html)
    assert result.html == html
    assert result.map == []
    assert resolver.calls == []
    assert not (tmp_path / "cache").exists()


def test_empty_html_returns_empty(tmp_path):
    result = make_rewriter(RecordingResolver(), tmp_path).rewrite_html("")
    assert result.html == ""
    assert result.map == []


def test_cache_mode_replays_entries_without_resolving(tmp_path):
    cache_file = tmp_path / "cache.json"
    write_cache(cache_file, [["https://example.com/a.png::{}", {"path": "/cached/a.png"}]])
    resolver = RecordingResolver()
    rewriter = make_rewriter(resolver, tmp_path, mode=ExecutionMode.CACHE, cache_file_path=str(cache_file))

    result = rewriter.rewrite_html('<img src="https://example.com/a.png">')
    assert 'src="/cached/a.png"' in result.html
    assert resolver.calls == []
    assert [e.resolved_path for e in result.map] == ["/cached/a.png"]


def test_cache_mode_miss_leaves_reference(tmp_path):
    cache_file = tmp_path / "cache.json"
    write_cache(cache_file, [])
    resolver = RecordingResolver()
    rewriter = make_rewriter(resolver, tmp_path, mode=ExecutionMode.CACHE, cache_file_path=str(cache_file))

    result = rewriter.rewrite_html('<img src="https://example.com/b.png">')
    assert 'src="https://example.com/b.png"' in result.html
    assert result.map == []
    assert resolver.calls == []
    assert json.loads(cache_file.read_text(encoding="utf-8")) == []


def test_cache_mode_without_cache_file_returns_input(tmp_path):
    html = '<img src="https://example.com/a.png">'
    resolver = RecordingResolver()
    result = make_rewriter(resolver, tmp_path, mode=ExecutionMode.CACHE).rewrite_html(html)
    assert result.html == html
    assert resolver.calls == []


def test_fetch_mode_resolves_each_url_once(tmp_path):
    html = (
        '<img src="https://example.com/a.png">'
        '<img src="https://example.com/a.png">'
        '<img src="https://example.com/b.png">'
    )
    resolver = RecordingResolver()
    result = make_rewriter(resolver, tmp_path).rewrite_html(html)

    assert [url for url, _ in resolver.calls] == ["https://example.com/a.png", "https://example.com/b.png"]
    assert result.html.count('src="/resolved/a.png"') == 2
    assert [e.url for e in result.map] == ["https://example.com/a.png", "https://example.com/b.png"]


def test_resolver_called_without_options_for_html(tmp_path):
    resolver = RecordingResolver()
    make_rewriter(resolver, tmp_path).rewrite_html('<img src="https://example.com/a.png">')
    assert resolver.calls == [("https://example.com/a.png", None)]


def test_fetch_mode_persists_cache_in_order(tmp_path):
    cache_file = tmp_path / "cache.json"
    resolver = RecordingResolver()
    rewriter = make_rewriter(resolver, tmp_path, cache_file_path=str(cache_file))
    rewriter.rewrite_html('<img src="https://example.com/b.png"><script src="https://example.com/app.js"></script>')

    saved = json.loads(cache_file.read_text(encoding="utf-8"))
    assert saved == [
        ["https://example.com/b.png::{}", {"path": "/resolved/b.png"}],
        ["https://example.com/app.js::{}", {"path": "/resolved/app.js"}],
    ]

    # A second run hits the cache
    again = RecordingResolver()
    result = make_rewriter(again, tmp_path, cache_file_path=str(cache_file)).rewrite_html(
        '<img src="https://example.com/b.png">'
    )
    assert again.calls == []
    assert 'src="/resolved/b.png"' in result.html


def test_unchanged_result_is_cached(tmp_path):
    cache_file = tmp_path / "cache.json"
    url = "https://example.com/huge.png"
    resolver = RecordingResolver({url: url})
    rewriter = make_rewriter(resolver, tmp_path, cache_file_path=str(cache_file))
    rewriter.rewrite_html(f'<img src="{url}">')
    rewriter.rewrite_html(f'<img src="{url}">')
    assert len(resolver.calls) == 1
    assert json.loads(cache_file.read_text(encoding="utf-8")) == [[f"{url}::{{}}", {"path": url}]]


def test_video_poster_saved_to_file(network, tmp_path):
    url = "https://example.com/media/poster.jpg"
    network.routes[url] = FakeResponse(b"JPEG", content_type="image/jpeg")
    capabilities = Capabilities(network=network, filesystem=LocalFileSystem())
    resolver = FileSaveResolver(save_root=str(tmp_path / "dist"), prepend_path="assets", capabilities=capabilities)
    cache_file = tmp_path / "cache.json"
    rewriter = AssetRewriter(resolver, RewriterConfig(mode="fetch", cache_file_path=str(cache_file)), capabilities)

    result = rewriter.rewrite_html(f'<video poster="{url}" controls></video>')

    assert 'poster="/assets/media/poster.jpg"' in result.html
    assert (tmp_path / "dist" / "media" / "poster.jpg").read_bytes() == b"JPEG"
    assert len(result.map) == 1
    entry = result.map[0]
    assert entry.url == url
    assert entry.fetch_options == {}
    assert entry.resolved_path == "/assets/media/poster.jpg"
    assert json.loads(cache_file.read_text(encoding="utf-8")) == [
        [f"{url}::{{}}", {"path": "/assets/media/poster.jpg"}]
    ]


def test_srcset_candidates_rewritten_individually(tmp_path):
    resolver = RecordingResolver({
        "https://example.com/a.png": "/assets/a.png",
        "https://example.com/b.png": "/assets/b.png",
    })
    html = '<img srcset="https://example.com/a.png 1x, https://example.com/b.png 2x">'
    result = make_rewriter(resolver, tmp_path).rewrite_html(html)
    assert 'srcset="/assets/a.png 1x, /assets/b.png 2x"' in result.html


def test_custom_selectors_and_empty_values(tmp_path):
    resolver = RecordingResolver()
    html = '<a href="https://example.com/doc.pdf">doc</a><img src=""><img src="https://example.com/x.png">'
    result = make_rewriter(resolver, tmp_path).rewrite_html(
        html, [{"selector": "a[href]", "attr": "href"}, Selector.parse("img[src]@src")]
    )
    assert 'href="/resolved/doc.pdf"' in result.html
    assert 'src="/resolved/x.png"' in result.html
    assert [url for url, _ in resolver.calls] == ["https://example.com/doc.pdf", "https://example.com/x.png"]


def test_resolver_errors_propagate(tmp_path):
    resolver = RecordingResolver(error=FetchError("https://example.com/a.png", 500))
    with pytest.raises(FetchError):
        make_rewriter(resolver, tmp_path).rewrite_html('<img src="https://example.com/a.png">')


def test_verify_root_resolves_again_when_file_missing(tmp_path):
    cache_file = tmp_path / "cache.json"
    public = tmp_path / "public"
    write_cache(cache_file, [["https://example.com/a.png::{}", {"path": "/assets/a.png"}]])
    resolver = RecordingResolver({"https://example.com/a.png": "/assets/a.png"})
    rewriter = make_rewriter(resolver, tmp_path, cache_file_path=str(cache_file), verify_root=str(public))

    rewriter.rewrite_html('<img src="https://example.com/a.png">')
    assert len(resolver.calls) == 1

    (public / "assets").mkdir(parents=True)
    (public / "assets" / "a.png").write_bytes(b"x")
    rewriter.rewrite_html('<img src="https://example.com/a.png">')
    assert len(resolver.calls) == 1


def test_rewrite_url_normalizes_and_keys_with_options(tmp_path):
    cache_file = tmp_path / "cache.json"
    resolver = RecordingResolver()
    rewriter = make_rewriter(resolver, tmp_path, cache_file_path=str(cache_file))

    result = rewriter.rewrite_url("//example.com/a.png")
    assert result.path == "/resolved/a.png"
    assert resolver.calls[-1] == ("https://example.com/a.png", None)

    result = rewriter.rewrite_url("img/b.png", origin="https://example.com/blog/")
    assert resolver.calls[-1][0] == "https://example.com/blog/img/b.png"

    rewriter.rewrite_url("https://example.com/a.png", fetch_options={"headers": {"X": "1"}})
    assert resolver.calls[-1] == ("https://example.com/a.png", {"headers": {"X": "1"}})

    keys = [key for key, _ in json.loads(cache_file.read_text(encoding="utf-8"))]
    assert keys == [
        "https://example.com/a.png::{}",
        "https://example.com/blog/img/b.png::{}",
        'https://example.com/a.png::{"headers":{"X":"1"}}',
    ]


def test_rewrite_url_returns_data(network, tmp_path):
    url = "https://api.example.com/posts"
    network.routes[url] = FakeResponse(json_data={"items": []})
    capabilities = Capabilities(network=network, filesystem=LocalFileSystem())
    resolver = JsonFileSaveResolver(save_root=str(tmp_path / "data"), prepend_path="data", capabilities=capabilities)
    rewriter = AssetRewriter(resolver, RewriterConfig(mode=ExecutionMode.FETCH,
                                                      cache_file_path=str(tmp_path / "cache.json")), capabilities)
    result = rewriter.rewrite_url(url)
    assert result.path.startswith("/data/posts-")
    assert result.data == {"items": []}
    assert result.map[0].resolved_path == result.path


def test_rewrite_url_none_mode_and_cache_miss(tmp_path):
    resolver = RecordingResolver()
    assert make_rewriter(resolver, tmp_path, mode="none").rewrite_url("//example.com/a.png").path == "//example.com/a.png"

    cache_file = tmp_path / "cache.json"
    write_cache(cache_file, [])
    rewriter = make_rewriter(resolver, tmp_path, mode="cache", cache_file_path=str(cache_file))
    result = rewriter.rewrite_url("//example.com/a.png")
    assert result.path == "https://example.com/a.png"
    assert result.data is None
    assert resolver.calls == []


def test_resolved_descriptor_outcomes_are_normalized(tmp_path):
    resolver = lambda url, fetch_options=None: {"path": "/x.json", "data": [1]}
    result = make_rewriter(resolver, tmp_path).rewrite_url("https://example.com/x")
    assert (result.path, result.data) == ("/x.json", [1])
    assert Resolved.from_outcome(Resolved(path="/y")).path == "/y"


def test_from_env_selects_mode(tmp_path):
    resolver = RecordingResolver()
    rewriter = AssetRewriter.from_env(resolver, environ={"FETCHORAW_MODE": "CACHE"},
                                      cache_file_path=str(tmp_path / "c.json"))
    assert rewriter.mode == ExecutionMode.CACHE
    assert AssetRewriter.from_env(resolver, environ={"FETCHORAW_MODE": "fetch"}).mode == ExecutionMode.NONE
    assert AssetRewriter.from_env(resolver, env_name="BUILD", fetch_value="live",
                                  environ={"BUILD": "live"}).mode == ExecutionMode.FETCH


def test_srcset_keeps_data_url_candidates_intact(network, tmp_path):
    url = "https://example.com/b.png"
    network.routes[url] = FakeResponse(b"PNG", content_type="image/png")
    capabilities = Capabilities(network=network, filesystem=LocalFileSystem())
    resolver = FileSaveResolver(save_root=str(tmp_path / "dist"), prepend_path="assets", capabilities=capabilities)
    cache_file = tmp_path / "cache.json"
    rewriter = AssetRewriter(resolver, RewriterConfig(mode="fetch", cache_file_path=str(cache_file)), capabilities)

    result = rewriter.rewrite_html(f'<img srcset="data:image/png;base64,AAAA 1x, {url} 2x">')

    assert 'srcset="data:image/png;base64,AAAA 1x, /assets/b.png 2x"' in result.html
    assert [url for url, _ in network.calls] == ["https://example.com/b.png"]
    assert [e.url for e in result.map] == ["https://example.com/b.png"]
    keys = [key for key, _ in json.loads(cache_file.read_text(encoding="utf-8"))]
    assert keys == ["https://example.com/b.png::{}"]


def test_attribute_whitespace_is_stripped_before_lookup(tmp_path):
    cache_file = tmp_path / "cache.json"
    resolver = RecordingResolver()
    rewriter = make_rewriter(resolver, tmp_path, cache_file_path=str(cache_file))

    result = rewriter.rewrite_html('<img src="  https://example.com/a.png \n">')

    assert resolver.calls == [("https://example.com/a.png", None)]
    assert 'src="/resolved/a.png"' in result.html
    keys = [key for key, _ in json.loads(cache_file.read_text(encoding="utf-8"))]
    assert keys == ["https://example.com/a.png::{}"]


def test_output_is_serialized_as_a_full_document(tmp_path):
    cache_file = tmp_path / "cache.json"
    write_cache(cache_file, [["https://example.com/a.png::{}", {"path": "/cached/a.png"}]])
    rewriter = make_rewriter(RecordingResolver(), tmp_path, mode=ExecutionMode.CACHE,
                             cache_file_path=str(cache_file))

    result = rewriter.rewrite_html('<img src="https://example.com/a.png">')

    assert result.html == '<html><body><img src="/cached/a.png"/></body></html>'
