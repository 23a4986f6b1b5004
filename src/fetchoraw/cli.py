"""Command-line entry point: rewrite the asset references of an HTML file."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import List, Optional, Sequence

import requests

from .core.config import (
    Capabilities,
    DEFAULT_CACHE_FILE_PATH,
    DEFAULT_INLINE_LIMIT,
    DEFAULT_PREPEND_PATH,
    DEFAULT_SAVE_ROOT,
    ExecutionMode,
    OnError,
    RewriterConfig,
)
from .core.errors import FetchorawError
from .core.logger import ErrorTracker, create_error_tracker, initialize_logging
from .core.presets import Selector
from .core.resolvers import DataUrlResolver, FileSaveResolver, SmartResolver
from .core.rewriter import AssetRewriter
from .utils.manifest import ManifestWriter

logger = logging.getLogger("fetchoraw.cli")

EXIT_OK = 0
EXIT_RESOLVE_ERROR = 1
EXIT_USAGE = 2


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="HTML file to rewrite")
    parser.add_argument("--out", "-o", default=None, help="Output HTML file (default: stdout)")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite an existing output file")
    parser.add_argument(
        "--on-error",
        choices=[policy.value for policy in OnError],
        default=OnError.THROW.value,
        help="What to do when an asset cannot be resolved (default: throw)",
    )
    parser.add_argument(
        "--selector",
        action="append",
        default=None,
        metavar="CSS@ATTR",
        help="Target selector and attribute, e.g. 'img[src]@src' (repeatable)",
    )
    parser.add_argument(
        "--target-pattern",
        action="append",
        default=None,
        metavar="REGEX",
        help="Only URLs matching one of these patterns are processed (repeatable)",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ExecutionMode],
        default=ExecutionMode.FETCH.value,
        help="none: pass through, fetch: resolve and update cache, cache: replay cache only",
    )
    parser.add_argument("--cache-file", default=DEFAULT_CACHE_FILE_PATH, help="Resolution cache file")
    parser.add_argument("--manifest", default=None, help="Append the result manifest to this JSON Lines file")
    parser.add_argument("--error-report", default=None, help="Write a report of handled failures to this file")
    parser.add_argument("--log-dir", default=None, help="Also write rotating log files to this directory")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--save-root", default=DEFAULT_SAVE_ROOT, help="Directory saved files are written under")
    parser.add_argument(
        "--key-string",
        default=None,
        help="Literal URL prefix stripped before deriving save paths (default: scheme and host)",
    )
    parser.add_argument("--prepend-path", default=DEFAULT_PREPEND_PATH, help="Public path prefix of saved files")


def _add_dataurl_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--inline-limit",
        type=int,
        default=DEFAULT_INLINE_LIMIT,
        help="Largest body in bytes that is inlined",
    )
    parser.add_argument(
        "--allow-mime",
        action="append",
        default=None,
        metavar="REGEX",
        help="Content-type pattern allowed for inlining (repeatable)",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fetchoraw",
        description="Rewrite remote asset references in HTML to data URLs or saved files.",
    )
    subparsers = parser.add_subparsers(dest="resolver", required=True)

    file_parser = subparsers.add_parser("file", help="Save assets to files and reference their public path")
    _add_common_arguments(file_parser)
    _add_file_arguments(file_parser)

    dataurl_parser = subparsers.add_parser("dataurl", help="Inline small assets as data URLs")
    _add_common_arguments(dataurl_parser)
    _add_dataurl_arguments(dataurl_parser)

    smart_parser = subparsers.add_parser("smart", help="Inline when possible, save files otherwise")
    _add_common_arguments(smart_parser)
    _add_file_arguments(smart_parser)
    _add_dataurl_arguments(smart_parser)
    smart_parser.add_argument(
        "--require-file",
        action="append",
        default=None,
        metavar="REGEX",
        help="URLs matching this pattern are always saved as files (repeatable)",
    )

    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


def build_resolver(args: argparse.Namespace, tracker: Optional[ErrorTracker] = None,
                   capabilities: Optional[Capabilities] = None):
    common = {"on_error": args.on_error, "error_tracker": tracker, "capabilities": capabilities}
    if args.target_pattern:
        common["target_pattern"] = args.target_pattern

    file_options = {}
    if args.resolver in ("file", "smart"):
        file_options = {"save_root": args.save_root, "prepend_path": args.prepend_path}
        if args.key_string is not None:
            file_options["key_string"] = args.key_string

    if args.resolver == "file":
        return FileSaveResolver(**file_options, **common)
    if args.resolver == "dataurl":
        return DataUrlResolver(inline_limit_bytes=args.inline_limit, allow_mime_types=args.allow_mime, **common)
    return SmartResolver(
        require_file_patterns=args.require_file,
        inline_limit_bytes=args.inline_limit,
        allow_mime_types=args.allow_mime,
        **file_options,
        **common,
    )


def _parse_selectors(values: Optional[List[str]]) -> Optional[List[Selector]]:
    if not values:
        return None
    return [Selector.parse(value) for value in values]


def run(args: argparse.Namespace) -> int:
    if not os.path.isfile(args.input):
        logger.error(f"Input file not found: {args.input}")
        return EXIT_USAGE
    if args.out and os.path.exists(args.out) and not args.overwrite:
        logger.error(f"Output file exists (use --overwrite): {args.out}")
        return EXIT_USAGE
    try:
        selectors = _parse_selectors(args.selector)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_USAGE

    tracker = create_error_tracker("cli")
    capabilities = Capabilities.default()
    rewriter = AssetRewriter(
        build_resolver(args, tracker, capabilities),
        RewriterConfig(mode=ExecutionMode(args.mode), cache_file_path=args.cache_file),
        capabilities,
    )

    with open(args.input, "r", encoding="utf-8") as f:
        html = f.read()

    start = time.perf_counter()
    try:
        result = rewriter.rewrite_html(html, selectors)
    except (FetchorawError, requests.RequestException, OSError, ValueError) as e:
        logger.error(f"Rewrite failed: {e}")
        return EXIT_RESOLVE_ERROR
    finally:
        capabilities.network.close()
    elapsed = time.perf_counter() - start

    if args.out:
        out_dir = os.path.dirname(args.out)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(result.html)
        logger.info(f"Wrote {args.out}")
    else:
        sys.stdout.write(result.html)
        sys.stdout.flush()

    if args.manifest:
        count = ManifestWriter(args.manifest).append(result.map)
        logger.info(f"Appended {count} manifest record(s) to {args.manifest}")

    summary = tracker.get_error_summary()
    if args.error_report and (summary["total_errors"] or summary["total_warnings"]):
        tracker.save_error_report(args.error_report)

    logger.info(
        "Finished in %.2fs (%d resolved, %d handled failure(s))",
        elapsed,
        len(result.map),
        summary["total_errors"],
    )
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    initialize_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
