"""Command-line entry point for page-fetch."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from typing import Sequence

from .config import DEFAULT_CONCURRENCY, DEFAULT_OUTPUT, FetchConfig
from .crawler import read_urls, run_fetcher
from .errors import ConfigurationError, PageFetchError

logger = logging.getLogger("page_fetch.cli")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the page-fetch flags."""
    parser = argparse.ArgumentParser(
        prog="page-fetch",
        usage="page-fetch [options] < urls.txt",
        description="Request URLs using headless Chrome, storing the results",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Concurrency level (default {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "-i",
        "--include",
        action="append",
        default=[],
        metavar="STRING",
        help="Only save requests matching the provided string (can be specified multiple times)",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="STRING",
        help="Do not save responses matching the provided string (can be specified multiple times)",
    )
    parser.add_argument(
        "-j",
        "--javascript",
        default=None,
        metavar="STRING",
        help="JavaScript to run on each page",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=DEFAULT_OUTPUT,
        help=f"Output directory name (default '{DEFAULT_OUTPUT}')",
    )
    parser.add_argument(
        "-w",
        "--overwrite",
        action="store_true",
        help="Overwrite output files when they already exist",
    )
    parser.add_argument(
        "--no-third-party",
        action="store_true",
        help="Do not save responses to requests on third-party domains",
    )
    parser.add_argument(
        "--third-party",
        action="store_true",
        help="Only save responses to requests on third-party domains",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def parse_config(argv: Sequence[str] | None = None) -> tuple[FetchConfig, bool]:
    """Parse flags into a validated config; exits on invalid combinations."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = FetchConfig(
            concurrency=args.concurrency,
            includes=tuple(args.include),
            excludes=tuple(args.exclude),
            third_party_only=args.third_party,
            no_third_party=args.no_third_party,
            overwrite=args.overwrite,
            output=args.output,
            javascript=args.javascript,
        )
    except ConfigurationError as exc:
        parser.error(str(exc))
    return config, args.verbose


def main(argv: Sequence[str] | None = None) -> None:
    """Read URLs from stdin and capture the traffic of each page."""
    config, verbose = parse_config(argv)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    overall_start = time.perf_counter()
    try:
        stats = asyncio.run(run_fetcher(read_urls(sys.stdin), config))
    except PageFetchError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    total_elapsed = time.perf_counter() - overall_start

    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        stats.succeeded,
        stats.total,
        stats.failed,
    )


if __name__ == "__main__":
    main()
