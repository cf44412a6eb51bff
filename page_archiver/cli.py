"""Command-line entry point for the page archiver."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .config import ArchiveConfig
from .errors import PageArchiverError
from .pipeline import ArchivePipeline, archive_to_file

logger = logging.getLogger("page_archiver.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("archive", *argv)


def _add_archive_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Address of the page to archive")
    parser.add_argument(
        "--output",
        default="scraped-site.zip",
        type=Path,
        help="Path of the ZIP archive to write",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Navigation timeout in seconds (default: 60)",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=0.0,
        help="Seconds to wait after network idle before reading the page",
    )
    parser.add_argument(
        "--max-images",
        type=int,
        default=None,
        help="Maximum number of distinct images to download (default: 20)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Number of images fetched in parallel",
    )
    parser.add_argument(
        "--image-timeout",
        type=float,
        default=15.0,
        help="Per-image request timeout in seconds",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_serve_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port to listen on (default: $PORT or 3000)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render a web page via Playwright and package its text and images as a ZIP archive.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    archive_parser = subparsers.add_parser(
        "archive", help="Archive a single page to a ZIP file"
    )
    _add_archive_arguments(archive_parser)

    serve_parser = subparsers.add_parser(
        "serve", help="Serve the archive endpoint over HTTP"
    )
    _add_serve_arguments(serve_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_config(args: argparse.Namespace) -> ArchiveConfig:
    config = ArchiveConfig.from_env()
    if args.timeout is not None:
        config.navigation_timeout = args.timeout
    if args.max_images is not None:
        config.max_images = args.max_images
    config.wait_after_load = args.wait
    config.image_concurrency = args.concurrency
    config.image_timeout = args.image_timeout
    return config


def _run_archive(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    pipeline = ArchivePipeline(build_config(args))
    output = Path(args.output).resolve()
    try:
        result = asyncio.run(archive_to_file(pipeline, args.url, output))
    except PageArchiverError as exc:
        logger.error("%s", exc)
        return 1

    logger.info(
        "Saved %s (%d entries, %d/%d images) in %.2fs",
        output,
        len(result.entries),
        result.images_written,
        result.images_attempted,
        result.total_seconds,
    )
    if args.verbose:
        for url in result.failed_images:
            logger.debug("Missing image: %s", url)
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .web import app

    _configure_logging(args.verbose)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "archive":
        status = _run_archive(args)
    else:
        status = _run_serve(args)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
