"""Command-line entry point for the DRIVE2 Markdown exporter."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from playwright.async_api import async_playwright

from .config import ScraperConfig
from .errors import ScraperError
from .fetcher import FetchClient
from .pipeline import run_pipeline
from .utils import ensure_directory

logger = logging.getLogger("drive2_mdx.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return ("export", *argv)


def _add_browser_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--navigation-timeout",
        type=float,
        default=90.0,
        help="Seconds allowed for each navigation attempt",
    )
    parser.add_argument(
        "--page-timeout",
        type=float,
        default=120.0,
        help="Default timeout in seconds for other page operations",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=3,
        help="Navigation attempts per page before giving up",
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=3.0,
        help="Seconds to wait between navigation attempts",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window instead of running headless",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_export_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        help="URL of the DRIVE2 car page",
    )
    parser.add_argument(
        "-o",
        "--output",
        required=True,
        type=Path,
        help="Directory where Markdown files and progress are written",
    )
    parser.add_argument(
        "--page-delay",
        type=float,
        default=2.0,
        help="Seconds to wait before loading each further listing page",
    )
    parser.add_argument(
        "--post-delay",
        type=float,
        default=2.0,
        help="Seconds to wait before loading each post",
    )
    _add_browser_arguments(parser)


def _add_snapshot_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Page to render")
    parser.add_argument("destination", type=Path, help="File to write the rendered HTML to")
    _add_browser_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="drive2-mdx",
        description=(
            "Export a DRIVE2 car review and its logbook posts to Markdown files, "
            "resuming interrupted runs."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser(
        "export", help="Save the car review and every logbook post as Markdown"
    )
    _add_export_arguments(export_parser)

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Render a single page and save its HTML"
    )
    _add_snapshot_arguments(snapshot_parser)

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


def build_config(args: argparse.Namespace, output_root: Path) -> ScraperConfig:
    config = ScraperConfig(
        output_root=output_root,
        navigation_timeout=args.navigation_timeout,
        page_timeout=args.page_timeout,
        max_retries=args.retries,
        retry_delay=args.retry_delay,
        headless=not args.headful,
    )
    if hasattr(args, "page_delay"):
        config.page_delay = args.page_delay
        config.post_delay = args.post_delay
    return config


def _run_export(args: argparse.Namespace) -> int:
    config = build_config(args, Path(args.output).resolve())
    try:
        summary = asyncio.run(run_pipeline(args.input, config))
    except ScraperError as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # pylint: disable=broad-except
        logger.exception("Export of %s failed", args.input)
        return 1

    logger.info(
        "Finished in %.2fs (%d/%d posts saved, %d failed)",
        summary.total_seconds,
        summary.posts_saved,
        summary.posts_remaining,
        summary.posts_failed,
    )
    if summary.collection_failed:
        return 1
    return 0


async def _snapshot(url: str, destination: Path, config: ScraperConfig) -> None:
    async with async_playwright() as playwright:
        html = await FetchClient(playwright, config).fetch(url, lambda page_html, _base: page_html)
    ensure_directory(destination.parent)
    destination.write_text(html, encoding="utf-8")
    logger.info("Page saved to %s", destination)


def _run_snapshot(args: argparse.Namespace) -> int:
    destination = Path(args.destination).resolve()
    config = build_config(args, destination.parent)
    try:
        asyncio.run(_snapshot(args.url, destination, config))
    except (ScraperError, OSError) as exc:
        logger.error("Snapshot of %s failed: %s", args.url, exc)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "export":
        return _run_export(args)
    return _run_snapshot(args)


if __name__ == "__main__":
    sys.exit(main())
