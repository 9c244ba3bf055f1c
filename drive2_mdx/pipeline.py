"""High-level orchestration: review, listing, then one document per post."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from playwright.async_api import async_playwright

from .collector import PostCollector
from .config import REVIEW_FILENAME, ScraperConfig
from .content import extract_post, extract_review
from .errors import NavigationError, ScraperError
from .fetcher import FetchClient
from .ledger import ProgressLedger
from .markdown import render_post, render_review
from .models import PostSummary
from .utils import build_post_filename, ensure_directory

logger = logging.getLogger("drive2_mdx")


@dataclass
class RunSummary:
    """Outcome of a single pipeline run."""

    source_url: str
    output_dir: Path
    review_saved: bool = False
    review_skipped: bool = False
    collection_failed: bool = False
    posts_found: int = 0
    posts_remaining: int = 0
    posts_saved: int = 0
    posts_failed: int = 0
    duplicates_skipped: int = 0
    saved_files: List[str] = field(default_factory=list)
    total_seconds: float = 0.0


def write_document(path: Path, markdown: str) -> None:
    path.write_text(markdown, encoding="utf-8")
    logger.info("Saved Markdown to %s", path)


class Pipeline:
    """Run the review, listing and per-post steps for one output directory."""

    def __init__(self, client: FetchClient, config: ScraperConfig) -> None:
        self.client = client
        self.config = config
        self.output_dir = Path(config.output_root)
        self.ledger = ProgressLedger(self.output_dir)
        self.collector = PostCollector(client, config)

    async def _save_review(self, source_url: str, summary: RunSummary) -> None:
        if self.ledger.is_review_complete():
            logger.info("Car review already extracted, skipping")
            summary.review_skipped = True
            return

        logger.info("Extracting car review from %s", source_url)
        try:
            review = await self.client.fetch(source_url, extract_review)
            write_document(self.output_dir / REVIEW_FILENAME, render_review(review))
            self.ledger.mark_review_complete()
        except (ScraperError, OSError) as exc:
            logger.error("Error extracting car review from %s: %s", source_url, exc)
            logger.info("Continuing with logbook posts")
            return
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error extracting car review from %s", source_url)
            return
        summary.review_saved = True

    async def _save_post(self, post: PostSummary) -> str:
        file_name = build_post_filename(post.title, post.date)
        owner = self.ledger.link_for_file(file_name)
        if owner is not None and owner != post.link:
            logger.warning(
                "%s already holds post %s; overwriting it with %s",
                file_name,
                owner,
                post.link,
            )
        record = await self.client.fetch(post.link, extract_post)
        write_document(self.output_dir / file_name, render_post(record))
        self.ledger.mark_post_processed(post, file_name)
        return file_name

    async def run(self, source_url: str) -> RunSummary:
        start = time.perf_counter()
        ensure_directory(self.output_dir)
        logger.info("Output directory: %s", self.output_dir)
        summary = RunSummary(source_url=source_url, output_dir=self.output_dir)

        if self.ledger.load() and self.ledger.processed_count():
            logger.info(
                "Resuming from previous progress, %d posts already processed",
                self.ledger.processed_count(),
            )
        else:
            logger.info("Starting fresh extraction")

        await self._save_review(source_url, summary)

        logger.info("Collecting logbook posts")
        try:
            posts = await self.collector.collect(source_url)
        except NavigationError as exc:
            logger.error("Cannot load the logbook listing: %s", exc)
            summary.collection_failed = True
            summary.total_seconds = time.perf_counter() - start
            return summary

        remaining = self.ledger.filter_remaining(posts)
        summary.posts_found = len(posts)
        summary.posts_remaining = len(remaining)
        logger.info("Found %d posts, %d remaining to process", len(posts), len(remaining))

        attempted: Set[str] = set()
        for index, post in enumerate(remaining, start=1):
            if post.link in attempted or self.ledger.is_post_processed(post.link):
                logger.debug("Skipping duplicate listing entry %s", post.link)
                summary.duplicates_skipped += 1
                continue
            attempted.add(post.link)

            logger.info("Processing post %d/%d: %s", index, len(remaining), post.title)
            await asyncio.sleep(self.config.post_delay)
            try:
                file_name = await self._save_post(post)
            except (ScraperError, OSError) as exc:
                logger.error("Error processing post %r (%s): %s", post.title, post.link, exc)
                summary.posts_failed += 1
                continue
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unexpected error processing post %r (%s)", post.title, post.link)
                summary.posts_failed += 1
                continue
            summary.posts_saved += 1
            summary.saved_files.append(file_name)

        summary.total_seconds = time.perf_counter() - start
        return summary


async def run_pipeline(
    source_url: str,
    config: ScraperConfig,
    client: Optional[FetchClient] = None,
) -> RunSummary:
    """Export the review and logbook of ``source_url`` into ``config.output_root``."""
    if client is not None:
        return await Pipeline(client, config).run(source_url)
    async with async_playwright() as playwright:
        return await Pipeline(FetchClient(playwright, config), config).run(source_url)
