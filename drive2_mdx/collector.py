"""Walk the paginated logbook listing and gather post summaries."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from .config import ScraperConfig
from .content import extract_listing
from .errors import ExtractionError, NavigationError
from .fetcher import FetchClient
from .models import ListingPage, PostSummary
from .utils import page_url

logger = logging.getLogger("drive2_mdx")


class PostCollector:
    """Collect logbook cards from every listing page, in page order.

    The page count is read once from the first page. Later pages that fail for
    any reason contribute no posts; only a navigation failure on the first
    page propagates.
    """

    def __init__(self, client: FetchClient, config: ScraperConfig) -> None:
        self.client = client
        self.config = config

    async def _fetch_listing(self, url: str) -> ListingPage:
        return await self.client.fetch(url, extract_listing)

    async def collect(self, root_url: str) -> List[PostSummary]:
        try:
            first = await self._fetch_listing(root_url)
        except ExtractionError as exc:
            logger.error("Could not parse listing page %s: %s", root_url, exc)
            first = ListingPage(total_pages=1, posts=[])

        total_pages = max(1, first.total_pages)
        logger.info("Found %d page(s) of logbook posts", total_pages)
        posts: List[PostSummary] = list(first.posts)
        logger.info("Collected %d posts from page 1/%d", len(first.posts), total_pages)

        for number in range(2, total_pages + 1):
            await asyncio.sleep(self.config.page_delay)
            url = page_url(root_url, number)
            logger.info("Loading listing page %d/%d", number, total_pages)
            try:
                listing = await self._fetch_listing(url)
            except NavigationError as exc:
                logger.error("Skipping listing page %d: %s", number, exc)
                continue
            except ExtractionError as exc:
                logger.error("Could not parse listing page %d: %s", number, exc)
                continue
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unexpected error loading listing page %d", number)
                continue
            posts.extend(listing.posts)
            logger.info(
                "Collected %d posts from page %d/%d",
                len(listing.posts),
                number,
                total_pages,
            )

        return posts
