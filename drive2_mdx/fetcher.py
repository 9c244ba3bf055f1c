"""Render pages with Playwright and run an extraction callback on them."""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Playwright
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .config import ScraperConfig
from .errors import ExtractionError, NavigationError
from .utils import is_http_url, origin_of

logger = logging.getLogger("drive2_mdx")

T = TypeVar("T")
Extractor = Callable[[str, str], T]


def describe_target(target: str) -> str:
    """Short label for log messages; raw HTML is not echoed."""
    if is_http_url(target):
        return target
    return f"<inline html, {len(target)} chars>"


class FetchClient:
    """Load one page per call in a fresh browser, retrying navigation.

    The extraction callback receives the rendered HTML and the base URL used
    to resolve relative links.
    """

    def __init__(self, playwright: Playwright, config: ScraperConfig) -> None:
        self.playwright = playwright
        self.config = config

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.max_retries)),
            wait=wait_fixed(self.config.retry_delay),
            retry=retry_if_exception_type(PlaywrightError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )

    async def _load(self, page: Page, target: str) -> str:
        timeout_ms = self.config.navigation_timeout * 1000
        if is_http_url(target):
            await page.goto(target, wait_until=self.config.wait_until, timeout=timeout_ms)
        else:
            await page.set_content(target, wait_until=self.config.wait_until, timeout=timeout_ms)
        return await page.content()

    async def _navigate(self, page: Page, target: str) -> str:
        label = describe_target(target)
        try:
            async for attempt in self._retrying():
                with attempt:
                    logger.info(
                        "Loading %s (attempt %d/%d)",
                        label,
                        attempt.retry_state.attempt_number,
                        self.config.max_retries,
                    )
                    html = await self._load(page, target)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            raise NavigationError(
                label, exc.last_attempt.attempt_number, last_error
            ) from last_error
        return html

    async def fetch(
        self,
        target: str,
        extract: Extractor[T],
        base_url: Optional[str] = None,
    ) -> T:
        """Render ``target`` (a URL or raw HTML) and return ``extract(html, base_url)``."""
        if base_url is None:
            base_url = origin_of(target, self.config.default_base_url)

        browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            args=list(self.config.browser_args),
        )
        try:
            page = await browser.new_page(
                user_agent=self.config.user_agent,
                extra_http_headers=dict(self.config.extra_headers),
            )
            page.set_default_timeout(self.config.page_timeout * 1000)
            html = await self._navigate(page, target)
            try:
                return extract(html, base_url)
            except Exception as exc:  # pylint: disable=broad-except
                raise ExtractionError(describe_target(target), exc) from exc
        finally:
            await browser.close()
