"""Configuration objects and constants for the scraper."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

DEFAULT_BASE_URL = "https://www.drive2.ru"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)
DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]
DEFAULT_EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Cache-Control": "max-age=0",
}

REVIEW_FILENAME = "Home.md"
LEDGER_FILENAME = ".progress.json"


@dataclass
class ScraperConfig:
    """Top-level settings that control fetching, pacing and output.

    Timeouts and delays are expressed in seconds.
    """

    output_root: Path
    navigation_timeout: float = 90.0
    page_timeout: float = 120.0
    max_retries: int = 3
    retry_delay: float = 3.0
    page_delay: float = 2.0
    post_delay: float = 2.0
    wait_until: str = "domcontentloaded"
    headless: bool = True
    browser_args: List[str] = field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_EXTRA_HEADERS)
    )
    default_base_url: str = DEFAULT_BASE_URL
