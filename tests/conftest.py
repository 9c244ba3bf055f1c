from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

import pytest
from playwright.async_api import Error as PlaywrightError

from drive2_mdx.config import ScraperConfig

CAR_URL = "https://www.drive2.ru/r/toyota/chaser/288230376151952785/"
ALWAYS = 10**6


class FakePage:
    def __init__(self, site: "FakeSite", options: Dict) -> None:
        self.site = site
        self.options = options
        self.default_timeout: Optional[float] = None
        self.html = ""

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def goto(self, url: str, wait_until: str = "load", timeout: float = 0) -> None:
        self.site.gotos.append((url, wait_until, timeout))
        remaining = self.site.failures.get(url, 0)
        if remaining:
            self.site.failures[url] = remaining - 1
            raise PlaywrightError(f"net::ERR_TIMED_OUT at {url}")
        if url not in self.site.pages:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.html = self.site.pages[url]

    async def set_content(self, html: str, wait_until: str = "load", timeout: float = 0) -> None:
        self.site.contents.append(html)
        self.html = html

    async def content(self) -> str:
        return self.html


class FakeBrowser:
    def __init__(self, site: "FakeSite", launch_options: Dict) -> None:
        self.site = site
        self.launch_options = launch_options
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self, **options) -> FakePage:
        page = FakePage(self.site, options)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeSite:
    """In-memory stand-in for ``Playwright`` serving canned HTML by URL."""

    def __init__(self) -> None:
        self.pages: Dict[str, str] = {}
        self.failures: Dict[str, int] = {}
        self.gotos: List[tuple] = []
        self.contents: List[str] = []
        self.browsers: List[FakeBrowser] = []
        self.broken_launches: Set[int] = set()
        self.launches = 0
        self.chromium = self

    async def launch(self, **options) -> FakeBrowser:
        self.launches += 1
        if self.launches in self.broken_launches:
            raise PlaywrightError("Browser closed unexpectedly")
        browser = FakeBrowser(self, options)
        self.browsers.append(browser)
        return browser

    def fail(self, url: str, times: int = ALWAYS) -> None:
        self.failures[url] = times

    def visits(self, url: str) -> int:
        return sum(1 for visited, _, _ in self.gotos if visited == url)


def serve(site: FakeSite):
    """Replacement for ``async_playwright`` that yields ``site``."""

    @asynccontextmanager
    async def fake_async_playwright():
        yield site

    return fake_async_playwright


def post_card(post_id: int, title: str, date_tooltip: str = "19 января 2014 в 15:18") -> str:
    return f"""
    <a class="x-box c-post-lcard" href="/l/{post_id}/">
      <img src="https://img.drive2.ru/{post_id}.jpg">
      <div class="c-post-lcard__caption">{title}</div>
      <div class="u-text-overflow x-secondary">Ремонт</div>
      <div class="c-post-lcard__meta">
        <div><i class="i-like-s"></i>12</div>
        <div><i class="i-comments-s"></i>3</div>
        <div data-tt="{date_tooltip}">19 янв</div>
        <div data-tt="Пробег: 250 000 км">250 000 км</div>
        <div>15 000 ₽</div>
      </div>
    </a>
    """


def car_page(
    cards: Sequence[str],
    total_pages: int = 1,
    review_html: str = "<p>Great <strong>car</strong></p>",
) -> str:
    pager = "".join(
        f'<a class="c-page-link" href="?page={n}">{n}</a>' for n in range(1, total_pages + 1)
    )
    if total_pages > 1:
        pager += '<a class="c-page-link" href="?page=2">Далее</a>'
    return f"""
    <html><body>
      <h1 class="x-title">Toyota Chaser</h1>
      <div itemprop="reviewBody">{review_html}</div>
      <div class="x-group-header">Паспортные данные</div>
      <ul class="list-compact"><li>Двигатель: 1JZ-GTE</li></ul>
      <div class="c-lb-list">{''.join(cards)}</div>
      <div class="c-pager">{pager}</div>
    </body></html>
    """


def post_page(title: str, body: str = "<p>Changed <em>oil</em>.</p>") -> str:
    return f"""
    <html><body>
      <h1 class="x-title">{title}</h1>
      <div class="x-tertiary x-secondary-color">19 января 2014</div>
      <div class="c-user-lcard">
        <a itemprop="url" href="/users/driver/"><span itemprop="name">Driver</span></a>
        <span itemprop="address" title="Москва, Россия"></span>
        <div class="c-user-lcard__cars">
          <a href="/r/toyota/chaser/1/">Toyota Chaser</a>
          <a href="https://www.drive2.ru/r/honda/2/">Honda Accord</a>
        </div>
      </div>
      <div class="c-post__cost">5 000 ₽</div>
      <div class="c-post__mileage">250 000 км</div>
      <div itemprop="articleBody">{body}
        <figure class="c-post__pic"><img src="https://img.drive2.ru/p1.jpg">
          <figcaption class="c-post__desc">Old filter</figcaption></figure>
      </div>
    </body></html>
    """


def post_link(post_id: int) -> str:
    return f"https://www.drive2.ru/l/{post_id}/"


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def config(tmp_path: Path) -> ScraperConfig:
    return ScraperConfig(
        output_root=tmp_path / "out",
        retry_delay=0,
        page_delay=0,
        post_delay=0,
    )


@pytest.fixture
def logbook(site: FakeSite):
    """Publish a single-page logbook with ``count`` posts on the fake site."""

    def publish(count: int) -> List[str]:
        cards = [post_card(n, f"Post {n}") for n in range(1, count + 1)]
        site.pages[CAR_URL] = car_page(cards)
        for n in range(1, count + 1):
            site.pages[post_link(n)] = post_page(f"Post {n}")
        return [post_link(n) for n in range(1, count + 1)]

    return publish
