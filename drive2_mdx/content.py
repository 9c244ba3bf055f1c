"""HTML extraction for the car page, logbook listings and logbook posts."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .models import (
    Author,
    AuthorCar,
    ListingPage,
    PostImage,
    PostMetadata,
    PostRecord,
    PostSummary,
    ReviewRecord,
)

logger = logging.getLogger("drive2_mdx")

PASSPORT_HEADER = "Паспортные данные"

# Tooltip heuristics for listing card metadata. Both dates and mileage can sit
# behind a ``data-tt`` attribute, so classification is best effort only.
_TOOLTIP_DATE = re.compile(r"[а-яё]+ \d{4}|^\d{1,2} [а-яё]+ \d{4}|\d{2}\.\d{2}\.\d{4}", re.I)
_TOOLTIP_MILEAGE = re.compile(r"миль|км", re.I)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _text(element: Optional[Tag], default: str = "") -> str:
    if element is None:
        return default
    return element.get_text().strip() or default


def _inner_html(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return element.decode_contents()


def _absolute(href: str, base_url: str) -> str:
    if href.startswith("/"):
        return f"{base_url.rstrip('/')}{href}"
    return href


def extract_review(html: str, base_url: str) -> ReviewRecord:
    """Build the owner review record from a rendered car page."""
    soup = _soup(html)
    title = _text(soup.select_one("h1.x-title"), "Unknown Car")
    review_body = _inner_html(soup.select_one('div[itemprop="reviewBody"]'))

    passport_html = ""
    for header in soup.select(".x-group-header"):
        if header.get_text().strip() != PASSPORT_HEADER:
            continue
        sibling = header.find_next_sibling()
        if sibling is not None and "list-compact" in (sibling.get("class") or []):
            passport_html = _inner_html(sibling)
        break

    return ReviewRecord(
        title=title,
        review_body_html=review_body,
        passport_html=passport_html,
        base_url=base_url,
    )


def count_pages(soup: BeautifulSoup) -> int:
    """Highest page number advertised by the pagination links, at least 1."""
    numbers: List[int] = []
    for link in soup.select("a.c-page-link"):
        try:
            numbers.append(int(link.get_text().strip()))
        except ValueError:
            continue
    return max(numbers) if numbers else 1


def _classify_meta(element: Tag, metadata: Dict[str, str]) -> None:
    if element.select_one(".i-like-s") is not None:
        metadata["likes"] = element.get_text().strip()
    elif element.select_one(".i-comments-s") is not None:
        metadata["comments"] = element.get_text().strip()
    elif element.has_attr("data-tt"):
        tooltip = element["data-tt"]
        is_mileage = bool(_TOOLTIP_MILEAGE.search(tooltip))
        if _TOOLTIP_DATE.search(tooltip) and not is_mileage:
            metadata["date"] = tooltip
        elif is_mileage:
            metadata["mileage"] = element.get_text().strip()
    elif "₽" in element.get_text():
        metadata["price"] = element.get_text().strip()
    else:
        title = element.get("title") or ""
        if "миля" in title or "км" in title:
            metadata["mileage"] = element.get_text().strip()


def _extract_card(card: Tag, base_url: str) -> Optional[PostSummary]:
    href = card.get("href")
    if not href:
        logger.debug("Skipping logbook card without a link")
        return None

    metadata: Dict[str, str] = {}
    for element in card.select(".c-post-lcard__meta > div"):
        _classify_meta(element, metadata)

    image = card.find("img")
    return PostSummary(
        title=_text(card.select_one(".c-post-lcard__caption")),
        link=_absolute(href, base_url),
        category=_text(card.select_one(".u-text-overflow.x-secondary")),
        image_url=image.get("src") if image is not None else None,
        **metadata,
    )


def extract_listing(html: str, base_url: str) -> ListingPage:
    """Pagination size and logbook cards of one listing page."""
    soup = _soup(html)
    posts: List[PostSummary] = []
    container = soup.select_one(".c-lb-list")
    if container is not None:
        for card in container.select(".x-box.c-post-lcard"):
            summary = _extract_card(card, base_url)
            if summary is not None:
                posts.append(summary)
    return ListingPage(total_pages=count_pages(soup), posts=posts)


def extract_post(html: str, base_url: str) -> PostRecord:
    """Build a post record from a rendered logbook post page."""
    soup = _soup(html)

    author_card = soup.select_one(".c-user-lcard")
    author = Author(name="Unknown Author")
    if author_card is not None:
        name_tag = author_card.select_one('span[itemprop="name"]')
        url_tag = author_card.select_one('a[itemprop="url"]')
        address_tag = author_card.select_one('span[itemprop="address"]')
        author = Author(
            name=name_tag.get_text() if name_tag is not None else "Unknown Author",
            url=(url_tag.get("href") or "") if url_tag is not None else "",
            location=(address_tag.get("title") or "") if address_tag is not None else "",
            cars=[
                AuthorCar(name=car.get_text().strip(), url=car.get("href") or "")
                for car in author_card.select(".c-user-lcard__cars a")
            ],
        )

    images: List[PostImage] = []
    for picture in soup.select(".c-post__pic"):
        img = picture.find("img")
        images.append(
            PostImage(
                src=(img.get("src") or "") if img is not None else "",
                caption=_text(picture.select_one(".c-post__desc")),
            )
        )

    return PostRecord(
        title=_text(soup.select_one("h1.x-title"), "Unknown Title"),
        publication_date=_text(soup.select_one(".x-tertiary.x-secondary-color")),
        author=author,
        content_html=_inner_html(soup.select_one('div[itemprop="articleBody"]')),
        metadata=PostMetadata(
            cost=_text(soup.select_one(".c-post__cost")),
            mileage=_text(soup.select_one(".c-post__mileage")),
        ),
        images=images,
        base_url=base_url,
    )
