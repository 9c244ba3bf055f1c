"""Markdown rendering for owner reviews and logbook posts."""

from __future__ import annotations

import re
from typing import List

from .models import PostRecord, ReviewRecord

REVIEW_HEADING = "Отзыв владельца"
REVIEW_FALLBACK = "Не удалось найти отзыв владельца."
PASSPORT_HEADING = "Паспортные данные"

_FLAGS = re.S | re.I

_PARAGRAPH = re.compile(r"<p(?:\s[^>]*)?>(.*?)</p>", _FLAGS)
_BREAK = re.compile(r"<br\s*/?>", re.I)
_BOLD = re.compile(r"<(strong|b)(?:\s[^>]*)?>(.*?)</\1>", _FLAGS)
_ITALIC = re.compile(r"<(em|i)(?:\s[^>]*)?>(.*?)</\1>", _FLAGS)
_STRIKE = re.compile(r"<(del|s|strike)(?:\s[^>]*)?>(.*?)</\1>", _FLAGS)
_FIGURE = re.compile(
    r"<figure[^>]*>(?:(?!</figure>).)*?<img[^>]*?\ssrc=\"([^\"]*)\""
    r"(?:(?!</figure>).)*?<figcaption[^>]*>(.*?)</figcaption>"
    r"(?:(?!</figure>).)*?</figure>",
    _FLAGS,
)
_ANCHOR = re.compile(r"<a\s[^>]*?href=\"([^\"]*)\"[^>]*>(.*?)</a>", _FLAGS)
_LIST_ITEM = re.compile(r"<li(?:\s[^>]*)?>(.*?)</li>", _FLAGS)
_LIST_OPEN = re.compile(r"<(?:ul|ol)(?:\s[^>]*)?>", re.I)
_LIST_CLOSE = re.compile(r"</(?:ul|ol)>", re.I)
_TAG = re.compile(r"<[^>]*>")
_BLANK_RUNS = re.compile(r"\n{3,}")
_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*:", re.I)

# Decoded in this order, so "&amp;lt;" ends up as "<".
_ENTITIES = [
    ("&nbsp;", " "),
    # BeautifulSoup's decode_contents() has already turned &nbsp; into U+00A0.
    ("\xa0", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
]


def resolve_url(href: str, base_url: str) -> str:
    """Make a relative href absolute against the site origin."""
    if not href:
        return base_url
    if _SCHEME.match(href) or href.startswith("#"):
        return href
    base = base_url.rstrip("/")
    if href.startswith("/"):
        return f"{base}{href}"
    return f"{base}/{href}"


def _figure_to_markdown(match: re.Match[str]) -> str:
    src, caption = match.group(1), match.group(2).strip()
    if not caption:
        return f"\n\n![]({src})\n\n"
    return f"\n\n![{caption}]({src})\n*{caption}*\n\n"


def convert_html_to_markdown(html: str, base_url: str) -> str:
    """Convert a post or review HTML fragment to Markdown."""

    def _anchor(match: re.Match[str]) -> str:
        href, text = match.group(1), match.group(2)
        if href:
            href = resolve_url(href, base_url)
        return f"[{text}]({href})"

    text = _PARAGRAPH.sub(r"\1\n\n", html)
    text = _BREAK.sub("\n", text)
    text = _BOLD.sub(r"**\2**", text)
    text = _ITALIC.sub(r"*\2*", text)
    text = _STRIKE.sub(r"~~\2~~", text)
    text = _FIGURE.sub(_figure_to_markdown, text)
    text = _ANCHOR.sub(_anchor, text)
    text = _LIST_ITEM.sub(r"- \1\n", text)
    text = _LIST_OPEN.sub("", text)
    text = _LIST_CLOSE.sub("\n", text)
    text = _TAG.sub("", text)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def render_review(review: ReviewRecord) -> str:
    """Generate the ``Home.md`` document for an owner review."""
    sections: List[str] = [f"# {review.title}"]

    body = convert_html_to_markdown(review.review_body_html, review.base_url)
    sections.append(f"## {REVIEW_HEADING}\n\n{body or REVIEW_FALLBACK}")

    if review.passport_html:
        passport = convert_html_to_markdown(review.passport_html, review.base_url)
        sections.append(f"## {PASSPORT_HEADING}\n\n{passport}")

    return "\n\n".join(sections) + "\n"


def render_post(post: PostRecord) -> str:
    """Generate the Markdown document for a single logbook post."""
    sections: List[str] = [f"# {post.title}"]

    if post.publication_date:
        sections.append(f"*Published: {post.publication_date}*")

    author = post.author
    byline = [f"**Author:** [{author.name}]({resolve_url(author.url, post.base_url)})"]
    if author.location:
        byline.append(f"**Location:** {author.location}")
    if author.cars:
        cars = ", ".join(
            f"[{car.name}]({resolve_url(car.url, post.base_url)})" for car in author.cars
        )
        byline.append(f"**Cars:** {cars}")
    sections.append("\n".join(byline))

    sections.append("---")

    details = [value for value in (post.metadata.cost, post.metadata.mileage) if value]
    if details:
        bullets = "\n".join(f"* {value}" for value in details)
        sections.append(f"## Metadata\n\n{bullets}")

    content = convert_html_to_markdown(post.content_html, post.base_url)
    sections.append(f"## Content\n\n{content}".rstrip())

    return "\n\n".join(sections) + "\n"
