"""Utility helpers for filenames, dates, URLs and paths."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import FilesystemError

UNKNOWN_DATE = "unknown-date"

UNSAFE_FILENAME_PATTERN = re.compile(r'[/\\?%*:|"<>]')
ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
DOTTED_DATE_PATTERN = re.compile(r"(\d{2})\.(\d{2})\.(\d{4})")
LONG_DATE_PATTERN = re.compile(r"(\d{1,2})\s+([^\W\d_]+)\s+(\d{4})")

# Genitive month names as they appear in "19 января 2014 в 15:18".
MONTHS = {
    "января": "01",
    "февраля": "02",
    "марта": "03",
    "апреля": "04",
    "мая": "05",
    "июня": "06",
    "июля": "07",
    "августа": "08",
    "сентября": "09",
    "октября": "10",
    "ноября": "11",
    "декабря": "12",
}


def create_safe_filename(title: str, fallback: str = "untitled") -> str:
    """Replace characters that are unsafe in filenames with ``-``."""
    cleaned = UNSAFE_FILENAME_PATTERN.sub("-", title).strip()
    return cleaned or fallback


def format_date(value: Optional[str]) -> str:
    """Normalise a scraped date to ``YYYY-MM-DD`` or ``unknown-date``.

    Accepts ISO timestamps, ``DD.MM.YYYY`` and long Russian dates such as
    ``19 января 2014 в 15:18``.
    """
    if not value:
        return UNKNOWN_DATE
    text = value.strip()

    match = ISO_DATE_PATTERN.match(text)
    if match:
        return "-".join(match.groups())

    match = DOTTED_DATE_PATTERN.search(text)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month}-{day}"

    for match in LONG_DATE_PATTERN.finditer(text):
        day, month_name, year = match.groups()
        month = MONTHS.get(month_name.lower())
        if month:
            return f"{year}-{month}-{int(day):02d}"

    return UNKNOWN_DATE


def build_post_filename(title: str, date: Optional[str]) -> str:
    """Filename of a post document, e.g. ``2014-03-19 - Oil change.md``."""
    return f"{format_date(date)} - {create_safe_filename(title)}.md"


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) if missing."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create output directory {path}: {exc}") from exc
    return path


def is_http_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def origin_of(url: str, fallback: str) -> str:
    """Return ``scheme://host`` of an absolute URL, or ``fallback``."""
    if not is_http_url(url):
        return fallback
    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def page_url(root_url: str, page_number: int) -> str:
    """URL of a listing page, keeping any query the root URL already has."""
    parsed = urlsplit(root_url)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != "page"]
    query.append(("page", str(page_number)))
    return urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, urlencode(query), parsed.fragment)
    )
