"""Data models used throughout the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ReviewRecord:
    """Owner review extracted from the car's root page."""

    title: str
    review_body_html: str
    passport_html: str
    base_url: str


@dataclass
class PostSummary:
    """Logbook card discovered on a listing page; ``link`` is its identity."""

    title: str
    link: str
    category: str = ""
    image_url: Optional[str] = None
    likes: Optional[str] = None
    comments: Optional[str] = None
    date: Optional[str] = None
    price: Optional[str] = None
    mileage: Optional[str] = None


@dataclass
class ListingPage:
    """Everything extracted from one listing page."""

    total_pages: int
    posts: List[PostSummary]


@dataclass
class AuthorCar:
    name: str
    url: str


@dataclass
class Author:
    name: str
    url: str = ""
    location: str = ""
    cars: List[AuthorCar] = field(default_factory=list)


@dataclass
class PostMetadata:
    cost: str = ""
    mileage: str = ""


@dataclass
class PostImage:
    src: str
    caption: str = ""


@dataclass
class PostRecord:
    """Full logbook post extracted from its own page."""

    title: str
    publication_date: str
    author: Author
    content_html: str
    metadata: PostMetadata
    images: List[PostImage]
    base_url: str


@dataclass(frozen=True)
class ProcessedPost:
    """Ledger entry for a post whose document has been written."""

    link: str
    title: str
    file_name: str
