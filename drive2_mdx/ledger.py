"""Durable record of finished work, stored as ``.progress.json``."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .config import LEDGER_FILENAME
from .errors import PersistenceError
from .models import PostSummary, ProcessedPost

logger = logging.getLogger("drive2_mdx")


class ProgressLedger:
    """Tracks whether the review is saved and which posts have documents.

    Every mutation is written to disk before it returns, so an interrupted run
    loses at most the unit of work that was in flight.
    """

    def __init__(self, output_dir: Path) -> None:
        self.path = Path(output_dir) / LEDGER_FILENAME
        self._review_complete = False
        self._posts: List[ProcessedPost] = []
        self._links: set[str] = set()

    def load(self) -> bool:
        """Read prior progress; a missing or corrupt file means a fresh start."""
        self._review_complete = False
        self._posts = []
        self._links = set()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Cannot read %s (%s); starting fresh", self.path, exc)
            return False

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("%s is corrupted (%s); starting fresh", self.path, exc)
            return False
        if not isinstance(data, dict):
            logger.warning("%s is not a JSON object; starting fresh", self.path)
            return False

        self._review_complete = data.get("reviewComplete") is True
        entries = data.get("processedPosts")
        for entry in entries if isinstance(entries, list) else []:
            record = self._parse_entry(entry)
            if record is None:
                logger.debug("Ignoring malformed ledger entry: %r", entry)
                continue
            if record.link not in self._links:
                self._links.add(record.link)
                self._posts.append(record)
        return True

    @staticmethod
    def _parse_entry(entry: Any) -> ProcessedPost | None:
        if not isinstance(entry, dict):
            return None
        link = entry.get("link")
        if not isinstance(link, str) or not link:
            return None
        return ProcessedPost(
            link=link,
            title=str(entry.get("title") or ""),
            file_name=str(entry.get("fileName") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reviewComplete": self._review_complete,
            "processedPosts": [
                {"link": post.link, "title": post.title, "fileName": post.file_name}
                for post in self._posts
            ],
        }

    def save(self) -> None:
        """Write the ledger through a temporary file and an atomic rename."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(
                json.dumps(self.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc

    def is_review_complete(self) -> bool:
        return self._review_complete

    def mark_review_complete(self) -> None:
        self._review_complete = True
        try:
            self.save()
        except PersistenceError:
            self._review_complete = False
            raise

    def is_post_processed(self, link: str) -> bool:
        return link in self._links

    def mark_post_processed(self, post: PostSummary, file_name: str) -> None:
        if post.link in self._links:
            return
        self._posts.append(ProcessedPost(link=post.link, title=post.title, file_name=file_name))
        self._links.add(post.link)
        try:
            self.save()
        except PersistenceError:
            self._posts.pop()
            self._links.discard(post.link)
            raise

    def link_for_file(self, file_name: str) -> str | None:
        """Link of the recorded post whose document is ``file_name``, if any."""
        for post in self._posts:
            if post.file_name == file_name:
                return post.link
        return None

    def filter_remaining(self, posts: Iterable[PostSummary]) -> List[PostSummary]:
        """Posts without a recorded document, in their original order."""
        return [post for post in posts if post.link not in self._links]

    def processed_count(self) -> int:
        return len(self._posts)

    @property
    def processed_posts(self) -> List[ProcessedPost]:
        return list(self._posts)
