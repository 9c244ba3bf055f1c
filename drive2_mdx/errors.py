"""Exception types raised by the scraper."""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for scraper failures."""


class NavigationError(ScraperError):
    """A page could not be loaded after exhausting all attempts."""

    def __init__(
        self,
        target: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Failed to load {target} after {attempts} attempt(s){detail}"
        )


class ExtractionError(ScraperError):
    """The rendered page could not be turned into a record."""

    def __init__(self, target: str, cause: BaseException) -> None:
        self.target = target
        self.cause = cause
        super().__init__(f"Failed to extract data from {target}: {cause}")


class PersistenceError(ScraperError):
    """The progress ledger could not be written."""


class FilesystemError(ScraperError):
    """The output directory could not be prepared."""
