"""
Error taxonomy for the scrape orchestration core.

Field-level extraction misses never raise; readers fall back to defaults.
Attempt-level failures propagate to the queue, which owns retry policy.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for scrape orchestration failures."""

    retryable: bool = True


class InvalidJobError(ScrapeError):
    """Raised when a job payload is malformed. Never retried."""

    retryable = False


class InitError(ScrapeError):
    """Raised when a browser session cannot be created or prepared."""


class NavigationError(ScrapeError):
    """Raised when a profile page could not be loaded within the attempt budget."""

    def __init__(self, message: str, *, url: str, attempts: int, timed_out: bool = False) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts
        self.timed_out = timed_out


class ExtractionError(ScrapeError):
    """Raised when the loaded document cannot be read at all."""


class CancelledScrapeError(ScrapeError):
    """Recorded when a running job is cancelled, e.g. by a non-waiting shutdown."""

    retryable = False


class PersistenceError(ScrapeError):
    """Raised by storage adapters when a write fails. Logged, never fatal."""


class KolNotFoundError(LookupError):
    """Raised when a manual trigger or metrics read names an unknown KOL."""

    def __init__(self, kol_id: int) -> None:
        super().__init__(f"KOL {kol_id} not found")
        self.kol_id = kol_id


class PlatformNotFoundError(LookupError):
    """Raised when a manual enqueue or metrics read names an unknown platform."""

    def __init__(self, platform_id: int) -> None:
        super().__init__(f"Platform {platform_id} not found")
        self.platform_id = platform_id
