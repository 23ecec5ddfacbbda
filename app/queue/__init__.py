"""
Scrape job queue exports.
"""

from app.queue.scrape_queue import JobProcessor, ScrapeQueue, build_target
from app.queue.state import JobState, QueueState, QueueStatus, ScrapeJob

__all__ = [
    "JobProcessor",
    "JobState",
    "QueueState",
    "QueueStatus",
    "ScrapeJob",
    "ScrapeQueue",
    "build_target",
]
