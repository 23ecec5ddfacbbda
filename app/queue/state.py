"""
app/queue/state.py

In-memory bookkeeping for the scrape job queue.

``QueueState`` owns every job the queue knows about: the waiting set, the
active map, the set of platforms with an in-flight job, retained failed jobs
and the completed counter. ``ScrapeQueue`` is the only writer; status reads
are computed from this object at call time.
"""

from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.domain.kol_tracking import ScrapeTarget


class JobState(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScrapeJob:
    """
    One unit of scrape work. Mutable: the queue updates it as it moves
    through waiting -> active -> (waiting again on retry) -> completed/failed.
    """

    target: ScrapeTarget
    priority: int
    max_attempts: int
    available_at: float
    sequence: int
    remove_on_complete: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts_made: int = 0
    state: JobState = JobState.WAITING
    last_error: str | None = None
    result: Any = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "platform_id": self.target.platform_id,
            "platform_type": self.target.platform_type.value,
            "profile_url": self.target.profile_url,
            "username": self.target.username,
            "priority": self.priority,
            "max_attempts": self.max_attempts,
            "attempts_made": self.attempts_made,
            "state": self.state.value,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass(frozen=True)
class QueueStatus:
    waiting: int
    active: int
    completed: int
    failed: int
    paused: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "waiting": self.waiting,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
            "paused": self.paused,
        }


class QueueState:
    def __init__(self) -> None:
        self._sequence = itertools.count()
        self._waiting: dict[str, ScrapeJob] = {}
        self._active: dict[str, ScrapeJob] = {}
        self._active_platforms: set[int] = set()
        self._failed: dict[str, ScrapeJob] = {}
        self._completed: dict[str, ScrapeJob] = {}
        self._completed_count = 0
        self.paused = False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def next_sequence(self) -> int:
        return next(self._sequence)

    def add_waiting(self, job: ScrapeJob) -> None:
        job.state = JobState.WAITING
        self._waiting[job.id] = job

    def pop_eligible(self, now: float) -> ScrapeJob | None:
        """
        Move the best eligible waiting job to active and return it.

        Eligible means the delay has elapsed and the job's platform has no
        active job. Best means lowest ``(priority, sequence)``.
        """

        candidates = [
            job
            for job in self._waiting.values()
            if job.available_at <= now and job.target.platform_id not in self._active_platforms
        ]
        if not candidates:
            return None

        job = min(candidates, key=lambda item: (item.priority, item.sequence))
        del self._waiting[job.id]
        job.state = JobState.ACTIVE
        job.attempts_made += 1
        self._active[job.id] = job
        self._active_platforms.add(job.target.platform_id)
        return job

    def seconds_until_eligible(self, now: float) -> float | None:
        """
        Seconds until the next delayed job becomes eligible, or None when no
        delayed job is waiting. Jobs blocked by an active platform are woken by
        ``release`` instead.
        """

        pending = [
            job.available_at - now
            for job in self._waiting.values()
            if job.available_at > now and job.target.platform_id not in self._active_platforms
        ]
        if not pending:
            return None
        return max(0.0, min(pending))

    def release(self, job_id: str) -> ScrapeJob:
        job = self._active.pop(job_id, None)
        if job is None:
            raise KeyError(f"Job {job_id} is not active")
        self._active_platforms.discard(job.target.platform_id)
        return job

    def requeue(self, job: ScrapeJob, *, available_at: float) -> None:
        """Put a released job back into the waiting set behind its tier peers."""

        job.available_at = available_at
        job.sequence = self.next_sequence()
        self.add_waiting(job)

    def record_completed(self, job: ScrapeJob, *, result: Any, finished_at: datetime) -> None:
        job.state = JobState.COMPLETED
        job.result = result
        job.finished_at = finished_at
        self._completed_count += 1
        if not job.remove_on_complete:
            self._completed[job.id] = job

    def record_failed(self, job: ScrapeJob, *, error: str, finished_at: datetime) -> None:
        job.state = JobState.FAILED
        job.last_error = error
        job.finished_at = finished_at
        self._failed[job.id] = job

    def clear_waiting(self) -> int:
        removed = len(self._waiting)
        self._waiting.clear()
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, job_id: str) -> ScrapeJob | None:
        for bucket in (self._active, self._waiting, self._failed, self._completed):
            job = bucket.get(job_id)
            if job is not None:
                return job
        return None

    def failed_jobs(self) -> list[ScrapeJob]:
        return sorted(self._failed.values(), key=lambda job: job.finished_at or job.created_at)

    def waiting_jobs(self) -> list[ScrapeJob]:
        return sorted(self._waiting.values(), key=lambda job: (job.priority, job.sequence))

    def is_platform_active(self, platform_id: int) -> bool:
        return platform_id in self._active_platforms

    @property
    def is_idle(self) -> bool:
        return not self._waiting and not self._active

    def counts(self) -> QueueStatus:
        return QueueStatus(
            waiting=len(self._waiting),
            active=len(self._active),
            completed=self._completed_count,
            failed=len(self._failed),
            paused=self.paused,
        )
