"""
Admin endpoints: queue control, manual jobs, scheduler triggers and the
scrape attempt log.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_orchestrator
from app.domain.kol_tracking import AttemptOutcome, AttemptRecord, PlatformType
from app.queue.state import ScrapeJob
from app.schemas.admin import (
    EnqueuedCountResponse,
    EnqueueJobRequest,
    JobResponse,
    QueueActionResponse,
    QueueStatusResponse,
    RetryFailedRequest,
    RuleStatusResponse,
    SchedulerStatusResponse,
    ScrapeAttemptPageResponse,
    ScrapeAttemptResponse,
    SweepTriggerResponse,
    SystemStatsResponse,
)
from app.scheduler.jobs import FULL_SWEEP, HEALTH_SWEEP, PRIORITY_SWEEP
from app.scraping.errors import InvalidJobError, PlatformNotFoundError
from app.services.scrape_service import ScrapeOrchestrator

router = APIRouter(prefix="/admin", tags=["admin"])


def _job_response(job: ScrapeJob) -> JobResponse:
    return JobResponse(
        id=job.id,
        platform_id=job.target.platform_id,
        platform_type=job.target.platform_type.value,
        profile_url=job.target.profile_url,
        username=job.target.username,
        priority=job.priority,
        max_attempts=job.max_attempts,
        attempts_made=job.attempts_made,
        state=job.state.value,
        last_error=job.last_error,
        created_at=job.created_at,
        finished_at=job.finished_at,
    )


def _attempt_response(attempt: AttemptRecord) -> ScrapeAttemptResponse:
    return ScrapeAttemptResponse(
        id=attempt.id,
        platform_id=attempt.platform_id,
        platform=attempt.platform,
        outcome=attempt.outcome.value,
        error_message=attempt.error_message,
        duration_ms=attempt.duration_ms,
        started_at=attempt.started_at,
        metadata=attempt.metadata,
    )


def _queue_status(orchestrator: ScrapeOrchestrator) -> QueueStatusResponse:
    return QueueStatusResponse(**orchestrator.queue_status().as_dict())


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


@router.get("/queue/status", response_model=QueueStatusResponse)
async def get_queue_status(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> QueueStatusResponse:
    return _queue_status(orchestrator)


@router.post("/queue/pause", response_model=QueueActionResponse)
async def pause_queue(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> QueueActionResponse:
    orchestrator.pause_queue()
    return QueueActionResponse(message="Queue paused", status=_queue_status(orchestrator))


@router.post("/queue/resume", response_model=QueueActionResponse)
async def resume_queue(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> QueueActionResponse:
    orchestrator.resume_queue()
    return QueueActionResponse(message="Queue resumed", status=_queue_status(orchestrator))


@router.post("/queue/clear", response_model=QueueActionResponse)
async def clear_queue(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> QueueActionResponse:
    removed = orchestrator.clear_queue()
    return QueueActionResponse(
        message="Queue cleared",
        status=_queue_status(orchestrator),
        removed=removed,
    )


@router.post(
    "/queue/jobs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobResponse,
)
async def enqueue_job(
    payload: EnqueueJobRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    try:
        job = await orchestrator.enqueue_job(
            payload.platform_id,
            priority=payload.priority,
            delay=payload.delay_seconds,
            max_attempts=payload.max_attempts,
        )
    except PlatformNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidJobError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _job_response(job)


@router.get("/queue/jobs/failed", response_model=list[JobResponse])
async def list_failed_jobs(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> list[JobResponse]:
    return [_job_response(job) for job in orchestrator.failed_jobs()]


@router.get("/queue/jobs/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    job = orchestrator.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found.")
    return _job_response(job)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


@router.get("/scheduler/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> SchedulerStatusResponse:
    rules = {
        rule_id: RuleStatusResponse(**values)
        for rule_id, values in orchestrator.scheduler_status().items()
    }
    return SchedulerStatusResponse(rules=rules)


@router.post("/scheduler/trigger/full", response_model=SweepTriggerResponse)
async def trigger_full_sweep(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> SweepTriggerResponse:
    result = await orchestrator.trigger_full_sweep()
    return SweepTriggerResponse(rule=FULL_SWEEP, enqueued=result.enqueued, errors=result.errors)


@router.post("/scheduler/trigger/priority", response_model=SweepTriggerResponse)
async def trigger_priority_sweep(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> SweepTriggerResponse:
    result = await orchestrator.trigger_priority_sweep()
    return SweepTriggerResponse(rule=PRIORITY_SWEEP, enqueued=result.enqueued, errors=result.errors)


@router.post("/scheduler/trigger/health", response_model=SweepTriggerResponse)
async def trigger_health_sweep(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> SweepTriggerResponse:
    result = await orchestrator.trigger_health_sweep()
    return SweepTriggerResponse(rule=HEALTH_SWEEP, enqueued=result.enqueued, errors=result.errors)


@router.post("/retry-failed", response_model=EnqueuedCountResponse)
async def retry_failed(
    payload: RetryFailedRequest | None = None,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> EnqueuedCountResponse:
    hours = payload.hours if payload is not None else RetryFailedRequest().hours
    enqueued = await orchestrator.retry_failed_since(hours)
    return EnqueuedCountResponse(enqueued=enqueued)


# ---------------------------------------------------------------------------
# Scrape log and stats
# ---------------------------------------------------------------------------


@router.get("/logs/scrapes", response_model=ScrapeAttemptPageResponse)
async def list_scrape_attempts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    outcome: AttemptOutcome | None = Query(default=None, alias="status"),
    platform: PlatformType | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> ScrapeAttemptPageResponse:
    result = await orchestrator.recent_attempts(
        page=page,
        limit=limit,
        outcome=outcome,
        platform=platform,
        since=start_date,
        until=end_date,
    )
    return ScrapeAttemptPageResponse(
        items=[_attempt_response(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/stats", response_model=SystemStatsResponse)
async def get_system_stats(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> SystemStatsResponse:
    stats = await orchestrator.system_stats()
    return SystemStatsResponse(**stats)
