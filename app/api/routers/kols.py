"""
KOL-facing endpoints: manual scrape trigger, KOL detail, metric history and
trending.
"""

from __future__ import annotations

from collections import defaultdict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_orchestrator
from app.domain.kol_tracking import PlatformType, SnapshotRecord
from app.schemas.metrics import (
    KolDetailResponse,
    KolMetricsResponse,
    KolScrapeResponse,
    PlatformDetailResponse,
    PlatformMetricsResponse,
    SnapshotResponse,
    TrendingKolResponse,
    TrendingResponse,
)
from app.scraping.errors import KolNotFoundError, PlatformNotFoundError
from app.services.metrics_service import TRENDING_WINDOW_DAYS, kol_growth, platform_growth
from app.services.scrape_service import ScrapeOrchestrator

router = APIRouter(prefix="/kols", tags=["kols"])


def _snapshot_response(snapshot: SnapshotRecord) -> SnapshotResponse:
    return SnapshotResponse(
        id=snapshot.id,
        platform_id=snapshot.platform_id,
        platform_type=snapshot.platform_type.value if snapshot.platform_type else None,
        captured_at=snapshot.captured_at,
        followers=snapshot.followers,
        following=snapshot.following,
        posts=snapshot.posts,
        likes=snapshot.likes,
        engagement_rate=snapshot.engagement_rate,
        avg_views=snapshot.avg_views,
        avg_likes=snapshot.avg_likes,
        avg_comments=snapshot.avg_comments,
        avg_shares=snapshot.avg_shares,
        additional_metrics=snapshot.additional_metrics,
    )


@router.get("/trending/week", response_model=TrendingResponse)
async def get_trending_this_week(
    limit: int = Query(default=10, ge=1, le=100),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> TrendingResponse:
    ranked = await orchestrator.trending_this_week(limit)
    return TrendingResponse(
        window_days=TRENDING_WINDOW_DAYS,
        items=[
            TrendingKolResponse(
                kol_id=item.kol_id,
                name=item.name,
                category=item.category,
                growth=item.growth,
                platforms_counted=item.platforms_counted,
            )
            for item in ranked
        ],
    )


@router.get("/platforms/{platform_id}/metrics", response_model=PlatformMetricsResponse)
async def get_platform_metrics(
    platform_id: int,
    days: int = Query(default=30, ge=1, le=3650),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> PlatformMetricsResponse:
    try:
        snapshots = await orchestrator.metrics_for_platform(platform_id, days)
    except PlatformNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return PlatformMetricsResponse(
        platform_id=platform_id,
        days=days,
        growth=platform_growth(snapshots),
        snapshots=[_snapshot_response(item) for item in snapshots],
    )


@router.post(
    "/{kol_id}/scrape",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=KolScrapeResponse,
)
async def trigger_kol_scrape(
    kol_id: int,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> KolScrapeResponse:
    try:
        enqueued = await orchestrator.trigger_for_kol(kol_id)
    except KolNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return KolScrapeResponse(kol_id=kol_id, enqueued=enqueued)


@router.get("/{kol_id}/metrics", response_model=KolMetricsResponse)
async def get_kol_metrics(
    kol_id: int,
    platform: PlatformType | None = Query(default=None),
    days: int = Query(default=30, ge=1, le=3650),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> KolMetricsResponse:
    try:
        snapshots = await orchestrator.metrics_for_kol(kol_id, days, platform)
    except KolNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    by_platform: dict[int, list[SnapshotRecord]] = defaultdict(list)
    for snapshot in snapshots:
        by_platform[snapshot.platform_id].append(snapshot)
    growth, _ = kol_growth(by_platform)

    return KolMetricsResponse(
        kol_id=kol_id,
        days=days,
        platform_type=platform.value if platform else None,
        growth=growth,
        snapshots=[_snapshot_response(item) for item in snapshots],
    )


@router.get("/{kol_id}", response_model=KolDetailResponse)
async def get_kol(
    kol_id: int,
    latest: int = Query(default=30, ge=1, le=500, description="Snapshots per platform"),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> KolDetailResponse:
    try:
        detail = await orchestrator.kol_detail(kol_id, latest)
    except KolNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return KolDetailResponse(
        id=detail.kol_id,
        name=detail.name,
        category=detail.category,
        is_active=detail.is_active,
        is_priority=detail.is_priority,
        platforms=[
            PlatformDetailResponse(
                id=item.platform.id,
                platform_type=item.platform.platform_type.value,
                username=item.platform.username,
                profile_url=item.platform.profile_url,
                is_verified=item.platform.is_verified,
                scrape_status=item.platform.scrape_status.value,
                last_scraped_at=item.platform.last_scraped_at,
                snapshots=[_snapshot_response(snapshot) for snapshot in item.snapshots],
            )
            for item in detail.platforms
        ],
    )
