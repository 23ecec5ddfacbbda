from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from typing import Any

from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A PostgreSQL URL must be configured (DATABASE_URL or LOCAL_DATABASE_URL).
    - Every sweep schedule must be a valid five-field crontab expression.
    - Proxy credentials require PROXY_URL.
    """

    from app.config import get_proxy_settings, get_schedule_settings
    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))

    # --- Sweep schedules ------------------------------------------------
    schedule = get_schedule_settings()
    for name, expression in (
        ("SCRAPE_SCHEDULE", schedule.full_sweep_cron),
        ("PRIORITY_SCRAPE_SCHEDULE", schedule.priority_sweep_cron),
        ("HEALTH_CHECK_SCHEDULE", schedule.health_sweep_cron),
    ):
        try:
            CronTrigger.from_crontab(expression, timezone=schedule.timezone)
        except ValueError as exc:
            errors.append(f"{name}='{expression}' is not a valid crontab expression: {exc}")

    # --- Proxy ----------------------------------------------------------
    proxy = get_proxy_settings()
    if (proxy.username or proxy.password) and not proxy.enabled:
        errors.append("PROXY_USERNAME/PROXY_PASSWORD are set but PROXY_URL is empty.")

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 (registers all ORM models on Base.metadata)
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """
    Validate DB connectivity and schema, then start queue workers and the
    sweep scheduler; stop both on exit.
    """
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.services.scrape_service import build_orchestrator

    orchestrator = build_orchestrator()
    orchestrator.start()
    application.state.orchestrator = orchestrator
    logging.getLogger(__name__).info(
        "Scrape orchestrator started workers=%d scheduler=%s",
        orchestrator.settings.scrape.max_concurrent,
        orchestrator.scheduler.running,
    )
    try:
        yield
    finally:
        await orchestrator.close(wait=True)
        application.state.orchestrator = None
        logging.getLogger(__name__).info("Scrape orchestrator shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="KOL Pulse API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import admin_router, kols_router

    application.include_router(admin_router)
    application.include_router(kols_router)

    @application.get("/health")
    async def healthcheck() -> dict[str, Any]:
        orchestrator = getattr(application.state, "orchestrator", None)
        queue = orchestrator.queue_status().as_dict() if orchestrator is not None else None
        return {"status": "ok", "queue": queue}

    return application


app = create_app()
