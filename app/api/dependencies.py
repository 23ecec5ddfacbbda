"""
app/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.services.scrape_service import ScrapeOrchestrator


def get_orchestrator(request: Request) -> ScrapeOrchestrator:
    """
    Return the process-wide orchestrator attached to ``app.state`` at startup.
    """

    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scrape orchestrator is not initialised.",
        )
    return orchestrator
