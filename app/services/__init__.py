"""
app/services package marker.
"""

from app.services.metrics_service import MetricsService, TrendingKol
from app.services.scrape_service import AttemptPage, ScrapeOrchestrator, build_orchestrator

__all__ = [
    "AttemptPage",
    "MetricsService",
    "ScrapeOrchestrator",
    "TrendingKol",
    "build_orchestrator",
]
