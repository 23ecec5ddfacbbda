"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.kol import Kol
from db.models.metric_snapshot import MetricSnapshot
from db.models.platform import Platform
from db.models.scrape_attempt import ScrapeAttempt

__all__ = [
    "Kol",
    "MetricSnapshot",
    "Platform",
    "ScrapeAttempt",
]
