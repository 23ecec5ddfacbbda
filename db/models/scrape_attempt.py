"""
db/models/scrape_attempt.py

Audit trail of extraction runs. One row per pipeline run, success or not.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.platform import Platform


class ScrapeAttempt(Base):
    __tablename__ = "scrape_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    platform_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("platforms.id", ondelete="SET NULL"),
        nullable=True,
    )

    platform: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Platform type name at the time of the run",
    )

    outcome: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="started, success, failed, timeout",
    )

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        comment="Raw extracted fields, useful when selectors drift",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    platform_ref: Mapped["Platform | None"] = relationship("Platform", back_populates="attempts")

    __table_args__ = (
        Index("ix_scrape_attempts_platform_id_started_at", "platform_id", "started_at"),
        Index("ix_scrape_attempts_outcome_created_at", "outcome", "created_at"),
    )
