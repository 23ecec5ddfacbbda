"""
db/models/platform.py

Platform model: one (KOL, social network) pairing.
``scrape_status`` and ``last_scraped_at`` are written only by the scrape core.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.kol import Kol
    from db.models.metric_snapshot import MetricSnapshot
    from db.models.scrape_attempt import ScrapeAttempt


class Platform(Base, TimestampMixin):
    __tablename__ = "platforms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    kol_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("kols.id", ondelete="CASCADE"),
        nullable=False,
    )

    platform_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="facebook, instagram, tiktok, youtube",
    )

    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    profile_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_scraped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    scrape_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="pending",
        comment="pending, success, failed",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    kol: Mapped["Kol"] = relationship("Kol", back_populates="platforms")

    snapshots: Mapped[list["MetricSnapshot"]] = relationship(
        "MetricSnapshot",
        back_populates="platform",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="MetricSnapshot.captured_at",
    )

    attempts: Mapped[list["ScrapeAttempt"]] = relationship(
        "ScrapeAttempt",
        back_populates="platform_ref",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("kol_id", "platform_type", name="uq_platforms_kol_id_platform_type"),
        Index("ix_platforms_scrape_status_last_scraped_at", "scrape_status", "last_scraped_at"),
        Index("ix_platforms_platform_type", "platform_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<Platform id={self.id} kol_id={self.kol_id} "
            f"type={self.platform_type!r} status={self.scrape_status!r}>"
        )
