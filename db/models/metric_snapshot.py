"""
db/models/metric_snapshot.py

Append-only audience metric measurements for one platform.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.platform import Platform


class MetricSnapshot(Base):
    __tablename__ = "metric_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    platform_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("platforms.id", ondelete="CASCADE"),
        nullable=False,
    )

    followers: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    following: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    posts: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    engagement_rate: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Heuristic estimate in percent",
    )
    avg_views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    avg_likes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    avg_comments: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    avg_shares: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    additional_metrics: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    platform: Mapped["Platform"] = relationship("Platform", back_populates="snapshots")

    __table_args__ = (
        Index("ix_metric_snapshots_platform_id_captured_at", "platform_id", "captured_at"),
    )
