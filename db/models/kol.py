"""
db/models/kol.py

Kol model: one tracked public figure ("key opinion leader").
Created and edited by the CRUD layer; the scrape core only reads it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.platform import Platform


class Kol(Base, TimestampMixin):
    """
    A tracked entity owning zero or more social platform presences.

    ``is_priority`` marks top-tier KOLs picked up by the daily priority sweep.
    """

    __tablename__ = "kols"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive KOLs are never enqueued by sweeps",
    )

    is_priority: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Included in the daily priority sweep",
    )

    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)

    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    platforms: Mapped[list["Platform"]] = relationship(
        "Platform",
        back_populates="kol",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("ix_kols_is_active", "is_active"),
        Index("ix_kols_is_priority", "is_priority"),
        Index("ix_kols_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Kol id={self.id} name={self.name!r} active={self.is_active}>"
