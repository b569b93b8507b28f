from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rsl.infrastructure.db.models.venue import Base


class GroupSessionModel(Base):
    __tablename__ = "group_sessions"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    venue_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("venues.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    parent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    members: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_limit_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    extended_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    extension_requested_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extension_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    warning_15_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warning_5_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    card_on_file: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    card_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_group_sessions_venue_parent", "venue_id", "parent_user_id"),
        Index("ix_group_sessions_status", "status"),
    )
