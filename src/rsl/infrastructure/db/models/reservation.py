from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rsl.infrastructure.db.models.venue import Base


class ReservationModel(Base):
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    venue_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("venues.id", ondelete="CASCADE"),
        nullable=False,
    )
    holder_id: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_or_party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    source_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    source_system: Mapped[str] = mapped_column(String(50), nullable=False)
    source_external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    vehicle: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    holder_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    holder_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    holder_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
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
        UniqueConstraint(
            "venue_id",
            "source_system",
            "source_external_id",
            name="uq_reservations_venue_source_external_id",
        ),
        Index("ix_reservations_venue_start_at", "venue_id", "start_at"),
        Index("ix_reservations_venue_holder", "venue_id", "holder_id"),
    )
