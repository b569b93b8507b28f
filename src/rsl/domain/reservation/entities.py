from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from rsl.domain.common.clock import add_minutes
from rsl.domain.common.errors import InvalidTransitionError
from rsl.domain.common.ids import ReservationId, UserId, VenueId
from rsl.domain.venue.entities import VenueFeature


class ResourceType(str, Enum):
    TABLE = "table"
    VALET = "valet"
    BOWLING_LANE = "bowlingLane"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


TERMINAL_STATUSES = frozenset(
    {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW}
)
IN_PROGRESS_STATUSES = frozenset({ReservationStatus.CHECKED_IN, ReservationStatus.SEATED})

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {
            ReservationStatus.CHECKED_IN,
            ReservationStatus.CANCELLED,
            ReservationStatus.NO_SHOW,
        }
    ),
    ReservationStatus.CHECKED_IN: frozenset(
        {
            ReservationStatus.SEATED,
            ReservationStatus.CANCELLED,
            ReservationStatus.NO_SHOW,
        }
    ),
    ReservationStatus.SEATED: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}


RESOURCE_FEATURES: dict[ResourceType, VenueFeature] = {
    ResourceType.TABLE: VenueFeature.TABLES,
    ResourceType.VALET: VenueFeature.VALET,
    ResourceType.BOWLING_LANE: VenueFeature.BOWLING,
}


class SourceKind(str, Enum):
    INTERNAL = "INTERNAL"
    EXTERNAL_SYNCED = "EXTERNAL_SYNCED"


INTERNAL_SYSTEM = "LEDGER"


@dataclass(frozen=True)
class ReservationSource:
    kind: SourceKind
    system: str
    external_id: str | None = None

    def __post_init__(self) -> None:
        if not self.system.strip():
            raise ValueError("source system must not be empty")
        if self.kind == SourceKind.EXTERNAL_SYNCED and not self.external_id:
            raise ValueError("external sources require an external_id")

    @classmethod
    def internal(cls) -> ReservationSource:
        return cls(kind=SourceKind.INTERNAL, system=INTERNAL_SYSTEM)

    @classmethod
    def external(cls, system: str, external_id: str) -> ReservationSource:
        return cls(kind=SourceKind.EXTERNAL_SYNCED, system=system, external_id=external_id)

    @property
    def is_external(self) -> bool:
        return self.kind == SourceKind.EXTERNAL_SYNCED


class ChangeActor(str, Enum):
    SYSTEM = "SYSTEM"
    HOLDER = "HOLDER"
    VENUE = "VENUE"
    SYNC = "SYNC"


@dataclass(frozen=True)
class StatusChange:
    status: ReservationStatus
    previous_status: ReservationStatus | None
    changed_at: datetime
    actor: ChangeActor
    reason: str | None = None


class ValetStatus(str, Enum):
    PENDING = "PENDING"
    ARRIVED = "ARRIVED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


_VALET_STATUS_VIEW: dict[ReservationStatus, ValetStatus] = {
    ReservationStatus.PENDING: ValetStatus.PENDING,
    ReservationStatus.CONFIRMED: ValetStatus.PENDING,
    ReservationStatus.CHECKED_IN: ValetStatus.ARRIVED,
    ReservationStatus.SEATED: ValetStatus.ACTIVE,
    ReservationStatus.COMPLETED: ValetStatus.COMPLETED,
    ReservationStatus.CANCELLED: ValetStatus.CANCELLED,
    ReservationStatus.NO_SHOW: ValetStatus.CANCELLED,
}


@dataclass(frozen=True)
class VehicleInfo:
    license_plate: str
    make: str = ""
    model: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        if not self.license_plate:
            raise ValueError("license_plate is required")

    @classmethod
    def normalized(
        cls,
        license_plate: str,
        make: str | None = None,
        model: str | None = None,
        color: str | None = None,
    ) -> VehicleInfo:
        return cls(
            license_plate=license_plate.strip().upper(),
            make=(make or "").strip(),
            model=(model or "").strip(),
            color=(color or "").strip(),
        )


ASSIGNED_STAFF_ID_KEY = "assignedStaffId"
ASSIGNED_STAFF_NAME_KEY = "assignedStaffName"
SPECIAL_REQUESTS_KEY = "specialRequests"


@dataclass(frozen=True)
class Reservation:
    reservation_id: ReservationId
    venue_id: VenueId
    holder_id: UserId
    resource_type: ResourceType
    start_at: datetime
    duration_or_party_size: int
    status: ReservationStatus
    source: ReservationSource
    created_at: datetime
    updated_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)
    history: tuple[StatusChange, ...] = ()
    vehicle: VehicleInfo | None = None
    holder_name: str | None = None
    holder_email: str | None = None
    holder_phone: str | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.duration_or_party_size < 1:
            raise ValueError("duration_or_party_size must be >= 1")
        if self.resource_type == ResourceType.VALET and self.vehicle is None:
            raise ValueError("valet reservations require vehicle details")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_in_progress(self) -> bool:
        return self.status in IN_PROGRESS_STATUSES

    @property
    def effective_end(self) -> datetime:
        if self.resource_type == ResourceType.BOWLING_LANE:
            return add_minutes(self.start_at, self.duration_or_party_size)
        return self.start_at

    @property
    def assigned_staff_id(self) -> str | None:
        value = self.metadata.get(ASSIGNED_STAFF_ID_KEY)
        return str(value) if value else None

    @property
    def valet_status(self) -> ValetStatus | None:
        if self.resource_type != ResourceType.VALET:
            return None
        return _VALET_STATUS_VIEW[self.status]

    def can_transition_to(self, target: ReservationStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def transition_to(
        self,
        target: ReservationStatus,
        now: datetime,
        actor: ChangeActor,
        reason: str | None = None,
    ) -> Reservation:
        if not self.can_transition_to(target):
            raise InvalidTransitionError(
                f"cannot move reservation {self.reservation_id} "
                f"from {self.status.value} to {target.value}",
                details={"from": self.status.value, "to": target.value},
            )
        change = StatusChange(
            status=target,
            previous_status=self.status,
            changed_at=now,
            actor=actor,
            reason=reason,
        )
        return replace(self, status=target, history=self.history + (change,), updated_at=now)

    def confirm(self, now: datetime, actor: ChangeActor = ChangeActor.VENUE) -> Reservation:
        return self.transition_to(ReservationStatus.CONFIRMED, now, actor)

    def check_in(self, now: datetime, actor: ChangeActor = ChangeActor.VENUE) -> Reservation:
        return self.transition_to(ReservationStatus.CHECKED_IN, now, actor)

    def seat(self, now: datetime, actor: ChangeActor = ChangeActor.VENUE) -> Reservation:
        return self.transition_to(ReservationStatus.SEATED, now, actor)

    def complete(self, now: datetime, actor: ChangeActor = ChangeActor.VENUE) -> Reservation:
        return self.transition_to(ReservationStatus.COMPLETED, now, actor)

    def cancel(self, now: datetime, actor: ChangeActor, reason: str | None = None) -> Reservation:
        return self.transition_to(ReservationStatus.CANCELLED, now, actor, reason=reason)

    def mark_no_show(self, now: datetime, actor: ChangeActor = ChangeActor.VENUE) -> Reservation:
        if now < self.start_at:
            raise InvalidTransitionError(
                f"reservation {self.reservation_id} cannot be marked no-show before its start time",
                details={"from": self.status.value, "to": ReservationStatus.NO_SHOW.value},
            )
        return self.transition_to(ReservationStatus.NO_SHOW, now, actor)

    def with_metadata(self, updates: Mapping[str, Any], now: datetime) -> Reservation:
        return replace(self, metadata={**self.metadata, **updates}, updated_at=now)

    def with_staff_assignment(
        self,
        staff_id: str,
        staff_name: str | None,
        now: datetime,
    ) -> Reservation:
        updates: dict[str, Any] = {ASSIGNED_STAFF_ID_KEY: staff_id}
        if staff_name:
            updates[ASSIGNED_STAFF_NAME_KEY] = staff_name
        return self.with_metadata(updates, now)

    def rescheduled(
        self,
        now: datetime,
        start_at: datetime | None = None,
        duration_or_party_size: int | None = None,
        special_requests: str | None = None,
    ) -> Reservation:
        metadata = dict(self.metadata)
        if special_requests is not None:
            metadata[SPECIAL_REQUESTS_KEY] = special_requests
        return replace(
            self,
            start_at=start_at or self.start_at,
            duration_or_party_size=duration_or_party_size or self.duration_or_party_size,
            metadata=metadata,
            updated_at=now,
        )


def create_reservation(
    reservation_id: ReservationId,
    venue_id: VenueId,
    holder_id: UserId,
    resource_type: ResourceType,
    start_at: datetime,
    duration_or_party_size: int,
    now: datetime,
    source: ReservationSource | None = None,
    metadata: Mapping[str, Any] | None = None,
    vehicle: VehicleInfo | None = None,
    holder_name: str | None = None,
    holder_email: str | None = None,
    holder_phone: str | None = None,
) -> Reservation:
    resolved_source = source or ReservationSource.internal()
    # bookings mirrored from another system arrive already confirmed there
    if resolved_source.is_external:
        status = ReservationStatus.CONFIRMED
        actor = ChangeActor.SYNC
    else:
        status = ReservationStatus.PENDING
        actor = ChangeActor.SYSTEM

    return Reservation(
        reservation_id=reservation_id,
        venue_id=venue_id,
        holder_id=holder_id,
        resource_type=resource_type,
        start_at=start_at,
        duration_or_party_size=duration_or_party_size,
        status=status,
        source=resolved_source,
        created_at=now,
        updated_at=now,
        metadata=dict(metadata or {}),
        history=(
            StatusChange(
                status=status,
                previous_status=None,
                changed_at=now,
                actor=actor,
                reason="created",
            ),
        ),
        vehicle=vehicle,
        holder_name=holder_name,
        holder_email=holder_email,
        holder_phone=holder_phone,
    )
