from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

from rsl.domain.reservation.entities import Reservation, ResourceType
from rsl.domain.session.entities import GroupSession


class EntryKind(str, Enum):
    TABLE = "table"
    VALET = "valet"
    BOWLING_LANE = "bowlingLane"
    GROUP_SESSION = "groupSession"


class LedgerRole(str, Enum):
    HOLDER = "HOLDER"
    PARENT = "PARENT"
    MEMBER = "MEMBER"
    VENUE = "VENUE"


_KIND_BY_RESOURCE = {
    ResourceType.TABLE: EntryKind.TABLE,
    ResourceType.VALET: EntryKind.VALET,
    ResourceType.BOWLING_LANE: EntryKind.BOWLING_LANE,
}


def reservation_is_current(reservation: Reservation, now: datetime) -> bool:
    if reservation.is_terminal:
        return False
    if reservation.is_in_progress:
        return True
    if reservation.resource_type == ResourceType.BOWLING_LANE:
        return reservation.effective_end >= now
    return reservation.start_at >= now


@dataclass(frozen=True)
class LedgerEntry:
    kind: EntryKind
    entry_id: str
    venue_id: str
    status: str
    effective_time: datetime
    role: LedgerRole
    venue_name: str | None = None
    reservation: Reservation | None = None
    session: GroupSession | None = None

    @classmethod
    def from_reservation(
        cls,
        reservation: Reservation,
        role: LedgerRole,
        venue_name: str | None = None,
    ) -> LedgerEntry:
        return cls(
            kind=_KIND_BY_RESOURCE[reservation.resource_type],
            entry_id=str(reservation.reservation_id),
            venue_id=str(reservation.venue_id),
            status=reservation.status.value,
            effective_time=reservation.start_at,
            role=role,
            venue_name=venue_name,
            reservation=reservation,
        )

    @classmethod
    def from_session(
        cls,
        session: GroupSession,
        role: LedgerRole,
        venue_name: str | None = None,
    ) -> LedgerEntry:
        return cls(
            kind=EntryKind.GROUP_SESSION,
            entry_id=str(session.session_id),
            venue_id=str(session.venue_id),
            status=session.status.value,
            effective_time=session.effective_end,
            role=role,
            venue_name=venue_name,
            session=session,
        )

    @property
    def key(self) -> tuple[EntryKind, str]:
        return self.kind, self.entry_id

    def is_current(self, now: datetime) -> bool:
        if self.session is not None:
            return self.session.is_relevant(now)
        if self.reservation is not None:
            return reservation_is_current(self.reservation, now)
        return False


def dedupe_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    seen: set[tuple[EntryKind, str]] = set()
    unique: list[LedgerEntry] = []
    for entry in entries:
        if entry.key in seen:
            continue
        seen.add(entry.key)
        unique.append(entry)
    return unique


def partition_entries(
    entries: Iterable[LedgerEntry],
    now: datetime,
    past_limit: int | None = None,
) -> tuple[list[LedgerEntry], list[LedgerEntry]]:
    current: list[LedgerEntry] = []
    past: list[LedgerEntry] = []
    for entry in dedupe_entries(entries):
        if entry.is_current(now):
            current.append(entry)
        else:
            past.append(entry)

    current.sort(key=lambda entry: (entry.effective_time, entry.entry_id))
    past.sort(key=lambda entry: (entry.effective_time, entry.entry_id), reverse=True)
    if past_limit is not None:
        past = past[:past_limit]
    return current, past
