from __future__ import annotations

from datetime import datetime
from typing import Protocol

from rsl.domain.common.ids import ReservationId, SessionId, UserId, VenueId
from rsl.domain.reservation.entities import Reservation, ReservationStatus, ResourceType
from rsl.domain.session.entities import GroupSession, SessionStatus
from rsl.domain.venue.entities import Venue


class VenueRepository(Protocol):
    def get(self, venue_id: VenueId) -> Venue | None: ...

    def list_venues(self) -> list[Venue]: ...


class ReservationRepository(Protocol):
    def add(self, reservation: Reservation) -> None: ...

    def get(self, venue_id: VenueId, reservation_id: ReservationId) -> Reservation | None: ...

    def update_with_version(
        self,
        reservation: Reservation,
        expected_version: int,
    ) -> Reservation: ...

    def find_by_external_id(
        self,
        venue_id: VenueId,
        system: str,
        external_id: str,
    ) -> Reservation | None: ...

    def list_for_holder(
        self,
        venue_id: VenueId,
        holder_id: UserId,
        resource_types: frozenset[ResourceType] | None = None,
    ) -> list[Reservation]: ...

    def list_for_venue(
        self,
        venue_id: VenueId,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]: ...

    def list_all_for_venue(self, venue_id: VenueId) -> list[Reservation]: ...


class GroupSessionRepository(Protocol):
    def add(self, session: GroupSession) -> None: ...

    def get(self, venue_id: VenueId, session_id: SessionId) -> GroupSession | None: ...

    def update_with_version(
        self,
        session: GroupSession,
        expected_version: int,
    ) -> GroupSession: ...

    def list_for_parent(self, venue_id: VenueId, parent_user_id: UserId) -> list[GroupSession]: ...

    def list_for_venue(self, venue_id: VenueId) -> list[GroupSession]: ...

    def list_by_status(self, status: SessionStatus) -> list[GroupSession]: ...


class OptimisticConcurrencyError(Exception):
    pass


class UnsupportedQueryError(Exception):
    """The store cannot serve a filtered query, e.g. a composite index is missing."""


class DuplicateRecordError(Exception):
    pass
