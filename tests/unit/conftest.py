from __future__ import annotations

import json
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsl.application.ports.repositories import (
    DuplicateRecordError,
    OptimisticConcurrencyError,
    UnsupportedQueryError,
)
from rsl.application.use_cases.context import TraceContext
from rsl.domain.common.errors import UpstreamUnavailableError
from rsl.domain.common.ids import VenueId
from rsl.domain.reservation.entities import Reservation
from rsl.domain.session.entities import GroupSession, SessionStatus
from rsl.domain.venue.entities import Venue, VenueFeature

NOW = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryVenueRepository:
    def __init__(self, venues: list[Venue]) -> None:
        self._venues = {str(venue.venue_id): venue for venue in venues}

    def get(self, venue_id):
        return self._venues.get(str(venue_id))

    def list_venues(self) -> list[Venue]:
        return [self._venues[key] for key in sorted(self._venues)]


class InMemoryReservationRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Reservation] = {}
        self.failing_venues: set[str] = set()
        self.filtered_queries_supported = True
        self.before_update: Callable[[], None] | None = None

    def _check_venue(self, venue_id) -> None:
        if str(venue_id) in self.failing_venues:
            raise UpstreamUnavailableError(f"venue {venue_id} store unavailable")

    def add(self, reservation: Reservation) -> None:
        if str(reservation.reservation_id) in self.rows:
            raise DuplicateRecordError(str(reservation.reservation_id))
        self.rows[str(reservation.reservation_id)] = reservation

    def get(self, venue_id, reservation_id):
        row = self.rows.get(str(reservation_id))
        if row is None or str(row.venue_id) != str(venue_id):
            return None
        return row

    def update_with_version(self, reservation: Reservation, expected_version: int) -> Reservation:
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook()
        stored = self.rows.get(str(reservation.reservation_id))
        if stored is None or stored.version != expected_version:
            raise OptimisticConcurrencyError(str(reservation.reservation_id))
        updated = replace(reservation, version=expected_version + 1)
        self.rows[str(reservation.reservation_id)] = updated
        return updated

    def find_by_external_id(self, venue_id, system, external_id):
        for row in self.rows.values():
            if (
                str(row.venue_id) == str(venue_id)
                and row.source.system == system
                and row.source.external_id == external_id
            ):
                return row
        return None

    def list_for_holder(self, venue_id, holder_id, resource_types=None):
        self._check_venue(venue_id)
        return [
            row
            for row in self.rows.values()
            if str(row.venue_id) == str(venue_id)
            and str(row.holder_id) == str(holder_id)
            and (resource_types is None or row.resource_type in resource_types)
        ]

    def list_for_venue(self, venue_id, start_from=None, start_to=None, status=None):
        self._check_venue(venue_id)
        if not self.filtered_queries_supported:
            raise UnsupportedQueryError("composite index missing")
        rows = [
            row
            for row in self.rows.values()
            if str(row.venue_id) == str(venue_id)
            and (start_from is None or row.start_at >= start_from)
            and (start_to is None or row.start_at < start_to)
            and (status is None or row.status == status)
        ]
        return sorted(rows, key=lambda row: (row.start_at, str(row.reservation_id)))

    def list_all_for_venue(self, venue_id):
        self._check_venue(venue_id)
        return [row for row in self.rows.values() if str(row.venue_id) == str(venue_id)]


class InMemoryGroupSessionRepository:
    def __init__(self) -> None:
        self.rows: dict[str, GroupSession] = {}
        self.failing_venues: set[str] = set()
        self.before_update: Callable[[], None] | None = None

    def _check_venue(self, venue_id) -> None:
        if str(venue_id) in self.failing_venues:
            raise UpstreamUnavailableError(f"venue {venue_id} store unavailable")

    def add(self, session: GroupSession) -> None:
        if str(session.session_id) in self.rows:
            raise DuplicateRecordError(str(session.session_id))
        self.rows[str(session.session_id)] = session

    def get(self, venue_id, session_id):
        row = self.rows.get(str(session_id))
        if row is None or str(row.venue_id) != str(venue_id):
            return None
        return row

    def update_with_version(self, session: GroupSession, expected_version: int) -> GroupSession:
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook()
        stored = self.rows.get(str(session.session_id))
        if stored is None or stored.version != expected_version:
            raise OptimisticConcurrencyError(str(session.session_id))
        updated = replace(session, version=expected_version + 1)
        self.rows[str(session.session_id)] = updated
        return updated

    def list_for_parent(self, venue_id, parent_user_id):
        self._check_venue(venue_id)
        return [
            row
            for row in self.rows.values()
            if str(row.venue_id) == str(venue_id) and str(row.parent_user_id) == str(parent_user_id)
        ]

    def list_for_venue(self, venue_id):
        self._check_venue(venue_id)
        return [row for row in self.rows.values() if str(row.venue_id) == str(venue_id)]

    def list_by_status(self, status: SessionStatus):
        return [row for row in self.rows.values() if row.status == status]


class RecordingPublisher:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[tuple[str, dict[str, Any]]] = []

    def publish(self, channel: str, message: str) -> None:
        if self.fail:
            raise ConnectionError("redis down")
        self.messages.append((channel, json.loads(message)))

    def payloads(self) -> list[dict[str, Any]]:
        return [envelope["payload"] for _, envelope in self.messages]

    def types(self) -> list[str]:
        return [payload["type"] for payload in self.payloads()]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def venue_repository() -> InMemoryVenueRepository:
    return InMemoryVenueRepository(
        [
            Venue(
                venue_id=VenueId("ven_bistro"),
                name="Harbor Street Bistro",
                features=frozenset({VenueFeature.TABLES, VenueFeature.VALET}),
            ),
            Venue(
                venue_id=VenueId("ven_lanes"),
                name="Strike Zone Lanes",
                features=frozenset({VenueFeature.BOWLING}),
            ),
            Venue(
                venue_id=VenueId("ven_arcade"),
                name="Pixel Arcade Lounge",
                features=frozenset({VenueFeature.GAMING}),
            ),
        ]
    )


@pytest.fixture
def reservation_repository() -> InMemoryReservationRepository:
    return InMemoryReservationRepository()


@pytest.fixture
def session_repository() -> InMemoryGroupSessionRepository:
    return InMemoryGroupSessionRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def trace_ctx() -> TraceContext:
    return TraceContext(trace_id="trace-123", request_id="req-123")
