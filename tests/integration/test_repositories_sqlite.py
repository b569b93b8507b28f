from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from rsl.application.dto.requests import ExternalStatusRequest, UpdateReservationMetadataRequest
from rsl.application.ports.repositories import DuplicateRecordError, OptimisticConcurrencyError
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.reservation_details import UpdateReservationMetadata
from rsl.application.use_cases.reservation_lifecycle import (
    ApplyExternalStatus,
    ReservationAction,
    TransitionReservation,
)
from rsl.domain.common.ids import ReservationId, SessionId, UserId, VenueId
from rsl.domain.reservation.entities import (
    ReservationSource,
    ReservationStatus,
    ResourceType,
    VehicleInfo,
    create_reservation,
)
from rsl.domain.session.entities import SessionMember, SessionStatus, create_group_session
from rsl.infrastructure.db.repositories.group_session_repo import (
    SqlAlchemyGroupSessionRepository,
)
from rsl.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsl.infrastructure.db.repositories.venue_repo import SqlAlchemyVenueRepository
from rsl.tools.seed import seed

NOW = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


def _valet_reservation(reservation_id: str = "res_sql_001", source: ReservationSource | None = None):
    return create_reservation(
        reservation_id=ReservationId(reservation_id),
        venue_id=VenueId("ven_001"),
        holder_id=UserId("usr_001"),
        resource_type=ResourceType.VALET,
        start_at=NOW + timedelta(hours=4),
        duration_or_party_size=1,
        now=NOW,
        source=source,
        metadata={"specialRequests": "ev charger"},
        vehicle=VehicleInfo.normalized("xyz 987", make="Tesla", color="red"),
    )


def test_seed_is_idempotent(engine) -> None:
    assert seed(engine) == 3

    venues = SqlAlchemyVenueRepository(engine).list_venues()
    assert [str(venue.venue_id) for venue in venues] == ["ven_001", "ven_002", "ven_003"]


def test_reservation_round_trip_keeps_history_vehicle_and_metadata(engine) -> None:
    repository = SqlAlchemyReservationRepository(engine)
    repository.add(_valet_reservation())

    stored = repository.get(VenueId("ven_001"), ReservationId("res_sql_001"))

    assert stored is not None
    assert stored.start_at == NOW + timedelta(hours=4)
    assert stored.vehicle == VehicleInfo(license_plate="XYZ 987", make="Tesla", color="red")
    assert stored.metadata == {"specialRequests": "ev charger"}
    assert [change.status for change in stored.history] == [ReservationStatus.PENDING]
    assert stored.history[0].changed_at == NOW
    assert stored.version == 1
    assert repository.get(VenueId("ven_002"), ReservationId("res_sql_001")) is None


def test_reservation_update_is_version_guarded(engine) -> None:
    repository = SqlAlchemyReservationRepository(engine)
    reservation = _valet_reservation()
    repository.add(reservation)

    confirmed = repository.update_with_version(reservation.confirm(NOW), expected_version=1)
    assert confirmed.version == 2
    assert confirmed.status == ReservationStatus.CONFIRMED

    with pytest.raises(OptimisticConcurrencyError):
        repository.update_with_version(reservation.confirm(NOW), expected_version=1)


def test_external_id_is_unique_per_venue_and_system(engine) -> None:
    repository = SqlAlchemyReservationRepository(engine)
    source = ReservationSource.external("OpenTable", "ot-1")
    repository.add(_valet_reservation("res_ext_1", source))

    with pytest.raises(DuplicateRecordError):
        repository.add(_valet_reservation("res_ext_2", source))

    found = repository.find_by_external_id(VenueId("ven_001"), "OpenTable", "ot-1")
    assert found is not None
    assert found.reservation_id == "res_ext_1"
    assert found.source.is_external


def test_venue_window_query_filters_by_start_and_status(engine) -> None:
    repository = SqlAlchemyReservationRepository(engine)
    repository.add(_valet_reservation("res_a"))
    later = create_reservation(
        reservation_id=ReservationId("res_b"),
        venue_id=VenueId("ven_001"),
        holder_id=UserId("usr_002"),
        resource_type=ResourceType.TABLE,
        start_at=NOW + timedelta(days=2),
        duration_or_party_size=2,
        now=NOW,
    )
    repository.add(later)

    window = repository.list_for_venue(
        VenueId("ven_001"),
        start_from=NOW,
        start_to=NOW + timedelta(days=1),
    )
    assert [item.reservation_id for item in window] == ["res_a"]

    by_holder = repository.list_for_holder(
        VenueId("ven_001"),
        UserId("usr_002"),
        resource_types=frozenset({ResourceType.TABLE}),
    )
    assert [item.reservation_id for item in by_holder] == ["res_b"]


def test_group_session_round_trip_and_status_listing(engine) -> None:
    repository = SqlAlchemyGroupSessionRepository(engine)
    session = create_group_session(
        session_id=SessionId("ses_sql_001"),
        venue_id=VenueId("ven_003"),
        parent_user_id=UserId("usr_parent"),
        parent_name="Pat",
        start_time=NOW,
        time_limit_minutes=60,
        now=NOW,
        members=[SessionMember(name="Sam", email="sam@example.com")],
        card_on_file=True,
        card_last4="4242",
    )
    repository.add(session)

    stored = repository.get(VenueId("ven_003"), SessionId("ses_sql_001"))
    assert stored is not None
    assert stored.members == session.members
    assert stored.effective_end == NOW + timedelta(minutes=60)
    assert stored.card_last4 == "4242"

    warned = repository.update_with_version(stored.with_warnings_sent([], NOW), 1)
    assert warned.version == 2
    with pytest.raises(OptimisticConcurrencyError):
        repository.update_with_version(stored.pause(NOW), 1)

    assert [item.session_id for item in repository.list_by_status(SessionStatus.ACTIVE)] == [
        "ses_sql_001"
    ]
    assert repository.list_by_status(SessionStatus.PAUSED) == []
    assert len(repository.list_for_parent(VenueId("ven_003"), UserId("usr_parent"))) == 1


def test_external_source_survives_local_mutations_in_sqlite(engine, publisher) -> None:
    repository = SqlAlchemyReservationRepository(engine)
    venue_id = VenueId("ven_001")
    reservation_id = ReservationId("res_sql_ext")
    source = ReservationSource.external("EXTERNAL", "ext-sql-1")
    repository.add(
        create_reservation(
            reservation_id=reservation_id,
            venue_id=venue_id,
            holder_id=UserId("usr_001"),
            resource_type=ResourceType.TABLE,
            start_at=NOW + timedelta(minutes=30),
            duration_or_party_size=2,
            now=NOW,
            source=source,
        )
    )
    trace_ctx = TraceContext(trace_id="trace-sql", request_id="req-sql")
    deps = {"reservation_repository": repository, "publisher": publisher, "clock": lambda: NOW}

    UpdateReservationMetadata(**deps).execute(
        venue_id=venue_id,
        reservation_id=reservation_id,
        request_dto=UpdateReservationMetadataRequest(metadata={"tableNumber": "12"}),
        trace_ctx=trace_ctx,
    )
    transition = TransitionReservation(**deps)
    for action in (ReservationAction.CHECK_IN, ReservationAction.SEAT):
        transition.execute(
            venue_id=venue_id,
            reservation_id=reservation_id,
            action=action,
            trace_ctx=trace_ctx,
        )
    ApplyExternalStatus(**deps).execute(
        venue_id=venue_id,
        reservation_id=reservation_id,
        request_dto=ExternalStatusRequest(system="EXTERNAL", status=ReservationStatus.COMPLETED),
        trace_ctx=trace_ctx,
    )

    stored = SqlAlchemyReservationRepository(engine).get(venue_id, reservation_id)
    assert stored is not None
    assert stored.source == source
    assert stored.status == ReservationStatus.COMPLETED
    assert stored.metadata["tableNumber"] == "12"
    assert [change.status for change in stored.history][-3:] == [
        ReservationStatus.CHECKED_IN,
        ReservationStatus.SEATED,
        ReservationStatus.COMPLETED,
    ]
    assert repository.find_by_external_id(venue_id, "EXTERNAL", "ext-sql-1") is not None
