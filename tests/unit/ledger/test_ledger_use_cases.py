from __future__ import annotations

import sys
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rsl.application.use_cases.diner_ledger import DinerLedger
from rsl.application.use_cases.venue_ledger import ListVenueReservations, VenueLedger
from rsl.domain.common.errors import LedgerValidationError, NotFoundError
from rsl.domain.common.ids import ReservationId, SessionId, UserId, VenueId
from rsl.domain.reservation.entities import (
    ChangeActor,
    Reservation,
    ReservationStatus,
    ResourceType,
    create_reservation,
)
from rsl.domain.session.entities import GroupSession, SessionMember, create_group_session

DINER = UserId("usr_diner")


def _reservation(
    reservation_id: str,
    venue_id: str,
    start_at: datetime,
    *,
    now: datetime,
    resource_type: ResourceType = ResourceType.TABLE,
    holder_id: UserId = DINER,
    duration_or_party_size: int = 2,
) -> Reservation:
    return create_reservation(
        reservation_id=ReservationId(reservation_id),
        venue_id=VenueId(venue_id),
        holder_id=holder_id,
        resource_type=resource_type,
        start_at=start_at,
        duration_or_party_size=duration_or_party_size,
        now=now,
    )


def _session(
    session_id: str,
    parent_user_id: str,
    start_time: datetime,
    members: list[SessionMember],
) -> GroupSession:
    return create_group_session(
        session_id=SessionId(session_id),
        venue_id=VenueId("ven_arcade"),
        parent_user_id=UserId(parent_user_id),
        parent_name=parent_user_id,
        start_time=start_time,
        time_limit_minutes=60,
        now=start_time,
        members=members,
    )


def _diner_ledger(venue_repository, reservation_repository, session_repository, clock, **kwargs):
    return DinerLedger(
        venue_repository=venue_repository,
        reservation_repository=reservation_repository,
        session_repository=session_repository,
        clock=clock,
        **kwargs,
    )


def test_diner_ledger_splits_current_and_past_across_venues(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    reservation_repository.add(_reservation("res_dinner", "ven_bistro", now + timedelta(days=1), now=now))
    reservation_repository.add(_reservation("res_soon", "ven_bistro", now + timedelta(hours=3), now=now))
    reservation_repository.add(
        _reservation(
            "res_lane",
            "ven_lanes",
            now - timedelta(minutes=30),
            now=now,
            resource_type=ResourceType.BOWLING_LANE,
            duration_or_party_size=60,
        )
    )
    reservation_repository.add(
        _reservation("res_old", "ven_bistro", now - timedelta(days=3), now=now)
    )
    reservation_repository.add(
        _reservation("res_other", "ven_bistro", now + timedelta(days=1), now=now, holder_id=UserId("usr_x"))
    )

    ledger = _diner_ledger(venue_repository, reservation_repository, session_repository, clock).execute(DINER)

    assert [entry.id for entry in ledger.current] == ["res_lane", "res_soon", "res_dinner"]
    assert [entry.id for entry in ledger.past] == ["res_old"]
    assert ledger.current[0].kind == "bowlingLane"
    assert ledger.current[0].venueName == "Strike Zone Lanes"
    assert all(entry.role == "HOLDER" for entry in ledger.current)
    assert ledger.skippedVenues == []


def test_in_progress_reservation_stays_current_after_start(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    seated = (
        _reservation("res_seated", "ven_bistro", now - timedelta(hours=1), now=now)
        .confirm(now)
        .check_in(now)
        .seat(now)
    )
    cancelled = _reservation("res_cancelled", "ven_bistro", now + timedelta(days=2), now=now).cancel(
        now, ChangeActor.HOLDER
    )
    reservation_repository.add(seated)
    reservation_repository.add(cancelled)

    ledger = _diner_ledger(venue_repository, reservation_repository, session_repository, clock).execute(DINER)

    assert [entry.id for entry in ledger.current] == ["res_seated"]
    assert [entry.id for entry in ledger.past] == ["res_cancelled"]
    assert ledger.past[0].canCancel is False


def test_diner_appears_once_per_session_as_parent_or_email_member(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    session_repository.add(_session("ses_parent", str(DINER), now, []))
    session_repository.add(
        _session(
            "ses_guest",
            "usr_friend",
            now - timedelta(minutes=10),
            [SessionMember(name="Diner", email="diner@example.com")],
        )
    )
    session_repository.add(_session("ses_unrelated", "usr_friend", now, []))

    ledger = _diner_ledger(venue_repository, reservation_repository, session_repository, clock).execute(
        DINER,
        email="Diner@Example.com",
    )

    roles = {entry.id: entry.role for entry in ledger.current}
    assert roles == {"ses_parent": "PARENT", "ses_guest": "MEMBER"}
    assert [entry.id for entry in ledger.current] == ["ses_guest", "ses_parent"]
    assert all(entry.kind == "groupSession" for entry in ledger.current)


def test_failing_venue_is_skipped_and_reported(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    reservation_repository.add(_reservation("res_dinner", "ven_bistro", now + timedelta(days=1), now=now))
    reservation_repository.failing_venues.add("ven_lanes")
    session_repository.failing_venues.add("ven_arcade")

    ledger = _diner_ledger(venue_repository, reservation_repository, session_repository, clock).execute(DINER)

    assert [entry.id for entry in ledger.current] == ["res_dinner"]
    assert ledger.skippedVenues == ["ven_arcade", "ven_lanes"]


def test_past_entries_are_capped_most_recent_first(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    for days in (1, 2, 3):
        reservation_repository.add(
            _reservation(f"res_past_{days}", "ven_bistro", now - timedelta(days=days), now=now)
        )

    ledger = _diner_ledger(
        venue_repository,
        reservation_repository,
        session_repository,
        clock,
        past_limit=2,
    ).execute(DINER)

    assert [entry.id for entry in ledger.past] == ["res_past_1", "res_past_2"]


def test_venue_ledger_includes_sessions_only_for_gaming_venues(
    venue_repository, reservation_repository, session_repository, clock
) -> None:
    now = clock()
    session_repository.add(_session("ses_1", "usr_friend", now, []))
    reservation_repository.add(_reservation("res_1", "ven_bistro", now + timedelta(days=1), now=now))

    use_case = VenueLedger(
        venue_repository=venue_repository,
        reservation_repository=reservation_repository,
        session_repository=session_repository,
        clock=clock,
    )

    arcade = use_case.execute(VenueId("ven_arcade"))
    bistro = use_case.execute(VenueId("ven_bistro"))

    assert [entry.id for entry in arcade.current] == ["ses_1"]
    assert [entry.id for entry in bistro.current] == ["res_1"]
    assert bistro.current[0].role == "VENUE"

    with pytest.raises(NotFoundError):
        use_case.execute(VenueId("ven_missing"))


def test_venue_listing_falls_back_when_filtered_query_unsupported(
    venue_repository, reservation_repository, clock
) -> None:
    now = clock()
    reservation_repository.add(_reservation("res_in", "ven_bistro", now + timedelta(hours=2), now=now))
    reservation_repository.add(_reservation("res_out", "ven_bistro", now + timedelta(days=2), now=now))
    reservation_repository.filtered_queries_supported = False

    response = ListVenueReservations(
        venue_repository=venue_repository,
        reservation_repository=reservation_repository,
        clock=clock,
    ).execute(
        VenueId("ven_bistro"),
        start_from=now,
        start_to=now + timedelta(days=1),
        status=ReservationStatus.PENDING,
    )

    assert response.usedFallback is True
    assert [item.reservationId for item in response.reservations] == ["res_in"]


def test_venue_listing_service_date_covers_overnight_shift(
    venue_repository, reservation_repository, clock
) -> None:
    now = clock()
    late = datetime(2026, 10, 21, 1, 0, tzinfo=timezone.utc)
    reservation_repository.add(_reservation("res_late", "ven_bistro", late, now=now))
    reservation_repository.add(
        _reservation("res_next_lunch", "ven_bistro", late + timedelta(hours=11), now=now)
    )

    response = ListVenueReservations(
        venue_repository=venue_repository,
        reservation_repository=reservation_repository,
        clock=clock,
    ).execute(
        VenueId("ven_bistro"),
        service_date=date(2026, 10, 20),
        shift_start=time(17, 0),
        shift_end=time(3, 0),
    )

    assert response.usedFallback is False
    assert [item.reservationId for item in response.reservations] == ["res_late"]
    assert response.windowEnd == datetime(2026, 10, 21, 3, 0, tzinfo=timezone.utc)


def test_venue_listing_rejects_inverted_window(venue_repository, reservation_repository, clock) -> None:
    with pytest.raises(LedgerValidationError):
        ListVenueReservations(
            venue_repository=venue_repository,
            reservation_repository=reservation_repository,
            clock=clock,
        ).execute(
            VenueId("ven_bistro"),
            start_from=clock(),
            start_to=clock() - timedelta(hours=1),
        )
