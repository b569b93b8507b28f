from __future__ import annotations

import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from rsl.domain.common.errors import (
    CancellationWindowClosedError,
    InvalidTransitionError,
    UnsupportedSourceError,
)
from rsl.domain.common.ids import ReservationId, UserId, VenueId
from rsl.domain.reservation.entities import (
    ALLOWED_TRANSITIONS,
    ChangeActor,
    Reservation,
    ReservationSource,
    ReservationStatus,
    ResourceType,
    ValetStatus,
    VehicleInfo,
    create_reservation,
)
from rsl.domain.reservation.policy import ensure_holder_can_change, holder_can_change

NOW = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


def _reservation(
    *,
    start_at: datetime | None = None,
    resource_type: ResourceType = ResourceType.TABLE,
    source: ReservationSource | None = None,
    duration_or_party_size: int = 4,
) -> Reservation:
    return create_reservation(
        reservation_id=ReservationId("res_001"),
        venue_id=VenueId("ven_bistro"),
        holder_id=UserId("usr_001"),
        resource_type=resource_type,
        start_at=start_at or NOW + timedelta(hours=5),
        duration_or_party_size=duration_or_party_size,
        now=NOW,
        source=source,
        vehicle=(
            VehicleInfo.normalized("abc 123")
            if resource_type == ResourceType.VALET
            else None
        ),
    )


def test_internal_reservation_starts_pending_with_history() -> None:
    reservation = _reservation()

    assert reservation.status == ReservationStatus.PENDING
    assert reservation.source.system == "LEDGER"
    assert len(reservation.history) == 1
    assert reservation.history[0].actor == ChangeActor.SYSTEM
    assert reservation.history[0].reason == "created"
    assert reservation.history[0].previous_status is None


def test_external_reservation_starts_confirmed_and_keeps_source() -> None:
    reservation = _reservation(source=ReservationSource.external("OpenTable", "ot-778"))

    assert reservation.status == ReservationStatus.CONFIRMED
    assert reservation.source.is_external
    assert reservation.source.external_id == "ot-778"
    assert reservation.history[0].actor == ChangeActor.SYNC


def test_transition_table_covers_every_status() -> None:
    assert set(ALLOWED_TRANSITIONS) == set(ReservationStatus)


@pytest.mark.parametrize(
    "source,target",
    [
        (source, target)
        for source in ReservationStatus
        for target in ReservationStatus
        if target not in ALLOWED_TRANSITIONS[source]
    ],
)
def test_transitions_outside_the_table_are_rejected(
    source: ReservationStatus,
    target: ReservationStatus,
) -> None:
    reservation = _reservation()
    reservation = replace(reservation, status=source)

    with pytest.raises(InvalidTransitionError):
        reservation.transition_to(target, NOW, ChangeActor.VENUE)


def test_full_lifecycle_appends_history() -> None:
    reservation = _reservation(start_at=NOW - timedelta(minutes=5))

    completed = reservation.confirm(NOW).check_in(NOW).seat(NOW).complete(NOW)

    assert completed.status == ReservationStatus.COMPLETED
    assert [change.status for change in completed.history] == [
        ReservationStatus.PENDING,
        ReservationStatus.CONFIRMED,
        ReservationStatus.CHECKED_IN,
        ReservationStatus.SEATED,
        ReservationStatus.COMPLETED,
    ]
    assert completed.history[-1].previous_status == ReservationStatus.SEATED


def test_terminal_states_reject_further_moves() -> None:
    cancelled = _reservation().cancel(NOW, ChangeActor.HOLDER)

    with pytest.raises(InvalidTransitionError):
        cancelled.confirm(NOW)


def test_no_show_not_allowed_before_start_time() -> None:
    confirmed = _reservation().confirm(NOW)

    with pytest.raises(InvalidTransitionError):
        confirmed.mark_no_show(NOW)

    assert confirmed.mark_no_show(NOW + timedelta(hours=6)).status == ReservationStatus.NO_SHOW


def test_bowling_effective_end_adds_duration() -> None:
    start_at = NOW + timedelta(hours=1)
    reservation = _reservation(
        start_at=start_at,
        resource_type=ResourceType.BOWLING_LANE,
        duration_or_party_size=90,
    )

    assert reservation.effective_end == start_at + timedelta(minutes=90)


def test_valet_view_maps_reservation_statuses() -> None:
    reservation = _reservation(resource_type=ResourceType.VALET)

    assert reservation.vehicle is not None
    assert reservation.vehicle.license_plate == "ABC 123"
    assert reservation.valet_status == ValetStatus.PENDING
    assert reservation.confirm(NOW).check_in(NOW).valet_status == ValetStatus.ARRIVED
    assert _reservation().valet_status is None


def test_valet_requires_vehicle() -> None:
    with pytest.raises(ValueError):
        create_reservation(
            reservation_id=ReservationId("res_002"),
            venue_id=VenueId("ven_bistro"),
            holder_id=UserId("usr_001"),
            resource_type=ResourceType.VALET,
            start_at=NOW,
            duration_or_party_size=1,
            now=NOW,
        )


def test_holder_may_change_more_than_two_hours_out() -> None:
    reservation = _reservation(start_at=NOW + timedelta(minutes=181))

    assert holder_can_change(reservation, NOW)
    ensure_holder_can_change(reservation, NOW)


def test_holder_change_window_closes_at_two_hours() -> None:
    reservation = _reservation(start_at=NOW + timedelta(minutes=90))

    assert not holder_can_change(reservation, NOW)
    with pytest.raises(CancellationWindowClosedError) as exc_info:
        ensure_holder_can_change(reservation, NOW)
    assert exc_info.value.code == "CANCELLATION_WINDOW_CLOSED"

    exactly_two_hours = _reservation(start_at=NOW + timedelta(hours=2))
    assert not holder_can_change(exactly_two_hours, NOW)


def test_external_reservations_are_never_holder_changeable() -> None:
    reservation = _reservation(
        start_at=NOW + timedelta(days=3),
        source=ReservationSource.external("Resy", "rz-1"),
    )

    assert not holder_can_change(reservation, NOW)
    with pytest.raises(UnsupportedSourceError) as exc_info:
        ensure_holder_can_change(reservation, NOW)
    assert exc_info.value.code == "UNSUPPORTED_SOURCE"
