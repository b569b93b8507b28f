from __future__ import annotations

from datetime import datetime, timedelta

from rsl.domain.common.errors import CancellationWindowClosedError, UnsupportedSourceError
from rsl.domain.reservation.entities import Reservation

HOLDER_CHANGE_CUTOFF = timedelta(hours=2)


def holder_change_deadline(reservation: Reservation) -> datetime:
    return reservation.start_at - HOLDER_CHANGE_CUTOFF


def holder_can_change(reservation: Reservation, now: datetime) -> bool:
    if reservation.source.is_external or reservation.is_terminal:
        return False
    return reservation.start_at - now > HOLDER_CHANGE_CUTOFF


def ensure_holder_can_change(reservation: Reservation, now: datetime) -> None:
    if reservation.source.is_external:
        raise UnsupportedSourceError(
            f"reservations from {reservation.source.system} must be changed through "
            f"{reservation.source.system}",
            details={"system": reservation.source.system},
        )
    if reservation.start_at - now <= HOLDER_CHANGE_CUTOFF:
        raise CancellationWindowClosedError(
            "reservations cannot be changed within 2 hours of the reservation time",
            details={"deadline": holder_change_deadline(reservation).isoformat()},
        )
