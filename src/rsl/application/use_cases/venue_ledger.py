from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable

from rsl.application.dto.responses import LedgerResponse, VenueReservationsResponse
from rsl.application.mappers.ledger_mapper import to_ledger_response
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.ports.repositories import (
    GroupSessionRepository,
    ReservationRepository,
    UnsupportedQueryError,
    VenueRepository,
)
from rsl.application.use_cases.diner_ledger import DEFAULT_PAST_LIMIT
from rsl.domain.common.clock import ensure_utc, shift_window, utc_now
from rsl.domain.common.errors import LedgerValidationError, NotFoundError
from rsl.domain.common.ids import VenueId
from rsl.domain.ledger.entries import LedgerEntry, LedgerRole, partition_entries
from rsl.domain.reservation.entities import Reservation, ReservationStatus
from rsl.domain.venue.entities import Venue, VenueFeature

logger = logging.getLogger(__name__)


class VenueLedger:
    def __init__(
        self,
        venue_repository: VenueRepository,
        reservation_repository: ReservationRepository,
        session_repository: GroupSessionRepository,
        clock: Callable[[], datetime] = utc_now,
        past_limit: int = DEFAULT_PAST_LIMIT,
    ) -> None:
        self._venue_repository = venue_repository
        self._reservation_repository = reservation_repository
        self._session_repository = session_repository
        self._clock = clock
        self._past_limit = past_limit

    def execute(self, venue_id: VenueId) -> LedgerResponse:
        venue = _require_venue(self._venue_repository, venue_id)
        now = self._clock()

        entries = [
            LedgerEntry.from_reservation(reservation, LedgerRole.VENUE, venue.name)
            for reservation in self._reservation_repository.list_all_for_venue(venue_id)
        ]
        if venue.supports(VenueFeature.GAMING):
            entries.extend(
                LedgerEntry.from_session(session, LedgerRole.VENUE, venue.name)
                for session in self._session_repository.list_for_venue(venue_id)
            )

        current, past = partition_entries(entries, now, past_limit=self._past_limit)
        return to_ledger_response(current, past, [], now)


class ListVenueReservations:
    """Staff dashboard listing for a time window, tolerant of missing store indexes."""

    def __init__(
        self,
        venue_repository: VenueRepository,
        reservation_repository: ReservationRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._venue_repository = venue_repository
        self._reservation_repository = reservation_repository
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        service_date: date | None = None,
        shift_start: time | None = None,
        shift_end: time | None = None,
        status: ReservationStatus | None = None,
    ) -> VenueReservationsResponse:
        _require_venue(self._venue_repository, venue_id)

        if service_date is not None:
            if start_from is not None or start_to is not None:
                raise LedgerValidationError("use either a service date or explicit bounds")
            start_from, start_to = shift_window(
                service_date,
                shift_start or time(0, 0),
                shift_end or time(0, 0),
            )
        else:
            start_from = ensure_utc(start_from) if start_from else None
            start_to = ensure_utc(start_to) if start_to else None
        if start_from and start_to and start_to <= start_from:
            raise LedgerValidationError("window end must be after window start")

        used_fallback = False
        try:
            reservations = self._reservation_repository.list_for_venue(
                venue_id,
                start_from=start_from,
                start_to=start_to,
                status=status,
            )
        except UnsupportedQueryError:
            logger.warning("venue_query_fallback", extra={"venue_id": str(venue_id)})
            used_fallback = True
            reservations = _filter_in_memory(
                self._reservation_repository.list_all_for_venue(venue_id),
                start_from,
                start_to,
                status,
            )

        now = self._clock()
        return VenueReservationsResponse(
            venueId=str(venue_id),
            reservations=[to_reservation_response(item, now) for item in reservations],
            windowStart=start_from,
            windowEnd=start_to,
            usedFallback=used_fallback,
        )


def _require_venue(venue_repository: VenueRepository, venue_id: VenueId) -> Venue:
    venue = venue_repository.get(venue_id)
    if venue is None:
        raise NotFoundError(f"venue {venue_id} not found")
    return venue


def _filter_in_memory(
    reservations: list[Reservation],
    start_from: datetime | None,
    start_to: datetime | None,
    status: ReservationStatus | None,
) -> list[Reservation]:
    selected = [
        reservation
        for reservation in reservations
        if (start_from is None or reservation.start_at >= start_from)
        and (start_to is None or reservation.start_at < start_to)
        and (status is None or reservation.status == status)
    ]
    selected.sort(key=lambda reservation: (reservation.start_at, str(reservation.reservation_id)))
    return selected
