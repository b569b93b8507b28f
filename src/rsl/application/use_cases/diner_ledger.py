from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.responses import LedgerResponse
from rsl.application.mappers.ledger_mapper import to_ledger_response
from rsl.application.metrics.ledger import record_venue_skipped
from rsl.application.ports.repositories import (
    GroupSessionRepository,
    ReservationRepository,
    UnsupportedQueryError,
    VenueRepository,
)
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import UpstreamUnavailableError
from rsl.domain.common.identity import Identity
from rsl.domain.common.ids import UserId
from rsl.domain.ledger.entries import LedgerEntry, LedgerRole, partition_entries
from rsl.domain.reservation.entities import RESOURCE_FEATURES
from rsl.domain.venue.entities import Venue, VenueFeature

logger = logging.getLogger(__name__)

DEFAULT_PAST_LIMIT = 50

_SKIPPABLE_ERRORS = (UpstreamUnavailableError, UnsupportedQueryError)


class DinerLedger:
    """Everything one diner holds across venues, split into current and past."""

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

    def execute(self, diner_id: UserId, email: str | None = None) -> LedgerResponse:
        now = self._clock()
        identity = Identity.of(user_id=diner_id, email=email)
        entries: list[LedgerEntry] = []
        skipped: list[str] = []

        for venue in self._venue_repository.list_venues():
            try:
                entries.extend(self._reservations_at(venue, diner_id))
            except _SKIPPABLE_ERRORS:
                self._skip(venue, "reservations", skipped)

            if not venue.supports(VenueFeature.GAMING):
                continue
            try:
                entries.extend(self._sessions_at(venue, diner_id, identity))
            except _SKIPPABLE_ERRORS:
                self._skip(venue, "group_sessions", skipped)

        current, past = partition_entries(entries, now, past_limit=self._past_limit)
        return to_ledger_response(current, past, skipped, now)

    def _reservations_at(self, venue: Venue, diner_id: UserId) -> list[LedgerEntry]:
        resource_types = frozenset(
            resource_type
            for resource_type, feature in RESOURCE_FEATURES.items()
            if venue.supports(feature)
        )
        reservations = self._reservation_repository.list_for_holder(
            venue.venue_id,
            diner_id,
            resource_types=resource_types,
        )
        return [
            LedgerEntry.from_reservation(reservation, LedgerRole.HOLDER, venue.name)
            for reservation in reservations
        ]

    def _sessions_at(
        self,
        venue: Venue,
        diner_id: UserId,
        identity: Identity,
    ) -> list[LedgerEntry]:
        entries = [
            LedgerEntry.from_session(session, LedgerRole.PARENT, venue.name)
            for session in self._session_repository.list_for_parent(venue.venue_id, diner_id)
        ]
        # membership lives inside each session document, so this is a full venue scan
        for session in self._session_repository.list_for_venue(venue.venue_id):
            member = session.find_member(identity)
            if member is None:
                continue
            role = LedgerRole.PARENT if member.is_parent else LedgerRole.MEMBER
            entries.append(LedgerEntry.from_session(session, role, venue.name))
        return entries

    def _skip(self, venue: Venue, resource: str, skipped: list[str]) -> None:
        record_venue_skipped(resource)
        logger.warning(
            "venue_skipped",
            exc_info=True,
            extra={"venue_id": str(venue.venue_id), "resource": resource},
        )
        if str(venue.venue_id) not in skipped:
            skipped.append(str(venue.venue_id))
