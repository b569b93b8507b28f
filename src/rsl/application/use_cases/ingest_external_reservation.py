from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import IngestExternalReservationRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_created_notification
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.metrics.ledger import record_reservation_created
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import (
    DuplicateRecordError,
    ReservationRepository,
    VenueRepository,
)
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.create_reservation import (
    ensure_venue_offers,
    new_reservation_id,
    to_vehicle,
)
from rsl.application.use_cases.notify import publish_notifications
from rsl.domain.common.clock import parse_instant, utc_now
from rsl.domain.common.errors import LedgerValidationError, NotFoundError
from rsl.domain.common.ids import UserId, VenueId
from rsl.domain.reservation.entities import ReservationSource, create_reservation

logger = logging.getLogger(__name__)


class IngestExternalReservation:
    def __init__(
        self,
        reservation_repository: ReservationRepository,
        venue_repository: VenueRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._venue_repository = venue_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        request_dto: IngestExternalReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        venue = self._venue_repository.get(venue_id)
        if venue is None:
            raise NotFoundError(f"venue {venue_id} not found")
        ensure_venue_offers(venue, request_dto.resource_type)

        now = self._clock()
        existing = self._reservation_repository.find_by_external_id(
            venue_id=venue_id,
            system=request_dto.system,
            external_id=request_dto.external_id,
        )
        if existing is not None:
            logger.info(
                "external_reservation_replayed",
                extra={"venue_id": str(venue_id), "reservation_id": str(existing.reservation_id)},
            )
            return to_reservation_response(existing, now)

        start_at = parse_instant(request_dto.start_at)
        if start_at is None:
            raise LedgerValidationError(
                "startAt could not be parsed",
                details={"startAt": str(request_dto.start_at)},
            )

        try:
            reservation = create_reservation(
                reservation_id=new_reservation_id(),
                venue_id=venue_id,
                holder_id=UserId(request_dto.holder_id),
                resource_type=request_dto.resource_type,
                start_at=start_at,
                duration_or_party_size=request_dto.duration_or_party_size,
                now=now,
                source=ReservationSource.external(request_dto.system, request_dto.external_id),
                metadata=request_dto.metadata,
                vehicle=to_vehicle(request_dto.vehicle),
                holder_name=request_dto.holder_name,
                holder_email=request_dto.holder_email,
                holder_phone=request_dto.holder_phone,
            )
        except ValueError as exc:
            raise LedgerValidationError(str(exc)) from exc

        try:
            self._reservation_repository.add(reservation)
        except DuplicateRecordError:
            current = self._reservation_repository.find_by_external_id(
                venue_id=venue_id,
                system=request_dto.system,
                external_id=request_dto.external_id,
            )
            if current is None:
                raise
            return to_reservation_response(current, now)

        record_reservation_created(reservation.resource_type.value, reservation.source.kind.value)
        logger.info(
            "external_reservation_ingested",
            extra={
                "venue_id": str(venue_id),
                "reservation_id": str(reservation.reservation_id),
            },
        )
        publish_notifications(
            self._publisher,
            [reservation_created_notification(reservation, now)],
            trace_ctx,
        )
        return to_reservation_response(reservation, now)
