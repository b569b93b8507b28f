from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from rsl.application.dto.requests import CreateReservationRequest, VehicleRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_created_notification
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.metrics.ledger import record_reservation_created
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import ReservationRepository, VenueRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.domain.common.clock import ensure_utc, utc_now
from rsl.domain.common.errors import LedgerValidationError, NotFoundError
from rsl.domain.common.ids import ReservationId, UserId, VenueId
from rsl.domain.reservation.entities import (
    RESOURCE_FEATURES,
    SPECIAL_REQUESTS_KEY,
    Reservation,
    ResourceType,
    VehicleInfo,
    create_reservation,
)
from rsl.domain.venue.entities import Venue

logger = logging.getLogger(__name__)


def new_reservation_id() -> ReservationId:
    return ReservationId(f"res_{uuid4().hex[:12]}")


def ensure_venue_offers(venue: Venue, resource_type: ResourceType) -> None:
    if not venue.supports(RESOURCE_FEATURES[resource_type]):
        raise LedgerValidationError(
            f"venue {venue.venue_id} does not offer {resource_type.value} reservations",
            details={"resourceType": resource_type.value},
        )


def to_vehicle(vehicle: VehicleRequest | None) -> VehicleInfo | None:
    if vehicle is None:
        return None
    return VehicleInfo.normalized(
        license_plate=vehicle.license_plate,
        make=vehicle.make,
        model=vehicle.model,
        color=vehicle.color,
    )


class CreateReservation:
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
        request_dto: CreateReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        venue = self._venue_repository.get(venue_id)
        if venue is None:
            raise NotFoundError(f"venue {venue_id} not found")
        ensure_venue_offers(venue, request_dto.resource_type)

        if not request_dto.holder_id.strip():
            raise LedgerValidationError("holderId is required")
        if request_dto.resource_type == ResourceType.VALET and request_dto.vehicle is None:
            raise LedgerValidationError("vehicle is required for valet reservations")

        metadata: dict[str, Any] = dict(request_dto.metadata)
        if request_dto.special_requests:
            metadata[SPECIAL_REQUESTS_KEY] = request_dto.special_requests

        now = self._clock()
        try:
            reservation = create_reservation(
                reservation_id=new_reservation_id(),
                venue_id=venue_id,
                holder_id=UserId(request_dto.holder_id.strip()),
                resource_type=request_dto.resource_type,
                start_at=ensure_utc(request_dto.start_at),
                duration_or_party_size=request_dto.duration_or_party_size,
                now=now,
                metadata=metadata,
                vehicle=to_vehicle(request_dto.vehicle),
                holder_name=request_dto.holder_name,
                holder_email=request_dto.holder_email,
                holder_phone=request_dto.holder_phone,
            )
        except ValueError as exc:
            raise LedgerValidationError(str(exc)) from exc

        self._reservation_repository.add(reservation)
        self._after_create(reservation, now, trace_ctx)
        return to_reservation_response(reservation, now)

    def _after_create(self, reservation: Reservation, now: datetime, trace_ctx: TraceContext) -> None:
        record_reservation_created(reservation.resource_type.value, reservation.source.kind.value)
        logger.info(
            "reservation_created",
            extra={
                "venue_id": str(reservation.venue_id),
                "reservation_id": str(reservation.reservation_id),
            },
        )
        publish_notifications(
            self._publisher,
            [reservation_created_notification(reservation, now)],
            trace_ctx,
        )
