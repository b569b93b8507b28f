from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import UpdateReservationMetadataRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_metadata_updated_notification
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import ReservationRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import NotFoundError
from rsl.domain.common.ids import ReservationId, VenueId

logger = logging.getLogger(__name__)


class GetReservation:
    def __init__(
        self,
        reservation_repository: ReservationRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._clock = clock

    def execute(self, venue_id: VenueId, reservation_id: ReservationId) -> ReservationResponse:
        reservation = self._reservation_repository.get(venue_id, reservation_id)
        if reservation is None:
            raise NotFoundError(f"reservation {reservation_id} not found")
        return to_reservation_response(reservation, self._clock())


class UpdateReservationMetadata:
    def __init__(
        self,
        reservation_repository: ReservationRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._reservation_repository = reservation_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        reservation_id: ReservationId,
        request_dto: UpdateReservationMetadataRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        now = self._clock()
        write = apply_versioned_write(
            entity="reservation",
            load=lambda: self._reservation_repository.get(venue_id, reservation_id),
            mutate=lambda current: current.with_metadata(request_dto.metadata, now),
            save=self._reservation_repository.update_with_version,
            missing_message=f"reservation {reservation_id} not found",
        )
        reservation = write.after or write.before
        logger.info(
            "reservation_metadata_updated",
            extra={"venue_id": str(venue_id), "reservation_id": str(reservation_id)},
        )
        updated_keys = sorted(request_dto.metadata)
        publish_notifications(
            self._publisher,
            [reservation_metadata_updated_notification(reservation, updated_keys, now)],
            trace_ctx,
        )
        return to_reservation_response(reservation, now)
