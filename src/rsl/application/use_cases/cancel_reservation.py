from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import CancelReservationRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_transition_notifications
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.metrics.ledger import record_policy_rejection, record_reservation_transition
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import ReservationRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import (
    CancellationWindowClosedError,
    NotFoundError,
    UnsupportedSourceError,
)
from rsl.domain.common.ids import ReservationId, VenueId
from rsl.domain.reservation.entities import ChangeActor, Reservation
from rsl.domain.reservation.policy import ensure_holder_can_change

logger = logging.getLogger(__name__)


def ensure_holder_owns(reservation: Reservation, holder_id: str) -> None:
    if str(reservation.holder_id) != holder_id:
        raise NotFoundError(f"reservation {reservation.reservation_id} not found")


def check_holder_policy(reservation: Reservation, now: datetime) -> None:
    try:
        ensure_holder_can_change(reservation, now)
    except (UnsupportedSourceError, CancellationWindowClosedError) as exc:
        record_policy_rejection(exc.code)
        raise


class CancelReservation:
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
        request_dto: CancelReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        now = self._clock()

        def mutate(current: Reservation) -> Reservation:
            ensure_holder_owns(current, request_dto.holder_id)
            check_holder_policy(current, now)
            return current.cancel(now, ChangeActor.HOLDER, reason=request_dto.reason)

        write = apply_versioned_write(
            entity="reservation",
            load=lambda: self._reservation_repository.get(venue_id, reservation_id),
            mutate=mutate,
            save=self._reservation_repository.update_with_version,
            missing_message=f"reservation {reservation_id} not found",
        )
        cancelled = write.after or write.before
        record_reservation_transition(
            cancelled.resource_type.value,
            write.before.status.value,
            cancelled.status.value,
        )
        logger.info(
            "reservation_cancelled",
            extra={
                "venue_id": str(venue_id),
                "reservation_id": str(reservation_id),
                "attempt": write.attempts,
            },
        )
        publish_notifications(
            self._publisher,
            reservation_transition_notifications(cancelled, write.before.status, now),
            trace_ctx,
        )
        return to_reservation_response(cancelled, now)
