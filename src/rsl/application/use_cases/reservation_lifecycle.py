from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from rsl.application.dto.requests import ExternalStatusRequest, TransitionReservationRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_transition_notifications
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.metrics.ledger import record_reservation_transition
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import ReservationRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import VersionedWrite, apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import UnsupportedSourceError
from rsl.domain.common.ids import ReservationId, VenueId
from rsl.domain.reservation.entities import ChangeActor, Reservation

logger = logging.getLogger(__name__)


class ReservationAction(str, Enum):
    CONFIRM = "confirm"
    CHECK_IN = "check-in"
    SEAT = "seat"
    COMPLETE = "complete"
    NO_SHOW = "no-show"
    VENUE_CANCEL = "venue-cancel"


def _apply_action(
    reservation: Reservation,
    action: ReservationAction,
    now: datetime,
    reason: str | None,
) -> Reservation:
    if action == ReservationAction.CONFIRM:
        return reservation.confirm(now)
    if action == ReservationAction.CHECK_IN:
        return reservation.check_in(now)
    if action == ReservationAction.SEAT:
        return reservation.seat(now)
    if action == ReservationAction.COMPLETE:
        return reservation.complete(now)
    if action == ReservationAction.NO_SHOW:
        return reservation.mark_no_show(now)
    if reservation.source.is_external:
        raise UnsupportedSourceError(
            f"reservations from {reservation.source.system} must be cancelled through "
            f"{reservation.source.system}",
            details={"system": reservation.source.system},
        )
    return reservation.cancel(now, ChangeActor.VENUE, reason=reason)


def _after_transition(
    write: VersionedWrite[Reservation],
    publisher: NotificationPublisher,
    now: datetime,
    trace_ctx: TraceContext,
) -> Reservation:
    before = write.before
    after = write.after if write.after is not None else before
    if write.after is None:
        return after

    record_reservation_transition(
        after.resource_type.value,
        before.status.value,
        after.status.value,
    )
    logger.info(
        "reservation_transitioned",
        extra={
            "venue_id": str(after.venue_id),
            "reservation_id": str(after.reservation_id),
            "from_status": before.status.value,
            "to_status": after.status.value,
            "attempt": write.attempts,
        },
    )
    publish_notifications(
        publisher,
        reservation_transition_notifications(after, before.status, now),
        trace_ctx,
    )
    return after


class TransitionReservation:
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
        action: ReservationAction,
        trace_ctx: TraceContext,
        request_dto: TransitionReservationRequest | None = None,
    ) -> ReservationResponse:
        request_dto = request_dto or TransitionReservationRequest()
        now = self._clock()

        def mutate(current: Reservation) -> Reservation:
            updated = current
            if request_dto.staff_id:
                updated = updated.with_staff_assignment(
                    request_dto.staff_id,
                    request_dto.staff_name,
                    now,
                )
            return _apply_action(updated, action, now, request_dto.reason)

        write = apply_versioned_write(
            entity="reservation",
            load=lambda: self._reservation_repository.get(venue_id, reservation_id),
            mutate=mutate,
            save=self._reservation_repository.update_with_version,
            missing_message=f"reservation {reservation_id} not found",
        )
        reservation = _after_transition(write, self._publisher, now, trace_ctx)
        return to_reservation_response(reservation, now)


class ApplyExternalStatus:
    """Mirror a status change reported by the booking system a record came from."""

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
        request_dto: ExternalStatusRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        now = self._clock()

        def mutate(current: Reservation) -> Reservation | None:
            if not current.source.is_external or current.source.system != request_dto.system:
                raise UnsupportedSourceError(
                    f"reservation {reservation_id} is not synced from {request_dto.system}",
                    details={"system": current.source.system},
                )
            # sync sources redeliver; the same status again is a no-op
            if current.status == request_dto.status:
                return None
            return current.transition_to(
                request_dto.status,
                now,
                ChangeActor.SYNC,
                reason=request_dto.reason,
            )

        write = apply_versioned_write(
            entity="reservation",
            load=lambda: self._reservation_repository.get(venue_id, reservation_id),
            mutate=mutate,
            save=self._reservation_repository.update_with_version,
            missing_message=f"reservation {reservation_id} not found",
        )
        reservation = _after_transition(write, self._publisher, now, trace_ctx)
        return to_reservation_response(reservation, now)
