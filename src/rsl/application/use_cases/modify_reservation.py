from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import ModifyReservationRequest
from rsl.application.dto.responses import ReservationResponse
from rsl.application.mappers.notification_mapper import reservation_modified_notification
from rsl.application.mappers.reservation_mapper import to_reservation_response
from rsl.application.metrics.ledger import record_policy_rejection
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import ReservationRepository
from rsl.application.use_cases.cancel_reservation import check_holder_policy, ensure_holder_owns
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import ensure_utc, utc_now
from rsl.domain.common.errors import InvalidTransitionError, LedgerValidationError
from rsl.domain.common.ids import ReservationId, VenueId
from rsl.domain.reservation.entities import Reservation, ReservationStatus
from rsl.domain.reservation.policy import HOLDER_CHANGE_CUTOFF

logger = logging.getLogger(__name__)

MODIFIABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


class ModifyReservation:
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
        request_dto: ModifyReservationRequest,
        trace_ctx: TraceContext,
    ) -> ReservationResponse:
        if (
            request_dto.start_at is None
            and request_dto.duration_or_party_size is None
            and request_dto.special_requests is None
        ):
            raise LedgerValidationError("nothing to modify")

        now = self._clock()
        new_start = ensure_utc(request_dto.start_at) if request_dto.start_at else None
        if new_start is not None and new_start - now <= HOLDER_CHANGE_CUTOFF:
            record_policy_rejection("NEW_START_INSIDE_WINDOW")
            raise LedgerValidationError(
                "a new start time must be more than 2 hours away",
                details={"startAt": new_start.isoformat()},
            )

        def mutate(current: Reservation) -> Reservation:
            ensure_holder_owns(current, request_dto.holder_id)
            check_holder_policy(current, now)
            if current.status not in MODIFIABLE_STATUSES:
                raise InvalidTransitionError(
                    f"cannot modify reservation from status={current.status.value}",
                    details={"status": current.status.value},
                )
            return current.rescheduled(
                now,
                start_at=new_start,
                duration_or_party_size=request_dto.duration_or_party_size,
                special_requests=request_dto.special_requests,
            )

        write = apply_versioned_write(
            entity="reservation",
            load=lambda: self._reservation_repository.get(venue_id, reservation_id),
            mutate=mutate,
            save=self._reservation_repository.update_with_version,
            missing_message=f"reservation {reservation_id} not found",
        )
        modified = write.after or write.before
        logger.info(
            "reservation_modified",
            extra={"venue_id": str(venue_id), "reservation_id": str(reservation_id)},
        )
        publish_notifications(
            self._publisher,
            [reservation_modified_notification(modified, now)],
            trace_ctx,
        )
        return to_reservation_response(modified, now)
