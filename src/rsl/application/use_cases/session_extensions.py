from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import (
    DeclineSessionExtensionRequest,
    GrantSessionExtensionRequest,
    SessionExtensionRequest,
)
from rsl.application.dto.responses import GroupSessionResponse
from rsl.application.mappers.notification_mapper import (
    extension_declined_notification,
    extension_granted_notification,
    extension_request_acknowledged_notification,
    extension_requested_notification,
)
from rsl.application.mappers.session_mapper import to_group_session_response
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import GroupSessionRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import add_minutes, ensure_utc, utc_now
from rsl.domain.common.errors import LedgerValidationError
from rsl.domain.common.ids import SessionId, VenueId
from rsl.domain.session.entities import GroupSession

logger = logging.getLogger(__name__)


class RequestSessionExtension:
    def __init__(
        self,
        session_repository: GroupSessionRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        session_id: SessionId,
        request_dto: SessionExtensionRequest,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        now = self._clock()

        def mutate(current: GroupSession) -> GroupSession:
            try:
                return current.with_extension_request(request_dto.minutes, now)
            except ValueError as exc:
                raise LedgerValidationError(str(exc)) from exc

        write = apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(venue_id, session_id),
            mutate=mutate,
            save=self._session_repository.update_with_version,
            missing_message=f"session {session_id} not found",
        )
        session = write.after or write.before
        logger.info(
            "group_session_extension_requested",
            extra={"venue_id": str(venue_id), "session_id": str(session_id)},
        )
        publish_notifications(
            self._publisher,
            [
                extension_requested_notification(session, request_dto.minutes, now),
                extension_request_acknowledged_notification(session, request_dto.minutes, now),
            ],
            trace_ctx,
        )
        return to_group_session_response(session, now)


class GrantSessionExtension:
    def __init__(
        self,
        session_repository: GroupSessionRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        session_id: SessionId,
        request_dto: GrantSessionExtensionRequest,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        if request_dto.minutes is None and request_dto.until is None:
            raise LedgerValidationError("either minutes or until is required")

        now = self._clock()

        def mutate(current: GroupSession) -> GroupSession:
            if request_dto.until is not None:
                until = ensure_utc(request_dto.until)
            else:
                # extend from whichever is later: the current end or now
                base = max(current.effective_end, now)
                until = add_minutes(base, request_dto.minutes or 0)
            try:
                return current.with_extension_granted(until, now)
            except ValueError as exc:
                raise LedgerValidationError(str(exc)) from exc

        write = apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(venue_id, session_id),
            mutate=mutate,
            save=self._session_repository.update_with_version,
            missing_message=f"session {session_id} not found",
        )
        session = write.after or write.before
        logger.info(
            "group_session_extended",
            extra={"venue_id": str(venue_id), "session_id": str(session_id)},
        )
        publish_notifications(
            self._publisher,
            [extension_granted_notification(session, now)],
            trace_ctx,
        )
        return to_group_session_response(session, now)


class DeclineSessionExtension:
    def __init__(
        self,
        session_repository: GroupSessionRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        session_id: SessionId,
        request_dto: DeclineSessionExtensionRequest,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        now = self._clock()

        def mutate(current: GroupSession) -> GroupSession:
            try:
                return current.with_extension_declined(now)
            except ValueError as exc:
                raise LedgerValidationError(str(exc)) from exc

        write = apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(venue_id, session_id),
            mutate=mutate,
            save=self._session_repository.update_with_version,
            missing_message=f"session {session_id} not found",
        )
        session = write.after or write.before
        logger.info(
            "group_session_extension_declined",
            extra={"venue_id": str(venue_id), "session_id": str(session_id)},
        )
        publish_notifications(
            self._publisher,
            [
                extension_declined_notification(
                    session,
                    write.before.extension_requested_minutes,
                    request_dto.reason,
                    now,
                )
            ],
            trace_ctx,
        )
        return to_group_session_response(session, now)
