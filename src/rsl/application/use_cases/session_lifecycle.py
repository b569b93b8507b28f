from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from rsl.application.dto.responses import GroupSessionResponse
from rsl.application.mappers.notification_mapper import (
    session_closed_notification,
    session_status_changed_notification,
)
from rsl.application.mappers.session_mapper import to_group_session_response
from rsl.application.metrics.ledger import record_session_closed
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import GroupSessionRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import NotFoundError
from rsl.domain.common.ids import SessionId, VenueId
from rsl.domain.session.entities import GroupSession

logger = logging.getLogger(__name__)


class SessionAction(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"
    COMPLETE = "complete"


class GetGroupSession:
    def __init__(
        self,
        session_repository: GroupSessionRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._clock = clock

    def execute(self, venue_id: VenueId, session_id: SessionId) -> GroupSessionResponse:
        session = self._session_repository.get(venue_id, session_id)
        if session is None:
            raise NotFoundError(f"session {session_id} not found")
        return to_group_session_response(session, self._clock())


class ChangeSessionStatus:
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
        action: SessionAction,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        now = self._clock()

        def mutate(current: GroupSession) -> GroupSession:
            if action == SessionAction.PAUSE:
                return current.pause(now)
            if action == SessionAction.RESUME:
                return current.resume(now)
            return current.complete(now)

        write = apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(venue_id, session_id),
            mutate=mutate,
            save=self._session_repository.update_with_version,
            missing_message=f"session {session_id} not found",
        )
        session = write.after or write.before
        logger.info(
            "group_session_status_changed",
            extra={
                "venue_id": str(venue_id),
                "session_id": str(session_id),
                "from_status": write.before.status.value,
                "to_status": session.status.value,
            },
        )
        if session.is_terminal:
            record_session_closed(session.status.value)
            notification = session_closed_notification(session, now)
        else:
            notification = session_status_changed_notification(session, write.before.status, now)
        publish_notifications(self._publisher, [notification], trace_ctx)
        return to_group_session_response(session, now)
