from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.requests import SessionMemberRequest
from rsl.application.dto.responses import GroupSessionResponse
from rsl.application.mappers.notification_mapper import session_member_added_notification
from rsl.application.mappers.session_mapper import to_group_session_response
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import GroupSessionRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.ids import SessionId, VenueId
from rsl.domain.session.entities import GroupSession, SessionMember

logger = logging.getLogger(__name__)


class AddSessionMember:
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
        request_dto: SessionMemberRequest,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        now = self._clock()
        member = SessionMember(
            name=request_dto.name,
            user_id=request_dto.user_id,
            email=request_dto.email,
            phone=request_dto.phone,
        )

        def mutate(current: GroupSession) -> GroupSession:
            return current.with_member(member, now)

        write = apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(venue_id, session_id),
            mutate=mutate,
            save=self._session_repository.update_with_version,
            missing_message=f"session {session_id} not found",
        )
        session = write.after or write.before
        logger.info(
            "group_session_member_added",
            extra={
                "venue_id": str(venue_id),
                "session_id": str(session_id),
                "attempt": write.attempts,
            },
        )
        publish_notifications(
            self._publisher,
            [session_member_added_notification(session, member, now)],
            trace_ctx,
        )
        return to_group_session_response(session, now)
