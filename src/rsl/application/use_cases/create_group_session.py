from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4

from rsl.application.dto.requests import CreateGroupSessionRequest
from rsl.application.dto.responses import GroupSessionResponse
from rsl.application.mappers.notification_mapper import session_created_notification
from rsl.application.mappers.session_mapper import to_group_session_response
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import GroupSessionRepository, VenueRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.domain.common.clock import ensure_utc, utc_now
from rsl.domain.common.errors import LedgerValidationError, NotFoundError
from rsl.domain.common.ids import SessionId, UserId, VenueId
from rsl.domain.session.entities import SessionMember, create_group_session
from rsl.domain.venue.entities import VenueFeature

logger = logging.getLogger(__name__)


class CreateGroupSession:
    def __init__(
        self,
        session_repository: GroupSessionRepository,
        venue_repository: VenueRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._venue_repository = venue_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        venue_id: VenueId,
        request_dto: CreateGroupSessionRequest,
        trace_ctx: TraceContext,
    ) -> GroupSessionResponse:
        venue = self._venue_repository.get(venue_id)
        if venue is None:
            raise NotFoundError(f"venue {venue_id} not found")
        if not venue.supports(VenueFeature.GAMING):
            raise LedgerValidationError(f"venue {venue_id} has no gaming venue")

        missing = [
            field_name
            for field_name, value in (
                ("parentUserId", request_dto.parent_user_id),
                ("parentName", request_dto.parent_name),
            )
            if not value.strip()
        ]
        if missing:
            raise LedgerValidationError(
                f"missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

        now = self._clock()
        try:
            session = create_group_session(
                session_id=SessionId(f"ses_{uuid4().hex[:12]}"),
                venue_id=venue_id,
                parent_user_id=UserId(request_dto.parent_user_id.strip()),
                parent_name=request_dto.parent_name.strip(),
                start_time=ensure_utc(request_dto.start_time),
                time_limit_minutes=request_dto.time_limit_minutes,
                now=now,
                parent_email=request_dto.parent_email,
                parent_phone=request_dto.parent_phone,
                members=[
                    SessionMember(
                        name=member.name,
                        user_id=member.user_id,
                        email=member.email,
                        phone=member.phone,
                        is_parent=member.is_parent,
                    )
                    for member in request_dto.members
                ],
                card_on_file=request_dto.card_on_file,
                card_last4=request_dto.card_last4,
                notes=request_dto.notes,
            )
        except ValueError as exc:
            raise LedgerValidationError(str(exc)) from exc

        self._session_repository.add(session)
        logger.info(
            "group_session_created",
            extra={"venue_id": str(venue_id), "session_id": str(session.session_id)},
        )
        publish_notifications(
            self._publisher,
            [session_created_notification(session, now)],
            trace_ctx,
        )
        return to_group_session_response(session, now)
