from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rsl.application.dto.responses import WarningSweepResponse
from rsl.application.mappers.notification_mapper import (
    session_closed_notification,
    time_alert_notifications,
)
from rsl.application.metrics.ledger import (
    record_active_sessions,
    record_session_closed,
    record_session_warning,
)
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import GroupSessionRepository
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.notify import publish_notifications
from rsl.application.use_cases.versioned_write import VersionedWrite, apply_versioned_write
from rsl.domain.common.clock import utc_now
from rsl.domain.common.errors import ConcurrentModificationError, NotFoundError
from rsl.domain.notification.entities import Notification
from rsl.domain.session.entities import GroupSession, SessionStatus, WarningLevel

logger = logging.getLogger(__name__)


def evaluate_session(session: GroupSession, now: datetime) -> GroupSession | None:
    """Return the session with expiry or warning flags applied, or None if nothing is due."""
    if session.status != SessionStatus.ACTIVE:
        return None
    if session.remaining(now).total_seconds() <= 0:
        return session.expire(now)
    due = session.due_warnings(now)
    if not due:
        return None
    return session.with_warnings_sent(due, now)


class SweepSessionWarnings:
    """One pass of the warning evaluator over every ACTIVE session.

    Flags are written with a version-guarded update before any notification
    goes out, so when several evaluators race only the one whose write lands
    notifies; the others re-read, find the flag set and stay silent.
    """

    def __init__(
        self,
        session_repository: GroupSessionRepository,
        publisher: NotificationPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_repository = session_repository
        self._publisher = publisher
        self._clock = clock

    def execute(self, trace_ctx: TraceContext) -> WarningSweepResponse:
        sessions = self._session_repository.list_by_status(SessionStatus.ACTIVE)
        record_active_sessions(len(sessions))

        fifteen = five = expired = conflicts = 0
        for session in sessions:
            try:
                write = self._evaluate_one(session)
            except ConcurrentModificationError:
                conflicts += 1
                logger.warning(
                    "warning_sweep_conflict",
                    extra={"venue_id": str(session.venue_id), "session_id": str(session.session_id)},
                )
                continue
            except NotFoundError:
                continue

            if write.after is None:
                continue

            announced = _announced_level(write)
            if announced == WarningLevel.FIFTEEN_MINUTES:
                fifteen += 1
            elif announced == WarningLevel.FIVE_MINUTES:
                five += 1
            notifications = self._notifications_for(write, announced)
            if write.after.status == SessionStatus.EXPIRED:
                expired += 1
            publish_notifications(self._publisher, notifications, trace_ctx)

        logger.info(
            "warning_sweep_complete",
            extra={
                "evaluated": len(sessions),
                "expired": expired,
                "conflicts": conflicts,
            },
        )
        return WarningSweepResponse(
            evaluated=len(sessions),
            fifteenMinuteWarnings=fifteen,
            fiveMinuteWarnings=five,
            expired=expired,
            conflicts=conflicts,
        )

    def _evaluate_one(self, session: GroupSession) -> VersionedWrite[GroupSession]:
        now = self._clock()
        return apply_versioned_write(
            entity="group_session",
            load=lambda: self._session_repository.get(session.venue_id, session.session_id),
            mutate=lambda current: evaluate_session(current, now),
            save=self._session_repository.update_with_version,
            missing_message=f"session {session.session_id} not found",
        )

    def _notifications_for(
        self,
        write: VersionedWrite[GroupSession],
        announced: WarningLevel | None,
    ) -> list[Notification]:
        before, after = write.before, write.after
        if after is None:
            return []
        now = after.updated_at

        if after.status == SessionStatus.EXPIRED and before.status != SessionStatus.EXPIRED:
            record_session_closed(after.status.value)
            logger.info(
                "group_session_expired",
                extra={"venue_id": str(after.venue_id), "session_id": str(after.session_id)},
            )
            return [session_closed_notification(after, now)]

        if announced is None:
            return []
        record_session_warning(announced.value)
        return time_alert_notifications(after, announced, now)


def _announced_level(write: VersionedWrite[GroupSession]) -> WarningLevel | None:
    before, after = write.before, write.after
    if after is None or after.status != SessionStatus.ACTIVE:
        return None
    newly_sent = [
        level
        for level in WarningLevel
        if after.is_warning_sent(level) and not before.is_warning_sent(level)
    ]
    # a looser threshold crossed in the same pass is marked but not announced
    return WarningLevel.tightest(newly_sent)
