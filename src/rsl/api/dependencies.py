from __future__ import annotations

from rsl.api.middleware.request_id import get_request_id
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.ports.repositories import (
    GroupSessionRepository,
    ReservationRepository,
    VenueRepository,
)
from rsl.application.use_cases.context import TraceContext
from rsl.infrastructure.db.repositories.group_session_repo import (
    SqlAlchemyGroupSessionRepository,
)
from rsl.infrastructure.db.repositories.reservation_repo import SqlAlchemyReservationRepository
from rsl.infrastructure.db.repositories.venue_repo import SqlAlchemyVenueRepository
from rsl.infrastructure.messaging.redis_publisher import RedisNotificationPublisher
from rsl.infrastructure.observability.otel import current_trace_id


def venue_repository() -> VenueRepository:
    return SqlAlchemyVenueRepository()


def reservation_repository() -> ReservationRepository:
    return SqlAlchemyReservationRepository()


def session_repository() -> GroupSessionRepository:
    return SqlAlchemyGroupSessionRepository()


def notification_publisher() -> NotificationPublisher:
    return RedisNotificationPublisher()


def trace_context() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())
