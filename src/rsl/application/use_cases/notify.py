from __future__ import annotations

import logging
from typing import Iterable

from rsl.application.mappers.event_envelope import notification_channel, serialize_notification
from rsl.application.metrics.ledger import record_notification_failure
from rsl.application.ports.publisher import NotificationPublisher
from rsl.application.use_cases.context import TraceContext
from rsl.domain.notification.entities import Notification

logger = logging.getLogger(__name__)


def publish_notifications(
    publisher: NotificationPublisher,
    notifications: Iterable[Notification],
    trace_ctx: TraceContext,
) -> int:
    published = 0
    for notification in notifications:
        message = serialize_notification(
            notification,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        try:
            publisher.publish(
                channel=notification_channel(notification.venue_id),
                message=message,
            )
        except Exception:
            record_notification_failure(notification.type.value)
            logger.warning(
                "notification_publish_failed",
                exc_info=True,
                extra={
                    "venue_id": notification.venue_id,
                    "notification_type": notification.type.value,
                },
            )
            continue
        published += 1
    return published
