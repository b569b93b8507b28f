from __future__ import annotations

import json
from uuid import uuid4

from rsl.domain.notification.entities import Notification


def notification_channel(venue_id: str) -> str:
    return f"notifications:{venue_id}"


def serialize_notification(
    notification: Notification,
    *,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": "notification.created",
        "occurred_at": notification.created_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "venue_id": notification.venue_id,
        "payload": {
            "targetUserId": notification.target_user_id,
            "type": notification.type.value,
            "priority": notification.priority.value,
            "title": notification.title,
            "message": notification.message,
            "actionPath": notification.action_path,
            "metadata": notification.metadata,
        },
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False, default=str)
