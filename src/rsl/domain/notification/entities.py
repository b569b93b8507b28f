from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationType(str, Enum):
    RESERVATION_CREATED = "RESERVATION_CREATED"
    RESERVATION_STATUS_CHANGED = "RESERVATION_STATUS_CHANGED"
    RESERVATION_MODIFIED = "RESERVATION_MODIFIED"
    STAFF_ASSIGNMENT = "STAFF_ASSIGNMENT"
    GAMING_VENUE_GROUP = "GAMING_VENUE_GROUP"
    GAMING_VENUE_MEMBER_ADDED = "GAMING_VENUE_MEMBER_ADDED"
    GAMING_VENUE_EXTENSION_REQUEST = "GAMING_VENUE_EXTENSION_REQUEST"
    GAMING_VENUE_EXTENSION_REQUESTED = "GAMING_VENUE_EXTENSION_REQUESTED"
    GAMING_VENUE_EXTENSION_GRANTED = "GAMING_VENUE_EXTENSION_GRANTED"
    GAMING_VENUE_EXTENSION_DECLINED = "GAMING_VENUE_EXTENSION_DECLINED"
    GAMING_VENUE_SESSION_STATUS_CHANGED = "GAMING_VENUE_SESSION_STATUS_CHANGED"
    GAMING_VENUE_TIME_ALERT = "GAMING_VENUE_TIME_ALERT"
    GAMING_VENUE_SESSION_CLOSED = "GAMING_VENUE_SESSION_CLOSED"


@dataclass(frozen=True)
class Notification:
    venue_id: str
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    action_path: str
    created_at: datetime
    target_user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)