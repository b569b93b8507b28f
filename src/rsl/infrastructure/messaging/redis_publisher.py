from __future__ import annotations

from rsl.application.ports.publisher import NotificationPublisher
from rsl.infrastructure.messaging.redis_client import get_redis_client


class RedisNotificationPublisher(NotificationPublisher):
    """Publishes serialized notification envelopes on per-venue Redis channels."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._timeout_seconds = timeout_seconds

    def publish(self, channel: str, message: str) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).publish(channel, message)
