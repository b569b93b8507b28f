from __future__ import annotations

from typing import Protocol


class NotificationPublisher(Protocol):
    def publish(self, channel: str, message: str) -> None: ...
