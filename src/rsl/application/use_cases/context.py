from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    """Correlation ids stamped onto every published notification envelope."""

    trace_id: str | None
    request_id: str | None

    @classmethod
    def for_background_job(cls, trace_id: str | None) -> TraceContext:
        # scheduled work has no inbound HTTP request to correlate with
        return cls(trace_id=trace_id, request_id=None)
