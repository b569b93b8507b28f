from __future__ import annotations

from prometheus_client import Counter, Gauge

RESERVATIONS_CREATED_TOTAL = Counter(
    "rsl_reservations_created_total",
    "Total number of reservations created by resource type and source kind.",
    ["resource_type", "source"],
)

RESERVATION_TRANSITION_TOTAL = Counter(
    "rsl_reservation_transition_total",
    "Total number of reservation lifecycle transitions.",
    ["resource_type", "from", "to"],
)

POLICY_REJECTIONS_TOTAL = Counter(
    "rsl_policy_rejections_total",
    "Total number of holder cancellations or modifications rejected by policy.",
    ["reason"],
)

SESSION_WARNINGS_TOTAL = Counter(
    "rsl_session_warnings_total",
    "Total number of session time warnings emitted.",
    ["threshold"],
)

SESSIONS_CLOSED_TOTAL = Counter(
    "rsl_sessions_closed_total",
    "Total number of group sessions closed by terminal status.",
    ["status"],
)

OPTIMISTIC_RETRIES_TOTAL = Counter(
    "rsl_optimistic_retries_total",
    "Total number of version conflicts that triggered a re-read.",
    ["entity"],
)

AGGREGATOR_VENUES_SKIPPED_TOTAL = Counter(
    "rsl_aggregator_venues_skipped_total",
    "Total number of venues skipped by ledger aggregation because the store failed.",
    ["resource"],
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    "rsl_notification_failures_total",
    "Total number of notifications that could not be published.",
    ["type"],
)

ACTIVE_SESSIONS = Gauge(
    "rsl_active_sessions",
    "Number of ACTIVE group sessions seen by the last warning sweep.",
)


def record_reservation_created(resource_type: str, source: str) -> None:
    RESERVATIONS_CREATED_TOTAL.labels(resource_type=resource_type, source=source).inc()


def record_reservation_transition(resource_type: str, from_status: str, to_status: str) -> None:
    RESERVATION_TRANSITION_TOTAL.labels(
        **{"resource_type": resource_type, "from": from_status, "to": to_status}
    ).inc()


def record_policy_rejection(reason: str) -> None:
    POLICY_REJECTIONS_TOTAL.labels(reason=reason).inc()


def record_session_warning(threshold_minutes: int) -> None:
    SESSION_WARNINGS_TOTAL.labels(threshold=str(threshold_minutes)).inc()


def record_session_closed(status: str) -> None:
    SESSIONS_CLOSED_TOTAL.labels(status=status).inc()


def record_optimistic_retry(entity: str) -> None:
    OPTIMISTIC_RETRIES_TOTAL.labels(entity=entity).inc()


def record_venue_skipped(resource: str) -> None:
    AGGREGATOR_VENUES_SKIPPED_TOTAL.labels(resource=resource).inc()


def record_notification_failure(notification_type: str) -> None:
    NOTIFICATION_FAILURES_TOTAL.labels(type=notification_type).inc()


def record_active_sessions(count: int) -> None:
    ACTIVE_SESSIONS.set(count)
