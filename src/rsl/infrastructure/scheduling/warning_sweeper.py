from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable

from opentelemetry import trace

from rsl.application.dto.responses import WarningSweepResponse
from rsl.application.use_cases.context import TraceContext
from rsl.application.use_cases.session_warnings import SweepSessionWarnings
from rsl.infrastructure.db.repositories.group_session_repo import (
    SqlAlchemyGroupSessionRepository,
)
from rsl.infrastructure.messaging.redis_publisher import RedisNotificationPublisher
from rsl.infrastructure.observability.otel import current_trace_id

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
MIN_INTERVAL_SECONDS = 10.0
MAX_INTERVAL_SECONDS = 60.0


def sweeper_enabled() -> bool:
    return os.getenv("WARNING_SWEEP_ENABLED", "false").strip().lower() in {"1", "true", "yes"}


def sweep_interval_seconds() -> float:
    raw_value = os.getenv("WARNING_SWEEP_INTERVAL_SECONDS")
    if not raw_value:
        return DEFAULT_INTERVAL_SECONDS
    try:
        interval = float(raw_value)
    except ValueError:
        logger.warning(
            "warning_sweep_invalid_interval",
            extra={"interval_seconds": raw_value},
        )
        return DEFAULT_INTERVAL_SECONDS
    return min(max(interval, MIN_INTERVAL_SECONDS), MAX_INTERVAL_SECONDS)


def build_sweep_use_case() -> SweepSessionWarnings:
    return SweepSessionWarnings(
        session_repository=SqlAlchemyGroupSessionRepository(),
        publisher=RedisNotificationPublisher(),
    )


def run_sweep_once(use_case: SweepSessionWarnings) -> WarningSweepResponse:
    with tracer.start_as_current_span("warning_sweep"):
        return use_case.execute(TraceContext.for_background_job(current_trace_id()))


async def start_warning_sweeper(
    interval_seconds: float,
    use_case_factory: Callable[[], SweepSessionWarnings] = build_sweep_use_case,
) -> None:
    logger.info("warning_sweep_started", extra={"interval_seconds": interval_seconds})
    backoff_seconds = 1.0
    while True:
        try:
            await asyncio.to_thread(run_sweep_once, use_case_factory())
            backoff_seconds = 1.0
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("warning_sweep_cancelled")
            raise
        except Exception:
            logger.exception(
                "warning_sweep_error",
                extra={"backoff_seconds": backoff_seconds},
            )
            await asyncio.sleep(backoff_seconds)
            backoff_seconds = min(backoff_seconds * 2, interval_seconds)
