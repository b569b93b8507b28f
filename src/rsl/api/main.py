from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from rsl.api.error_handling import register_exception_handlers
from rsl.api.middleware.request_id import RequestIDMiddleware
from rsl.api.routes.health import router as health_router
from rsl.api.routes.ledger import router as ledger_router
from rsl.api.routes.metrics import router as metrics_router
from rsl.api.routes.reservations import router as reservations_router
from rsl.api.routes.sessions import router as sessions_router
from rsl.infrastructure.observability.logging_config import configure_logging
from rsl.infrastructure.observability.otel import configure_otel
from rsl.infrastructure.scheduling.warning_sweeper import (
    start_warning_sweeper,
    sweep_interval_seconds,
    sweeper_enabled,
)

logger = logging.getLogger("rsl.api.access")

REQUEST_COUNT = Counter(
    "rsl_http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "rsl_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
)


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()
    if env in {"dev", "test"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


def _route_label(request: Request) -> str:
    # templated path keeps label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            route = _route_label(request)
            REQUEST_COUNT.labels(method=method, route=route, status_code="500").inc()
            REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": request.url.path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        route = _route_label(request)
        REQUEST_COUNT.labels(
            method=method, route=route, status_code=str(response.status_code)
        ).inc()
        REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper_task: asyncio.Task[None] | None = None
    if sweeper_enabled():
        sweeper_task = asyncio.create_task(start_warning_sweeper(sweep_interval_seconds()))
    app.state.warning_sweeper_task = sweeper_task
    try:
        yield
    finally:
        if sweeper_task is not None:
            sweeper_task.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper_task


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="RSL Backend", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(reservations_router)
    app.include_router(sessions_router)
    app.include_router(ledger_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    configure_otel(app)
    return app


app = create_app()
