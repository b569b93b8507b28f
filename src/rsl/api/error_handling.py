from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rsl.api.middleware.request_id import get_request_id
from rsl.application.ports.repositories import DuplicateRecordError, OptimisticConcurrencyError
from rsl.domain.common.errors import (
    CancellationWindowClosedError,
    ConcurrentModificationError,
    DuplicateMemberError,
    InvalidTransitionError,
    LedgerError,
    LedgerValidationError,
    NotFoundError,
    UnsupportedSourceError,
    UpstreamUnavailableError,
)

_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (CancellationWindowClosedError, 409),
    (UnsupportedSourceError, 409),
    (DuplicateMemberError, 409),
    (ConcurrentModificationError, 409),
    (LedgerValidationError, 400),
    (UpstreamUnavailableError, 503),
]


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _ledger_error_handler(status_code: int):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        ledger_exc = cast(LedgerError, exc)
        return _error_response(
            status_code=status_code,
            code=ledger_exc.code,
            message=ledger_exc.message,
            details=ledger_exc.details,
        )

    return handler


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        return _error_response(status_code=status_code, code=code, message=str(exc))

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code=LedgerValidationError.code,
        message="request validation failed",
        details={"errors": jsonable_encoder(validation_exc.errors())},
    )


def register_exception_handlers(app: FastAPI) -> None:
    for exc_cls, status_code in _STATUS_BY_ERROR:
        app.add_exception_handler(exc_cls, _ledger_error_handler(status_code))
    app.add_exception_handler(LedgerError, _ledger_error_handler(400))

    app.add_exception_handler(OptimisticConcurrencyError, _exception_handler(409, "CONFLICT"))
    app.add_exception_handler(DuplicateRecordError, _exception_handler(409, "CONFLICT"))
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
