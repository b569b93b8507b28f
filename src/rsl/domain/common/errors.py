"""Error taxonomy shared by every ledger component.

Each error carries a stable ``code`` that callers (and the HTTP layer) can
branch on without parsing messages.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    code = "LEDGER_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LedgerError):
    code = "NOT_FOUND"


class InvalidTransitionError(LedgerError):
    code = "INVALID_TRANSITION"


class CancellationWindowClosedError(LedgerError):
    code = "CANCELLATION_WINDOW_CLOSED"


class UnsupportedSourceError(LedgerError):
    code = "UNSUPPORTED_SOURCE"


class DuplicateMemberError(LedgerError):
    code = "DUPLICATE_MEMBER"


class LedgerValidationError(LedgerError):
    code = "VALIDATION_ERROR"


class ConcurrentModificationError(LedgerError):
    code = "CONFLICT"


class UpstreamUnavailableError(LedgerError):
    code = "UPSTREAM_UNAVAILABLE"
