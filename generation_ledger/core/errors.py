"""Ledger error taxonomy and the structured HTTP error handlers.

Every rejected call raises a ``LedgerError`` subclass carrying a stable
``code``.  The HTTP layer renders all errors the same way:

    {
      "error": {
        "code": "ALREADY_EXISTS",
        "message": "Human-readable explanation of what went wrong.",
        "request_id": "abc123..."
      }
    }
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for every error the ledger surfaces to a caller."""

    code = "LEDGER_ERROR"
    status_code = 400


# ── Categories ────────────────────────────────────────────────────────────────


class AuthorizationError(LedgerError):
    status_code = 403


class AvailabilityError(LedgerError):
    status_code = 503


class ValidationError(LedgerError):
    status_code = 422


class LifecycleError(LedgerError):
    status_code = 409


# ── Concrete errors ───────────────────────────────────────────────────────────


class Unauthorized(AuthorizationError):
    code = "UNAUTHORIZED"

    def __init__(self, principal: str, role: str):
        self.principal = principal
        self.role = role
        super().__init__(f"Principal {principal!r} does not hold role {role}")


class SystemPaused(AvailabilityError):
    code = "SYSTEM_PAUSED"

    def __init__(self) -> None:
        super().__init__("Ledger is paused; mutations are disabled")


class InvalidSignature(ValidationError):
    code = "INVALID_SIGNATURE"


class InvalidSampleCount(ValidationError):
    code = "INVALID_SAMPLE_COUNT"

    def __init__(self, actual: int, expected: int):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Sample count {actual} != expected {expected}")


class AlreadyExists(LifecycleError):
    code = "ALREADY_EXISTS"


class AlreadyInitialized(LifecycleError):
    code = "ALREADY_INITIALIZED"


class NotInitialized(LifecycleError):
    code = "NOT_INITIALIZED"


class RevisionOverflow(LifecycleError):
    code = "REVISION_OVERFLOW"


class NotFound(LifecycleError):
    code = "NOT_FOUND"
    status_code = 404


class RevisionNotFound(LifecycleError):
    code = "REVISION_NOT_FOUND"
    status_code = 404


# ── HTTP handlers ─────────────────────────────────────────────────────────────

_STATUS_CODE_MAP: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": str(exc),
                    "request_id": request_id,
                }
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)

        if isinstance(exc.detail, dict):
            body = {"error": {**exc.detail, "request_id": request_id}}
        else:
            body = {
                "error": {
                    "code": _STATUS_CODE_MAP.get(exc.status_code, "ERROR"),
                    "message": str(exc.detail),
                    "request_id": request_id,
                }
            }

        return JSONResponse(
            status_code=exc.status_code,
            content=body,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)

        fields = []
        for err in exc.errors():
            loc = " -> ".join(str(part) for part in err["loc"])
            fields.append({"field": loc, "message": err["msg"], "type": err["type"]})

        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": f"{len(fields)} validation error(s) in your request.",
                    "details": fields,
                    "request_id": request_id,
                }
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error (request_id=%s)", request_id)

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred.",
                    "request_id": request_id,
                }
            },
        )
