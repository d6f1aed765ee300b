"""
Domain error kinds and their HTTP rendering.

Engines raise ``ServiceError``; the exception handlers installed by
``install_error_handlers`` turn it into the standard error envelope:

    {"error": {"code": "...", "message": "...", "status": 409, ...}}
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()


class ErrorKind(str, Enum):
    NOT_FOUND = "not-found"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad-request"
    VERSION_CONFLICT = "version-conflict"
    NO_FIELDS_TO_UPDATE = "no-fields-to-update"
    ALREADY_EXISTS = "already-exists"
    ALREADY_MEMBER = "already-member"
    INVITE_NOT_FOUND = "invite-not-found"
    ITEM_NOT_FOUND = "item-not-found"
    CANNOT_REMOVE_OWNER = "cannot-remove-owner"
    KEY_INVALID = "key-invalid"
    KEY_REVOKED = "key-revoked"
    KEY_EXPIRED = "key-expired"
    INTERNAL = "internal"

    @property
    def code(self) -> str:
        return self.value.replace("-", "_").upper()


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVITE_NOT_FOUND: 404,
    ErrorKind.ITEM_NOT_FOUND: 404,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.KEY_INVALID: 401,
    ErrorKind.KEY_REVOKED: 401,
    ErrorKind.KEY_EXPIRED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VERSION_CONFLICT: 409,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.ALREADY_MEMBER: 409,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.NO_FIELDS_TO_UPDATE: 400,
    ErrorKind.CANNOT_REMOVE_OWNER: 400,
    ErrorKind.INTERNAL: 500,
}

CODE_BY_STATUS: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_FAILED",
    500: "INTERNAL",
}


class ServiceError(Exception):
    """A classified failure raised by a domain engine."""

    def __init__(self, kind: ErrorKind, message: str | None = None, **details: Any):
        self.kind = kind
        self.message = message or kind.value.replace("-", " ")
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value!r}, {self.message!r})"


def error_envelope(code: str, message: str, status: int, **details: Any) -> dict:
    return {"error": {"code": code, "message": message, "status": status, **details}}


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status = exc.status_code
    if status >= 500:
        log.error("request.failed", path=request.url.path, kind=exc.kind.value, error=exc.message)
    return JSONResponse(
        status_code=status,
        content=error_envelope(exc.kind.code, exc.message, status, **exc.details),
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    status = exc.status_code
    return JSONResponse(
        status_code=status,
        content=error_envelope(CODE_BY_STATUS.get(status, "ERROR"), str(exc.detail), status),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            "BAD_REQUEST",
            "invalid request body",
            400,
            fields=[".".join(str(p) for p in err["loc"]) for err in exc.errors()],
        ),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
