"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. CaptchaError and its subclasses
are the operational failures of a verification session. A wrong answer is
not among them: it is a normal ``False`` result from ``verify``.

The global exception handler converts AppError subclasses to consistent JSON
responses. Server-side captcha faults are reported with a generic message so
the end user never sees them as "you answered wrong".
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class CaptchaErrorKind(Enum):
    """Kinds of operational failure a verification attempt can report."""

    ALREADY_VERIFIED = "already_verified"
    INVALID_ADDRESS = "invalid_address"
    TRANSPORT_ERROR = "transport_error"
    PROTOCOL_ERROR = "protocol_error"


class CaptchaError(AppError):
    kind: CaptchaErrorKind


class AlreadyVerifiedError(CaptchaError):
    """The session already succeeded; create a new one for a new challenge."""

    status_code = 409
    error_code = "already_verified"
    kind = CaptchaErrorKind.ALREADY_VERIFIED


class InvalidAddressError(CaptchaError):
    status_code = 400
    error_code = "invalid_address"
    kind = CaptchaErrorKind.INVALID_ADDRESS


class CaptchaTransportError(CaptchaError):
    """The verification authority could not be reached or answered non-2xx.

    Recoverable by a caller-level retry; never retried internally.
    """

    status_code = 502
    error_code = "transport_error"
    kind = CaptchaErrorKind.TRANSPORT_ERROR


class CaptchaProtocolError(CaptchaError):
    """The authority replied with something that is neither true nor false."""

    status_code = 502
    error_code = "protocol_error"
    kind = CaptchaErrorKind.PROTOCOL_ERROR


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if isinstance(exc, CaptchaError) and exc.status_code >= 500:
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": "Captcha verification is temporarily unavailable.",
                    "code": exc.error_code,
                },
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
