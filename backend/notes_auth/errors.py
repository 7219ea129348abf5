"""
Error taxonomy and the centralized error responder.

Every failure raised by the auth flows is an ``AuthError`` carrying one
``ErrorKind``. The handlers registered here are the only place failures are
turned into HTTP responses; a few well-known library failures are rewritten
into the same envelope.
"""

import enum
import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_CODE = "invalid_code"
    CODE_EXPIRED = "code_expired"
    TOKEN_INVALID_OR_EXPIRED = "token_invalid_or_expired"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_CODE: 400,
    ErrorKind.CODE_EXPIRED: 400,
    ErrorKind.TOKEN_INVALID_OR_EXPIRED: 400,
    ErrorKind.INTERNAL: 500,
}


class AuthError(Exception):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"AuthError({self.kind.name}, {self.message!r})"


def _error_response(status_code: int, message: str, exc: BaseException, include_stack: bool) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if include_stack:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=content)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request."


def register_exception_handlers(app: FastAPI, include_stack: bool = False) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        if exc.kind is ErrorKind.INTERNAL:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc, include_stack)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, _validation_message(exc), exc, include_stack)

    @app.exception_handler(JWTError)
    async def jwt_error_handler(request: Request, exc: JWTError):
        if isinstance(exc, ExpiredSignatureError):
            message = "JWT token has expired. Please log in again."
        else:
            message = "Invalid JWT token. Please log in again."
        return _error_response(401, message, exc, include_stack)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        return _error_response(400, "Duplicate key error. Please provide a unique value.", exc, include_stack)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "message": "Too many requests, please slow down.",
                "limit": str(exc.detail),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(500, "Internal Server Error", exc, include_stack)
