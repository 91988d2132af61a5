"""
Domain errors and their HTTP mapping.

Services raise these; routes stay thin and let the handlers registered by
``register_exception_handlers`` turn them into ``{"error": "..."}`` bodies.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500


class AppError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code: int = STATUS_INTERNAL_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Missing or malformed input. The message names the offending field."""

    status_code = STATUS_BAD_REQUEST


class CapacityError(AppError):
    """Requested quantity exceeds what is left for a console in a slot."""

    status_code = STATUS_CONFLICT

    def __init__(self, message: str, console: str):
        super().__init__(message)
        self.console = console


class GatewayError(AppError):
    """Payment or email provider failure, including timeouts."""

    status_code = STATUS_INTERNAL_ERROR

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class AuthorizationError(AppError):
    """No valid session (401) or an unprivileged role (403)."""

    status_code = STATUS_UNAUTHORIZED


class NotFoundError(AppError):
    status_code = STATUS_NOT_FOUND


class ConflictError(AppError):
    status_code = STATUS_CONFLICT


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= STATUS_INTERNAL_ERROR:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.message, exc.status_code)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return error_response("; ".join(parts) or "Invalid request", STATUS_BAD_REQUEST)


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Raw store message is passed through, the dashboard shows it verbatim
    logger.exception(f"Database error on {request.method} {request.url.path}")
    message = str(getattr(exc, "orig", None) or exc)
    return error_response(message, STATUS_INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
