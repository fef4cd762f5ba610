"""
Error taxonomy for the period and ledger engine.

Services raise these the same way they would raise ``HTTPException``; the
handlers registered by ``register_exception_handlers`` render every failure
as ``{"error": <message>}``.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class EngineError(HTTPException):
    """Base class for errors that carry an extra JSON payload."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)
        self.extra = extra or {}


class ValidationError(EngineError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(EngineError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EngineError):
    """Raised when a deletion is blocked by dependent rows."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, transaction_count: int):
        super().__init__(detail, extra={"transactionCount": transaction_count})
        self.transaction_count = transaction_count


class UnauthorizedError(EngineError):
    status_code = status.HTTP_401_UNAUTHORIZED


def _error_response(status_code: int, message: str, extra: Optional[Dict[str, Any]] = None, headers=None) -> JSONResponse:
    content = {"error": message}
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        str(exc.detail),
        getattr(exc, "extra", None),
        getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
