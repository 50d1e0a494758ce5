# backend/mindfulness/core/errors.py
"""
Error taxonomy and the central FastAPI exception handlers.

Every failure leaves the API as
    {"error": {"code", "message", "details"?, "timestamp", "requestId"?, "stack"?}}
"""
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mindfulness.core.config import get_settings

logger = structlog.get_logger(__name__)


class ErrorCodes:
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_ERROR = "DUPLICATE_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCodes.AUTHENTICATION_ERROR


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCodes.FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCodes.NOT_FOUND


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCodes.VALIDATION_ERROR


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCodes.DUPLICATE_ERROR


class InternalError(AppError):
    pass


_STATUS_CODES = {
    400: ErrorCodes.VALIDATION_ERROR,
    401: ErrorCodes.AUTHENTICATION_ERROR,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    409: ErrorCodes.DUPLICATE_ERROR,
    429: ErrorCodes.RATE_LIMIT_EXCEEDED,
}


def error_body(
    request: Request,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    exc: Optional[BaseException] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details

    request_id = request.headers.get("X-Request-ID")
    if request_id:
        body["requestId"] = request_id

    # stack traces never leave a production process
    settings = getattr(request.app.state, "settings", None) or get_settings()
    if exc is not None and not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return {"error": body}


def _field_errors(exc: RequestValidationError) -> Dict[str, str]:
    """
    Pydantic error list -> {"password": "Password must contain at least one uppercase letter"}
    ValueError raised in our own validators keeps its original message.
    """
    fields: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error is not None else err.get("msg", "Invalid value")
        fields.setdefault(name, message)
    return fields


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Application error", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            request,
            exc.code,
            exc.message,
            exc.details,
            exc if exc.status_code >= 500 else None,
        ),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = _field_errors(exc)
    message = next(iter(fields.values()), "Invalid input data")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(request, ErrorCodes.VALIDATION_ERROR, message, {"fields": fields}),
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    field = next(iter(key_pattern), None)
    message = f"{field} already exists" if field else "Duplicate key"
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(request, ErrorCodes.DUPLICATE_ERROR, message, {"field": field} if field else None),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, ErrorCodes.INTERNAL_ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, ErrorCodes.INTERNAL_ERROR, "Internal server error", exc=exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
