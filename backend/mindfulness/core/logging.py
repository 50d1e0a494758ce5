"""Structured logging setup"""
import logging
import time
import uuid

import structlog
from fastapi import Request
from structlog.contextvars import bind_contextvars, clear_contextvars


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog once at startup.

    Console output in development, one JSON object per line in production.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def request_logging_middleware(request: Request, call_next):
    """Bind a request id to the log context and log every request with its duration."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    clear_contextvars()
    bind_contextvars(request_id=request_id)

    logger = structlog.get_logger("mindfulness.requests")
    start = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
    )
    return response


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
    return response
