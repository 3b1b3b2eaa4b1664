"""
Request logging.

Each request gets an id (the incoming X-Request-ID, else a fresh UUID4)
that is echoed on the response and stamped on every log record emitted
while the request is handled. One access line is written per request on
the ``nobodyreads.access`` logger, with the resolved tenant attached.

Output is plain text by default and one JSON object per line when
JSON_LOGS is enabled.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

REQUEST_ID_HEADER = "X-Request-ID"
ACCESS_LOGGER = "nobodyreads.access"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

# Probes and browser noise
SKIPPED_PATHS = {"/health", "/favicon.ico"}

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    EXTRA_FIELDS = (
        "tenant_id",
        "method",
        "path",
        "status_code",
        "error_code",
        "duration_ms",
        "client_ip",
        "errors",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }
        entry.update({key: getattr(record, key) for key in self.EXTRA_FIELDS if hasattr(record, key)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Assign request ids and write the access log."""

    def __init__(self, app: ASGIApp, logger_name: str = ACCESS_LOGGER):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self._access_log(request, 500, started, error=e)
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        self._access_log(request, response.status_code, started)
        return response

    def _access_log(self, request: Request, status_code: int, started: float, error: Exception | None = None) -> None:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        extra = {
            "method": request.method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_ip": client_ip(request),
        }
        # Set by TenantMiddleware, which runs inside this one
        tenant_id = getattr(request.state, "tenant_id", None)
        if tenant_id:
            extra["tenant_id"] = tenant_id

        message = f"{request.method} {path} - {status_code} ({duration_ms}ms)"
        if error is not None:
            message = f"{message} - {error.__class__.__name__}: {error}"
        self.logger.log(level_for_status(status_code), message, extra=extra)


def setup_structured_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Replace the root handlers with one stderr handler carrying request ids."""
    level = logging.getLevelName(log_level.upper())

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(StructuredFormatter() if json_format else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("nobodyreads").setLevel(level)
    for noisy in ("uvicorn", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
