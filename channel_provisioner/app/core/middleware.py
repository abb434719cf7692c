"""
Request middleware — logging, timing, correlation IDs.

Provides:
    • X-Request-ID header injection (correlation ID)
    • Request/response timing (X-Process-Time header)
    • Structured log entry per request
    • Channel operation tagging (provision / preview / render) and an
      X-What-If header on preview responses
    • Request context for downstream log enrichment
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from channel_provisioner.app.core.logging_config import set_request_context

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/live")

_CHANNELS_PREFIX = "/api/v1/channels"


def channel_operation(method: str, path: str) -> Optional[str]:
    """Name the channel operation a request performs, if any."""
    if not path.startswith(_CHANNELS_PREFIX):
        return None
    suffix = path[len(_CHANNELS_PREFIX):].rstrip("/")
    if method == "POST" and suffix == "":
        return "provision"
    if method == "POST" and suffix == "/preview":
        return "preview"
    if method == "GET" and suffix == "/templates":
        return "render"
    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with timing, inject correlation ID.

    Provisioning calls are logged at INFO; any 4xx/5xx response at WARNING
    so rejected channel requests stand out in the audit trail. Preview
    responses carry ``X-What-If: true`` and their log record has dry_run set.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:16])
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path
        operation = channel_operation(request.method, path)
        what_if = operation == "preview"

        set_request_context(
            request_id=request_id,
            client_ip=client_ip,
            endpoint=path,
            method=request.method,
            operation=operation,
        )

        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                "%s %s → 500 (%.1fms) [%s]",
                request.method, path, duration_ms, client_ip,
                extra={
                    "duration_ms": duration_ms,
                    "status_code": 500,
                    "operation": operation,
                },
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"
        if what_if:
            response.headers["X-What-If"] = "true"

        if not path.startswith(_QUIET_PREFIXES):
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                "%s %s → %d (%.1fms) [%s]",
                request.method, path, response.status_code,
                duration_ms, client_ip,
                extra={
                    "duration_ms": duration_ms,
                    "status_code": response.status_code,
                    "endpoint": path,
                    "operation": operation,
                    "dry_run": what_if,
                },
            )

        set_request_context()

        return response
