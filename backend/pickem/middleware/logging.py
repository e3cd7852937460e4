"""
backend/pickem/middleware/logging.py

Purpose:
    Request logging for the survivor API and the process-wide logging setup.

Notes:
    - One JSON line per request on the "pickem.http" logger. Survivor calls
      carry the matched route template and its path params (week, user_id),
      so reconcile and audit runs can be traced back to the request.
    - 5xx responses log at ERROR, 4xx at WARNING, everything else at INFO.
"""

import hashlib
import json
import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from pickem.config import settings

logger = logging.getLogger("pickem.http")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def request_log_record(request: Request, status_code: int, request_id: str, elapsed: float) -> dict[str, Any]:
    route = request.scope.get("route")
    record: dict[str, Any] = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "route": getattr(route, "path", None),
        "status": status_code,
        "duration_ms": round(elapsed * 1000, 2),
    }
    if request.url.query:
        record["query"] = request.url.query
    if request.path_params:
        record["params"] = {k: str(v) for k, v in request.path_params.items()}
    if request.url.path.startswith("/api/survivor"):
        record["pool_id"] = settings.SURVIVOR_POOL_ID
    if request.client:
        record["client_ip_hash"] = hashlib.sha256((request.client.host or "").encode()).hexdigest()[:12]
    return record


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        record = request_log_record(request, response.status_code, request_id, time.perf_counter() - started)
        logger.log(_level_for(response.status_code), json.dumps(record))
        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
