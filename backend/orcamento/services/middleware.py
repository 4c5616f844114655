"""
Request middleware for the budget API.

Every response carries X-Request-ID and X-Process-Time (ms). Each request
is logged once, tagged with the budget and composition it addressed so API
log lines join the engine records written through ``budget_logger``.
"""
import logging
import re
import time
import uuid
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("orcamento-api.middleware")

SKIP_LOG_PATHS = {"/health"}

_BUDGET_PATH = re.compile(
    r"^/api/budgets/(?P<budget_id>[^/]+)(?:/compositions/(?P<composition_id>[^/]+))?"
)
# Collection-level routes that share the /api/budgets/{segment} shape
_NON_BUDGET_SEGMENTS = {"calculate", "next-number"}


def budget_context(path: str) -> Dict[str, str]:
    """budget_id / composition_id addressed by a request path, if any."""
    match = _BUDGET_PATH.match(path)
    if match is None or match.group("budget_id") in _NON_BUDGET_SEGMENTS:
        return {}
    return {k: v for k, v in match.groupdict().items() if v}


class RequestTimingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        path = request.url.path
        if path in SKIP_LOG_PATHS:
            return response

        # Rejected budget input (422) and missing entities (404) are warnings
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "%s %s -> %d",
            request.method, path, response.status_code,
            extra={
                "http_method": request.method,
                "http_path": path,
                "http_status": response.status_code,
                "request_id": request_id,
                "duration_ms": duration_ms,
                **budget_context(path),
            },
        )
        return response
