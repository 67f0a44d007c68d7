# ============================================================================
# File: api/middleware.py
# ============================================================================

import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and injects:
    - X-Request-ID (reused from the caller when supplied)
    - X-API-Latency-ms
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start_time = time.perf_counter()

        logger.info(f"[{request_id}] {request.method} {request.url.path}")
        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        if response.status_code >= 500:
            logger.warning(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")
        return response
