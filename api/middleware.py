# ============================================================================
# File: api/middleware.py
# ============================================================================

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from core.logging import log_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LATENCY_HEADER = "X-API-Latency-ms"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Injects:
    - request_id (reuses an incoming X-Request-ID header when present),
      bound to the log context so route, pipeline and connector logs carry it
    - api_latency_ms

    A manual POST /jobs/{id}/execute runs the whole job inside the request,
    so its records carry both the request id and the job/run ids.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        start_time = time.perf_counter()

        request.state.request_id = request_id

        with log_context(request_id=request_id):
            try:
                response: Response = await call_next(request)
            except Exception:
                logger.exception(f"{request.method} {request.url.path} raised")
                raise

            latency_ms = int((time.perf_counter() - start_time) * 1000)

            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers[LATENCY_HEADER] = str(latency_ms)

            if response.status_code >= 500:
                logger.warning(f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")
            else:
                logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")
        return response
