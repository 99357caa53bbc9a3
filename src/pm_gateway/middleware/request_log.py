"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, the caller
address (set on request.state by the auth dependency, if any) and a short
request ID for correlation. The
request_id goes on request.state for the ApiResponse envelope and is echoed
back in the X-Request-ID response header.

Log format:
    INFO [POST] /api/v1/pools/1/buy → 200 (3ms) caller=0xab.. req_a1b2c3d4e5f6
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.pm_common.response import new_request_id

logger = logging.getLogger("pm.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = new_request_id()

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        caller = getattr(request.state, "caller", "-")

        logger.info(
            "[%s] %s → %d (%.0fms) caller=%s %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            caller,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
