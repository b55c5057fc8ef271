"""
Custom middleware for request logging
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with status and latency"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client_host = request.client.host if request.client is not None else "unknown"

        response = await call_next(request)

        logger.info(
            "%s %s from %s -> %d in %.3fs",
            request.method,
            request.url.path,
            client_host,
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response
