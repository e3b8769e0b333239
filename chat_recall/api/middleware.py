import os
import time
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from ..core.logging import logger


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id, logs it in and out, and reports the id
    and processing time back in response headers.

    Request bodies are never logged here: chat settings may carry an API key
    or a MongoDB URI with credentials.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = os.urandom(8).hex()
        request.state.request_id = request_id

        logger.request(
            operation="Incoming Request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            content_length=request.headers.get("content-length", "0")
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Unhandled error on {request.method} {request.url.path}: {e}",
                request_id=request_id,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
            raise

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"

        logger.response(
            operation="Outgoing Response",
            request_id=request_id,
            path=request.url.path,
            status_code=response.status_code,
            processing_time_ms=round(elapsed * 1000)
        )

        return response
