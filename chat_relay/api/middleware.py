import time
import os
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from ..core.logging import logger


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = os.urandom(8).hex()
        request.state.request_id = request_id

        logger.request(
            operation="Incoming Request",
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            client_host=request.client.host if request.client else None
        )

        # The body is left untouched here; the route enforces the size limit
        try:
            response = await call_next(request)
        except HTTPException as e:
            logger.error(
                f"HTTP Exception: {e.detail}",
                exc_info=False,
                request_id=request_id,
                status_code=e.status_code
            )
            raise e
        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                request_id=request_id,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
            raise e

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        logger.response(
            operation="Outgoing Response",
            request_id=request_id,
            status_code=response.status_code,
            processing_time_ms=round(process_time * 1000)
        )

        return response
