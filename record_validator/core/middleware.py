"""
Middleware - request ids and the global error handler.
All errors leave the API in one response shape.
"""
import time
from typing import Callable
from uuid import uuid4

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from record_validator.core.config import get_settings
from record_validator.core.errors import BaseApplicationError
from record_validator.core.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request id and processing time to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response


def _error_body(request: Request, code: str, message: str, details: dict = None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "request_id": getattr(request.state, "request_id", None),
        }
    }


async def error_handler(request: Request, exc: Exception):
    """Global error handler."""
    if isinstance(exc, BaseApplicationError):
        logger.warning(
            "request_failed",
            path=request.url.path,
            error_code=exc.error_code.value,
            error=exc.message
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.error_code.value, exc.message, exc.details)
        )
    elif isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, "HTTP_ERROR", str(exc.detail))
        )
    else:
        logger.error("request_crashed", path=request.url.path, error=str(exc), exc_info=True)
        detail = str(exc) if get_settings().is_development else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "INTERNAL_ERROR", detail)
        )
