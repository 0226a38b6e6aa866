# identity_api/shared/middleware/exception_middleware.py (async version)

"""
Middleware for centralized exception handling.

This module defines middleware that intercepts exceptions and formats
appropriate error responses for the client. Underlying causes are logged,
never returned.
"""

import time
import logging
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from identity_api.domain.exceptions import DomainException, RateLimitedError
from identity_api.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_SCOPE": status.HTTP_400_BAD_REQUEST,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "INVALID_ARGUMENT": status.HTTP_400_BAD_REQUEST,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "UPSTREAM_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "ROTATION_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DATABASE_OPERATION_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
}

# Failures whose detail may leak internals; callers get a fixed message.
SERVER_ERROR_DETAILS = {
    "DATABASE_OPERATION_ERROR": "Internal database error",
}


class AsyncExceptionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized exception handling.
    Captures specific exceptions and formats the response accordingly.
    """

    @staticmethod
    def _correlation_id(request: Request) -> str:
        return getattr(request.state, "correlation_id", "N/A")

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response

        except DomainException as exc:
            # Domain exceptions: mapping from pure exception to HTTP code based on 'internal_code'
            status_code = STATUS_BY_CODE.get(exc.internal_code, status.HTTP_400_BAD_REQUEST)
            cause = getattr(exc, "original_error", None)
            log = logger.error if status_code >= 500 else logger.warning
            log(
                f"Domain exception: {str(exc)} | Code: {exc.internal_code} | "
                f"Path: {request.url.path} | Correlation: {self._correlation_id(request)}"
                + (f" | Cause: {type(cause).__name__}: {cause}" if cause else "")
            )

            headers = {"X-Correlation-Id": self._correlation_id(request)}
            if isinstance(exc, RateLimitedError):
                headers["Retry-After"] = str(exc.retry_after)

            return JSONResponse(
                status_code=status_code,
                content={
                    "detail": SERVER_ERROR_DETAILS.get(exc.internal_code, exc.detail),
                    "code": exc.internal_code,
                },
                headers=headers,
            )

        except SQLAlchemyError as exc:
            logger.error(
                f"Database error: Type={type(exc).__name__} | "
                f"Path: {request.url.path} | Correlation: {self._correlation_id(request)}"
                + ("" if settings.ENVIRONMENT == "production" else f" | {exc}")
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "detail": "Internal database error",
                    "code": "DATABASE_ERROR"
                }
            )

        except Exception as exc:
            # Unhandled exceptions
            logger.exception(
                f"Unhandled exception: Type={type(exc).__name__} | "
                f"Path: {request.url.path} | Correlation: {self._correlation_id(request)} | "
                f"Client: {request.client.host if request.client else 'N/A'}"
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "detail": "Internal server error",
                    "code": "INTERNAL_SERVER_ERROR"
                }
            )
