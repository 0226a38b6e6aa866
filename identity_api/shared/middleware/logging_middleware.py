# identity_api/shared/middleware/logging_middleware.py (async version)

"""
Middleware for HTTP request logging.

This module implements a middleware that logs information
about received requests and sent responses, and tags each request
with a correlation id.
"""

import time
import logging
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from identity_api.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-Id"


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request logging.
    Logs information about each received request.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id

        # Log the request - with limited information in production
        if settings.ENVIRONMENT == "production":
            logger.info(f"Request: {request.method} {request.url.path} | Correlation: {correlation_id}")
        else:
            query_params = dict(request.query_params)
            logger.info(
                f"Request: {request.method} {request.url.path} | "
                f"Query: {query_params if query_params else 'N/A'} | "
                f"Client: {request.client.host if request.client else 'N/A'} | "
                f"Correlation: {correlation_id}"
            )

        # Process the request
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers[CORRELATION_HEADER] = correlation_id

        # Log the response
        if settings.ENVIRONMENT == "production":
            logger.info(f"Response: {response.status_code} for {request.method} {request.url.path}")
        else:
            logger.info(
                f"Response: {response.status_code} for {request.method} {request.url.path} | "
                f"Time: {process_time:.4f}s"
            )

        return response
