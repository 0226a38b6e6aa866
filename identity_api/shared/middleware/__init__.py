# identity_api/shared/middleware/__init__.py (async version)

from identity_api.shared.middleware.exception_middleware import AsyncExceptionMiddleware
from identity_api.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware

# Export all for easy imports
__all__ = [
    "AsyncExceptionMiddleware",
    "AsyncRequestLoggingMiddleware",
]
