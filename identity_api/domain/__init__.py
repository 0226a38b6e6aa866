# identity_api/domain/__init__.py

"""
Main module for the application's domain components.

This module exports the domain exceptions.
"""

from identity_api.domain.exceptions import (
    DomainException,
    NotFoundError,
    InvalidScopeError,
    InvalidStateError,
    InvalidArgumentError,
    RateLimitedError,
    UpstreamUnavailableError,
    RotationFailedError,
    DatabaseOperationException,
    InvalidCredentialsException,
    PermissionDeniedException,
)
