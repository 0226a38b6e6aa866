# identity_api/domain/exceptions.py

"""
Domain exceptions for the application.

Exceptions here are pure Python: they carry a stable ``internal_code`` that
the exception middleware maps to an HTTP status. Messages are safe to show to
callers; underlying causes are kept on the exception for logging only.
"""

from typing import Any, Optional


class DomainException(Exception):
    """
    Base exception for all domain errors.
    """

    internal_code = "DOMAIN_ERROR"

    def __init__(self, detail: str = "Domain error", internal_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if internal_code:
            self.internal_code = internal_code


class NotFoundError(DomainException):
    """Client or consent absent (or invalidated)."""

    internal_code = "NOT_FOUND"

    def __init__(self, detail: str = "Resource not found", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(f"{detail}{resource_info}")
        self.resource_id = resource_id


class InvalidScopeError(DomainException):
    """Requested scope is not in the allowed-scope catalogue."""

    internal_code = "INVALID_SCOPE"

    def __init__(self, detail: str = "Unsupported scopes requested", scopes: Optional[set] = None):
        scope_info = f": {', '.join(sorted(scopes))}" if scopes else ""
        super().__init__(f"{detail}{scope_info}")
        self.scopes = scopes or set()


class InvalidStateError(DomainException):
    """Mutation attempted on an invalidated client."""

    internal_code = "INVALID_STATE"

    def __init__(self, detail: str = "Client is invalidated", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(f"{detail}{resource_info}")
        self.resource_id = resource_id


class InvalidArgumentError(DomainException):
    """Pagination bounds or malformed identifiers."""

    internal_code = "INVALID_ARGUMENT"

    def __init__(self, detail: str = "Invalid argument", fields: Optional[dict] = None):
        field_errors = ""
        if fields:
            field_errors = ": " + ", ".join([f"{field}: {error}" for field, error in fields.items()])
        super().__init__(f"{detail}{field_errors}")
        self.fields = fields or {}


class RateLimitedError(DomainException):
    """Quota exceeded for a limiter."""

    internal_code = "RATE_LIMITED"

    def __init__(self, limiter: str, retry_after: int = 60):
        super().__init__("Too many requests. Try again later.")
        self.limiter = limiter
        self.retry_after = retry_after


class UpstreamUnavailableError(DomainException):
    """Identity service unreachable during a security-determining call."""

    internal_code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, detail: str = "Identity service is unavailable", original_error: Optional[Exception] = None):
        super().__init__(detail)
        self.original_error = original_error


class RotationFailedError(DomainException):
    """
    Secret rotation stage failed.

    ``stage`` is ``"revocation"`` when authorizations could not be deleted (the
    secret is unchanged) or ``"persistence"`` when authorizations were deleted
    but the new secret was not stored. Retrying is safe in both cases.
    """

    internal_code = "ROTATION_FAILED"

    REVOCATION = "revocation"
    PERSISTENCE = "persistence"

    def __init__(self, stage: str, client_id: str, original_error: Optional[Exception] = None):
        if stage == self.REVOCATION:
            detail = "Could not revoke client authorizations, secret was not changed"
        else:
            detail = "Client authorizations were revoked but the new secret could not be stored"
        super().__init__(detail)
        self.stage = stage
        self.client_id = client_id
        self.secret_changed = False
        self.authorizations_revoked = stage == self.PERSISTENCE
        self.original_error = original_error


class DatabaseOperationException(DomainException):
    """Transient storage failure."""

    internal_code = "DATABASE_OPERATION_ERROR"

    def __init__(self, detail: str = "Error executing database operation",
                 original_error: Optional[Exception] = None):
        super().__init__(detail)
        self.original_error = original_error


class InvalidCredentialsException(DomainException):
    """Missing or rejected authentication cookie."""

    internal_code = "INVALID_CREDENTIALS"

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(detail)


class PermissionDeniedException(DomainException):
    """Principal may not perform the operation."""

    internal_code = "PERMISSION_DENIED"

    def __init__(self, detail: str = "Permission denied", permission: Optional[str] = None):
        permission_info = f" (Required permission: {permission})" if permission else ""
        super().__init__(f"{detail}{permission_info}")
