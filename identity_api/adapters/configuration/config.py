# identity_api/adapters/configuration/config.py

from typing import Optional, List, Dict, Union
from logging import getLevelName
from pydantic import BaseModel, PostgresDsn, field_validator, model_validator, ConfigDict
from pydantic_settings import BaseSettings


class RateLimitConfig(BaseModel):
    """Permitted count of calls inside a time window."""
    limit: int
    window_seconds: int = 60


class RetryConfig(BaseModel):
    """Bounded retry with exponential backoff."""
    max_attempts: int = 3
    wait_multiplier: float = 0.1
    wait_max: float = 2.0


class OperationPolicy(BaseModel):
    """Names of the limiters and retry policy guarding one operation."""
    distributed: str
    local: str
    retry: str


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Environment
    ENVIRONMENT: str = "development"  # "development", "production", "testing"
    DEBUG: bool = False

    # Database
    DB_DRIVER: str = "asyncpg"
    POSTGRES_USER: str = "identity"
    POSTGRES_PASSWORD: str = "identity"
    POSTGRES_DB: str = "identity"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    TEST_MODE: bool = False
    TEST_POSTGRES_DB: str = ""
    DATABASE_URL: Optional[str] = None

    # Redis (shared rate-limit counters)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: float = 2.0

    # Identity service
    AUTH_COOKIE_NAME: str = "asc_auth_key"
    ADDRESS_COOKIE_NAME: str = "x-docspace-address"
    IDENTITY_REQUEST_TIMEOUT: float = 5.0
    IDENTITY_RETRY_ATTEMPTS: int = 3
    PROFILE_LOOKUP_TIMEOUT: float = 2.0
    DEFAULT_TIMEZONE: str = "UTC"

    # Allowed-scope catalogue
    ALLOWED_SCOPES: List[str] = [
        "openid",
        "files:read",
        "files:write",
        "rooms:read",
        "rooms:write",
        "accounts:read",
        "accounts:write",
        "accounts.self:read",
        "accounts.self:write",
    ]

    # Durable tasks
    TASK_POLL_INTERVAL: float = 5.0
    TASK_BATCH_SIZE: int = 20
    TASK_LEASE_SECONDS: int = 60
    TASK_BACKOFF_BASE: float = 2.0
    TASK_BACKOFF_MAX: float = 300.0

    # Rate limiting and retry
    DISTRIBUTED_RATE_LIMITS: Dict[str, RateLimitConfig] = {
        "identityFetchClient": RateLimitConfig(limit=300, window_seconds=60),
        "identityMutateClient": RateLimitConfig(limit=60, window_seconds=60),
    }
    LOCAL_RATE_LIMITS: Dict[str, RateLimitConfig] = {
        "getClientRateLimiter": RateLimitConfig(limit=200, window_seconds=60),
        "batchClientRateLimiter": RateLimitConfig(limit=30, window_seconds=60),
        "updateClientRateLimiter": RateLimitConfig(limit=30, window_seconds=60),
        "regenerateClientSecretRateLimiter": RateLimitConfig(limit=10, window_seconds=60),
    }
    RETRY_POLICIES: Dict[str, RetryConfig] = {
        "getClientRetryRateLimiter": RetryConfig(max_attempts=3),
        "batchClientRetryRateLimiter": RetryConfig(max_attempts=3),
        "updateClientRetryRateLimiter": RetryConfig(max_attempts=3),
        "regenerateClientSecretRetryRateLimiter": RetryConfig(max_attempts=2),
    }
    OPERATION_POLICIES: Dict[str, OperationPolicy] = {
        "get_clients": OperationPolicy(
            distributed="identityFetchClient", local="getClientRateLimiter", retry="getClientRetryRateLimiter"),
        "get_client": OperationPolicy(
            distributed="identityFetchClient", local="getClientRateLimiter", retry="getClientRetryRateLimiter"),
        "get_client_info": OperationPolicy(
            distributed="identityFetchClient", local="getClientRateLimiter", retry="getClientRetryRateLimiter"),
        "get_consents": OperationPolicy(
            distributed="identityFetchClient", local="getClientRateLimiter", retry="getClientRetryRateLimiter"),
        "create_client": OperationPolicy(
            distributed="identityMutateClient", local="batchClientRateLimiter", retry="batchClientRetryRateLimiter"),
        "update_client": OperationPolicy(
            distributed="identityMutateClient", local="updateClientRateLimiter", retry="updateClientRetryRateLimiter"),
        "delete_client": OperationPolicy(
            distributed="identityMutateClient", local="batchClientRateLimiter", retry="batchClientRetryRateLimiter"),
        "revoke_consent": OperationPolicy(
            distributed="identityMutateClient", local="batchClientRateLimiter", retry="batchClientRetryRateLimiter"),
        "regenerate_secret": OperationPolicy(
            distributed="identityMutateClient", local="regenerateClientSecretRateLimiter",
            retry="regenerateClientSecretRetryRateLimiter"),
        "change_activation": OperationPolicy(
            distributed="identityMutateClient", local="regenerateClientSecretRateLimiter",
            retry="regenerateClientSecretRetryRateLimiter"),
    }

    @field_validator("DATABASE_URL", mode="before")
    def assemble_db_url(cls, value, info):
        if value:
            return str(value)

        data = info.data
        db_name = data.get("TEST_POSTGRES_DB") if data.get("TEST_MODE") else data.get("POSTGRES_DB")
        return str(PostgresDsn.build(
            scheme=f"postgresql+{data.get('DB_DRIVER', 'asyncpg')}",
            username=data["POSTGRES_USER"],
            password=data["POSTGRES_PASSWORD"],
            host=data["POSTGRES_HOST"],
            port=data["POSTGRES_PORT"],
            path=db_name,
        ))

    @field_validator("ALLOWED_SCOPES", mode="before")
    def assemble_allowed_scopes(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Accepts a CSV string (ex: 'openid,files:read') or a list.
        """
        if isinstance(v, str) and not v.startswith("["):
            return [scope.strip() for scope in v.split(",") if scope.strip()]
        if isinstance(v, list):
            return v
        raise ValueError(f"Invalid ALLOWED_SCOPES: {v!r}")

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Ensures the value is a valid logging level"""
        lvl = v.upper()
        getLevelName(lvl)
        return lvl

    @model_validator(mode="after")
    def validate_operation_policies(self):
        """
        Every operation must reference known limiters, and the local limit
        may never admit more than the distributed limit paired with it.
        """
        for operation, policy in self.OPERATION_POLICIES.items():
            distributed = self.DISTRIBUTED_RATE_LIMITS.get(policy.distributed)
            local = self.LOCAL_RATE_LIMITS.get(policy.local)
            if distributed is None or local is None:
                raise ValueError(f"Operation '{operation}' references an unknown rate limiter")
            if policy.retry not in self.RETRY_POLICIES:
                raise ValueError(f"Operation '{operation}' references an unknown retry policy '{policy.retry}'")
            if local.limit > distributed.limit or local.window_seconds < distributed.window_seconds:
                raise ValueError(
                    f"Local limiter '{policy.local}' is looser than distributed limiter "
                    f"'{policy.distributed}' for operation '{operation}'"
                )
        return self

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
