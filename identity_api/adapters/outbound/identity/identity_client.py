# identity_api/adapters/outbound/identity/identity_client.py

"""
HTTP client for the identity (portal) service.

Every call is made against the caller's portal address with the caller's
auth cookie. Tenant and person lookups decide who the caller is, so they
are retried and then fail loudly; profile lookups only decorate responses
and return None on any failure.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from identity_api.adapters.configuration.config import settings
from identity_api.application.ports.outbound import IIdentityService
from identity_api.domain.exceptions import (
    InvalidCredentialsException,
    PermissionDeniedException,
    UpstreamUnavailableError,
)
from identity_api.domain.models.profile_domain_model import Person, Profile, Tenant

logger = logging.getLogger(__name__)

ME_PATH = "/api/2.0/people/@self"
PORTAL_PATH = "/api/2.0/portal"
SETTINGS_PATH = "/api/2.0/settings"
PROFILE_BY_EMAIL_PATH = "/api/2.0/people/email"


class TransientIdentityError(Exception):
    """5xx or transport failure, worth another attempt."""


class IdentityServiceClient(IIdentityService):

    def __init__(
            self,
            client: Optional[httpx.AsyncClient] = None,
            timeout: float = settings.IDENTITY_REQUEST_TIMEOUT,
            max_attempts: int = settings.IDENTITY_RETRY_ATTEMPTS,
            wait_multiplier: float = 0.2,
    ):
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self.max_attempts = max_attempts
        self.wait_multiplier = wait_multiplier

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _cookie_header(auth_cookie: str) -> Dict[str, str]:
        return {"Cookie": f"{settings.AUTH_COOKIE_NAME}={auth_cookie}"}

    async def _get(self, address: str, path: str, auth_cookie: str, params: Optional[dict] = None) -> httpx.Response:
        try:
            response = await self.client.get(
                urljoin(address, path), params=params, headers=self._cookie_header(auth_cookie)
            )
        except httpx.RequestError as e:
            raise TransientIdentityError(f"{path}: {e!r}") from e
        if response.status_code >= 500:
            raise TransientIdentityError(f"{path}: status {response.status_code}")
        return response

    async def _get_with_retry(self, address: str, path: str, auth_cookie: str) -> httpx.Response:
        """
        Perform a GET with exponential backoff on transient failures.

        Raises:
            UpstreamUnavailableError: When every attempt failed
        """
        try:
            async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.max_attempts),
                    wait=wait_exponential(multiplier=self.wait_multiplier, max=2),
                    retry=retry_if_exception_type(TransientIdentityError),
                    reraise=False,
            ):
                with attempt:
                    return await self._get(address, path, auth_cookie)
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(f"Identity service unavailable at {address}{path}: {cause}")
            raise UpstreamUnavailableError(original_error=cause)

    @staticmethod
    def _payload(response: httpx.Response) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If the body is not JSON
            TypeError: If the body or its ``response`` envelope is not an object
        """
        body = response.json()
        if not isinstance(body, dict):
            raise TypeError(f"Unexpected response body: {type(body).__name__}")
        payload = body.get("response") or {}
        if not isinstance(payload, dict):
            raise TypeError(f"Unexpected response envelope: {type(payload).__name__}")
        return payload

    @staticmethod
    def _malformed(path: str, error: Exception) -> UpstreamUnavailableError:
        logger.error(f"Malformed identity service response from {path}: {error!r}")
        return UpstreamUnavailableError(detail="Identity service returned a malformed response", original_error=error)

    async def get_me(self, address: str, auth_cookie: str) -> Person:
        response = await self._get_with_retry(address, ME_PATH, auth_cookie)
        if response.status_code in (401, 403):
            raise InvalidCredentialsException(detail="Authentication cookie was rejected")
        if response.status_code != 200:
            raise UpstreamUnavailableError(detail=f"Unexpected identity service status {response.status_code}")
        try:
            payload = self._payload(response)
            if not payload.get("email"):
                raise KeyError("email")
            return Person(
                id=str(payload["id"]),
                email=str(payload["email"]),
                user_name=payload.get("userName"),
                is_admin=bool(payload.get("isAdmin") or payload.get("isOwner")),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise self._malformed(ME_PATH, e)

    async def get_tenant(self, address: str, auth_cookie: str) -> Tenant:
        response = await self._get_with_retry(address, PORTAL_PATH, auth_cookie)
        if response.status_code == 401:
            raise InvalidCredentialsException(detail="Authentication cookie was rejected")
        if response.status_code != 200:
            logger.warning(f"Tenant lookup rejected at {address} with status {response.status_code}")
            raise PermissionDeniedException(detail="Could not resolve the caller's tenant")
        try:
            payload = self._payload(response)
            tenant_id = int(payload["tenantId"])
            alias = payload.get("tenantAlias") or payload.get("tenantDomain") or ""
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise self._malformed(PORTAL_PATH, e)
        return Tenant(
            tenant_id=tenant_id,
            alias=alias,
            timezone=await self._get_timezone(address, auth_cookie),
        )

    async def _get_timezone(self, address: str, auth_cookie: str) -> str:
        try:
            response = await self._get(address, SETTINGS_PATH, auth_cookie)
            if response.status_code == 200:
                return self._payload(response).get("timezone") or settings.DEFAULT_TIMEZONE
        except (TransientIdentityError, ValueError, TypeError) as e:
            logger.warning(f"Could not read portal timezone at {address}: {e}")
        return settings.DEFAULT_TIMEZONE

    async def is_admin(self, address: str, auth_cookie: str) -> bool:
        return (await self.get_me(address, auth_cookie)).is_admin

    async def get_profile(self, address: str, auth_cookie: str, principal_id: str) -> Optional[Profile]:
        try:
            response = await self.client.get(
                urljoin(address, PROFILE_BY_EMAIL_PATH),
                params={"email": principal_id},
                headers=self._cookie_header(auth_cookie),
            )
            if response.status_code != 200:
                logger.debug(f"Profile of {principal_id} unavailable: status {response.status_code}")
                return None
            payload = self._payload(response)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.debug(f"Profile of {principal_id} unavailable: {e!r}")
            return None
        return Profile(
            avatar_url=payload.get("avatar") or payload.get("avatarSmall"),
            first_name=payload.get("firstName") or "",
            last_name=payload.get("lastName") or "",
        )
