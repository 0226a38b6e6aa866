import httpx
import pytest

from identity_api.adapters.outbound.identity.identity_client import (
    ME_PATH,
    PORTAL_PATH,
    PROFILE_BY_EMAIL_PATH,
    SETTINGS_PATH,
    IdentityServiceClient,
)
from identity_api.domain.exceptions import (
    InvalidCredentialsException,
    PermissionDeniedException,
    UpstreamUnavailableError,
)

from conftest import PORTAL


class FakePortal:
    """Routes requests by path to canned responses, recording every call."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={})
        outcome = route.pop(0) if isinstance(route, list) else route
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)


def ok(payload) -> httpx.Response:
    return httpx.Response(200, json={"response": payload})


def make_client(portal: FakePortal, max_attempts: int = 3) -> IdentityServiceClient:
    return IdentityServiceClient(
        client=httpx.AsyncClient(transport=httpx.MockTransport(portal)),
        max_attempts=max_attempts,
        wait_multiplier=0,
    )


async def test_get_me_parses_person_and_sends_cookie():
    portal = FakePortal({ME_PATH: ok({"id": "42", "email": "owner@example.com", "userName": "owner",
                                      "isAdmin": False, "isOwner": True})})
    client = make_client(portal)

    person = await client.get_me(PORTAL, "secret-cookie")

    assert person.id == "42"
    assert person.email == "owner@example.com"
    assert person.user_name == "owner"
    assert person.is_admin
    assert portal.requests[0].headers["cookie"] == "asc_auth_key=secret-cookie"
    assert portal.requests[0].url.host == "portal.example.com"


async def test_is_admin_reflects_person():
    portal = FakePortal({ME_PATH: ok({"id": "7", "email": "user@example.com", "isAdmin": False})})

    assert not await make_client(portal).is_admin(PORTAL, "cookie")


@pytest.mark.parametrize("status", [401, 403])
async def test_get_me_rejected_cookie(status):
    portal = FakePortal({ME_PATH: httpx.Response(status, json={})})

    with pytest.raises(InvalidCredentialsException):
        await make_client(portal).get_me(PORTAL, "expired")
    assert portal.calls(ME_PATH) == 1


async def test_get_me_retries_server_errors():
    portal = FakePortal({ME_PATH: [
        httpx.Response(502),
        httpx.Response(503),
        ok({"id": "1", "email": "admin@example.com", "isAdmin": True}),
    ]})

    person = await make_client(portal).get_me(PORTAL, "cookie")

    assert person.is_admin
    assert portal.calls(ME_PATH) == 3


async def test_get_me_gives_up_after_max_attempts():
    portal = FakePortal({ME_PATH: [httpx.Response(503) for _ in range(5)]})

    with pytest.raises(UpstreamUnavailableError):
        await make_client(portal, max_attempts=2).get_me(PORTAL, "cookie")
    assert portal.calls(ME_PATH) == 2


async def test_get_me_connection_failure_is_upstream_unavailable():
    portal = FakePortal({ME_PATH: [httpx.ConnectError("refused") for _ in range(3)]})

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await make_client(portal).get_me(PORTAL, "cookie")
    assert exc_info.value.original_error is not None


async def test_get_tenant_reads_portal_and_timezone():
    portal = FakePortal({
        PORTAL_PATH: ok({"tenantId": 17, "tenantAlias": "acme"}),
        SETTINGS_PATH: ok({"timezone": "Europe/Berlin"}),
    })

    tenant = await make_client(portal).get_tenant(PORTAL, "cookie")

    assert tenant.tenant_id == 17
    assert tenant.alias == "acme"
    assert tenant.timezone == "Europe/Berlin"


async def test_get_tenant_defaults_timezone_when_settings_unavailable():
    portal = FakePortal({
        PORTAL_PATH: ok({"tenantId": "3", "tenantDomain": "example.com"}),
        SETTINGS_PATH: httpx.Response(500),
    })

    tenant = await make_client(portal).get_tenant(PORTAL, "cookie")

    assert tenant.tenant_id == 3
    assert tenant.alias == "example.com"
    assert tenant.timezone == "UTC"


async def test_get_tenant_forbidden():
    portal = FakePortal({PORTAL_PATH: httpx.Response(403, json={})})

    with pytest.raises(PermissionDeniedException):
        await make_client(portal).get_tenant(PORTAL, "cookie")


async def test_get_tenant_rejected_cookie():
    portal = FakePortal({PORTAL_PATH: httpx.Response(401, json={})})

    with pytest.raises(InvalidCredentialsException):
        await make_client(portal).get_tenant(PORTAL, "cookie")


async def test_get_profile_by_email():
    portal = FakePortal({PROFILE_BY_EMAIL_PATH: ok({
        "avatarSmall": "/avatars/small.png", "firstName": "Ada", "lastName": None,
    })})

    profile = await make_client(portal).get_profile(PORTAL, "cookie", "ada@example.com")

    assert profile.avatar_url == "/avatars/small.png"
    assert profile.display_name == "Ada"
    assert portal.requests[0].url.params["email"] == "ada@example.com"


@pytest.mark.parametrize("outcome", [
    httpx.Response(404, json={}),
    httpx.Response(500),
    httpx.Response(200, text="not json"),
    httpx.ReadTimeout("slow"),
])
async def test_get_profile_failure_returns_none(outcome):
    portal = FakePortal({PROFILE_BY_EMAIL_PATH: [outcome]})

    assert await make_client(portal).get_profile(PORTAL, "cookie", "ada@example.com") is None
    assert portal.calls(PROFILE_BY_EMAIL_PATH) == 1


@pytest.mark.parametrize("outcome", [
    httpx.Response(200, text="<html>gateway</html>"),
    httpx.Response(200, json={"response": {}}),
    httpx.Response(200, json={"response": {"tenantId": "acme"}}),
    httpx.Response(200, json={"response": ["not", "an", "object"]}),
    httpx.Response(200, json=["not", "an", "object"]),
])
async def test_get_tenant_malformed_response_is_upstream_unavailable(outcome):
    portal = FakePortal({PORTAL_PATH: [outcome]})

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await make_client(portal).get_tenant(PORTAL, "cookie")
    assert exc_info.value.original_error is not None


@pytest.mark.parametrize("outcome", [
    httpx.Response(200, text="<html>gateway</html>"),
    httpx.Response(200, json={"response": {"id": "9", "userName": "nomail"}}),
    httpx.Response(200, json={"response": {"email": "admin@example.com"}}),
    httpx.Response(200, json={"response": "admin"}),
])
async def test_get_me_malformed_response_is_upstream_unavailable(outcome):
    portal = FakePortal({ME_PATH: [outcome]})

    with pytest.raises(UpstreamUnavailableError):
        await make_client(portal).get_me(PORTAL, "cookie")
