import pytest

from identity_api.adapters.outbound.persistence.models import PendingTask
from identity_api.adapters.outbound.persistence.repositories.client_repository import client_repository
from identity_api.adapters.outbound.security.secret_manager import ClientSecretManager
from identity_api.application.dtos.client_dto import ClientUpdateRequest
from identity_api.domain.exceptions import (
    InvalidArgumentError,
    InvalidScopeError,
    InvalidStateError,
    NotFoundError,
)
from identity_api.domain.models.task_domain_model import TaskKind

from conftest import PORTAL, count_rows, make_context, make_create_request


async def test_create_client_returns_plaintext_secret_once(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    assert len(created.client_secret) == 43
    assert created.enabled is True
    assert created.invalidated is False
    assert created.tenant == ctx.tenant.tenant_id
    assert created.tenant_url == PORTAL
    assert created.created_by == ctx.principal.email
    assert created.modified_by == ctx.principal.email
    assert created.scopes == ["files:read", "openid"]

    stored = await client_repository.get_by_client_id(db_session, created.client_id)
    assert stored.client_secret != created.client_secret
    assert await ClientSecretManager.verify_secret(created.client_secret, stored.client_secret)

    view = await client_service.get_tenant_client(ctx, created.client_id)
    assert view.client_secret is None


async def test_create_client_rejects_unknown_scope_before_persisting(client_service, ctx):
    with pytest.raises(InvalidScopeError) as exc_info:
        await client_service.create_client(ctx, make_create_request(scopes={"openid", "admin:everything"}), PORTAL)

    assert exc_info.value.scopes == {"admin:everything"}
    page = await client_service.get_tenant_clients(ctx, 0, 10)
    assert page.total == 0


async def test_create_client_rejects_blank_redirect_uris(client_service, ctx):
    with pytest.raises(InvalidArgumentError):
        await client_service.create_client(ctx, make_create_request(redirect_uris={"  "}), PORTAL)


async def test_update_client_changes_only_given_fields(client_service, ctx):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)
    editor = make_context(email="editor@example.com")

    await client_service.update_client(
        editor, created.client_id, ClientUpdateRequest(name="Renamed client", logo=None)
    )

    view = await client_service.get_tenant_client(ctx, created.client_id)
    assert view.name == "Renamed client"
    assert view.description == created.description
    assert view.redirect_uris == created.redirect_uris
    assert view.modified_by == "editor@example.com"
    assert view.created_by == ctx.principal.email


async def test_update_client_rejects_empty_redirect_uris(client_service, ctx):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    with pytest.raises(InvalidArgumentError):
        await client_service.update_client(ctx, created.client_id, ClientUpdateRequest(redirect_uris=set()))


async def test_update_client_trims_redirect_uris(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    with pytest.raises(InvalidArgumentError):
        await client_service.update_client(ctx, created.client_id, ClientUpdateRequest(redirect_uris={"  "}))

    await client_service.update_client(
        ctx, created.client_id, ClientUpdateRequest(redirect_uris={" https://client.example.com/next ", ""})
    )
    stored = await client_repository.get_by_client_id(db_session, created.client_id)
    assert stored.redirect_uris == {"https://client.example.com/next"}


async def test_update_unknown_client_is_not_found(client_service, ctx):
    with pytest.raises(NotFoundError):
        await client_service.update_client(ctx, "missing", ClientUpdateRequest(name="Whatever"))


async def test_update_after_delete_is_rejected_and_client_stays_invalidated(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)
    await client_service.delete_client(ctx, created.client_id)

    with pytest.raises(InvalidStateError):
        await client_service.update_client(ctx, created.client_id, ClientUpdateRequest(name="Too late"))

    stored = await client_repository.get_by_client_id(db_session, created.client_id)
    assert stored.invalidated is True
    assert stored.enabled is False
    assert stored.name == created.name


async def test_change_activation(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    assert await client_service.change_activation(ctx, created.client_id, False) is True
    assert (await client_repository.get_by_client_id(db_session, created.client_id)).enabled is False

    # Requesting the current state succeeds without a write.
    assert await client_service.change_activation(ctx, created.client_id, False) is True

    assert await client_service.change_activation(ctx, created.client_id, True) is True
    assert (await client_repository.get_by_client_id(db_session, created.client_id)).enabled is True


async def test_change_activation_of_invalidated_client_returns_false(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)
    await client_service.delete_client(ctx, created.client_id)

    assert await client_service.change_activation(ctx, created.client_id, True) is False
    assert (await client_repository.get_by_client_id(db_session, created.client_id)).enabled is False


async def test_change_activation_losing_a_concurrent_write_is_invalid_state(client_service, ctx, monkeypatch):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    async def lost_race(*args, **kwargs):
        return False

    monkeypatch.setattr(client_repository, "set_enabled", lost_race)

    with pytest.raises(InvalidStateError):
        await client_service.change_activation(ctx, created.client_id, False)


async def test_change_activation_of_unknown_client_is_not_found(client_service, ctx):
    with pytest.raises(NotFoundError):
        await client_service.change_activation(ctx, "missing", True)


async def test_delete_client_invalidates_and_schedules_one_cascade(client_service, ctx, db_session):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    await client_service.delete_client(ctx, created.client_id)

    stored = await client_repository.get_by_client_id(db_session, created.client_id)
    assert stored.invalidated is True
    assert stored.enabled is False
    assert await count_rows(PendingTask, kind=TaskKind.CLIENT_CASCADE.value) == 1

    with pytest.raises(NotFoundError):
        await client_service.get_tenant_client(ctx, created.client_id)

    # Deleting again is a no-op.
    await client_service.delete_client(ctx, created.client_id)
    assert await count_rows(PendingTask) == 1


async def test_delete_unknown_client_is_not_found(client_service, ctx):
    with pytest.raises(NotFoundError):
        await client_service.delete_client(ctx, "missing")
    assert await count_rows(PendingTask) == 0


async def test_clients_are_isolated_by_tenant(client_service, ctx):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)
    other_tenant = make_context(tenant_id=2)

    with pytest.raises(NotFoundError):
        await client_service.get_tenant_client(other_tenant, created.client_id)
    with pytest.raises(NotFoundError):
        await client_service.update_client(other_tenant, created.client_id, ClientUpdateRequest(name="Hijack"))
    with pytest.raises(NotFoundError):
        await client_service.delete_client(other_tenant, created.client_id)
    assert (await client_service.get_tenant_clients(other_tenant, 0, 10)).total == 0


async def test_get_tenant_clients_paginates_live_clients(client_service, ctx):
    created = [await client_service.create_client(ctx, make_create_request(name=f"Client {i}"), PORTAL)
               for i in range(3)]
    await client_service.delete_client(ctx, created[0].client_id)

    first = await client_service.get_tenant_clients(ctx, 0, 1)
    assert first.total == 2
    assert len(first.data) == 1
    assert first.next == 1
    assert first.previous is None

    second = await client_service.get_tenant_clients(ctx, 1, 1)
    assert len(second.data) == 1
    assert second.next is None
    assert second.previous == 0
    assert {first.data[0].client_id, second.data[0].client_id} == {c.client_id for c in created[1:]}


@pytest.mark.parametrize("page, limit", [(-1, 10), (0, 0), (0, 101)])
async def test_get_tenant_clients_rejects_invalid_pagination(client_service, ctx, page, limit):
    with pytest.raises(InvalidArgumentError):
        await client_service.get_tenant_clients(ctx, page, limit)


async def test_get_client_info_is_public_and_secret_free(client_service, ctx):
    created = await client_service.create_client(ctx, make_create_request(), PORTAL)

    info = await client_service.get_client_info(make_context(tenant_id=7, is_admin=False), created.client_id)

    assert info.client_id == created.client_id
    assert info.name == created.name
    assert "client_secret" not in info.model_dump()
