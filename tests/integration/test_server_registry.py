"""Server registry behaviour against a real (SQLite) database."""

from unittest.mock import AsyncMock, patch
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.hostctl.core.exceptions import (
    AlreadyExistsError,
    InvalidFieldError,
    OrganizationNotFoundError,
    PermissionDeniedError,
    ServerAlreadyExistsError,
    ServerHostAlreadyExistsError,
    ServerNotFoundError,
    SSHUnreachableError,
)
from src.hostctl.models import Organization, Server, ServerStatus
from src.hostctl.remote import SSHCredentials
from src.hostctl.repositories import OrganizationRepository, ServerRepository
from src.hostctl.schemas import ServerCreate, ServerQueryParams, ServerUpdate
from src.hostctl.services import ServerService
from tests.factories import OrganizationFactory, ServerFactory, generate_uuid

pytestmark = pytest.mark.integration


def make_request(**overrides) -> ServerCreate:
    data = {
        "name": "web-01",
        "description": "Primary web node",
        "host": "10.0.0.5",
        "port": 22,
        "username": "deploy",
        "ssh_private_key_path": "/home/deploy/.ssh/id_rsa.pem",
    }
    data.update(overrides)
    return ServerCreate(**data)


async def create(
    service: ServerService, organization: Organization, user_id: UUID, **overrides
) -> Server:
    return await service.create(make_request(**overrides), user_id, organization.id)


# --- create ---


async def test_create_then_get_returns_equal_record(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    fetched = await server_service.get(server.id, user_id)

    assert fetched.id == server.id
    assert fetched.name == "web-01"
    assert fetched.description == "Primary web node"
    assert (fetched.host, fetched.port, fetched.username) == ("10.0.0.5", 22, "deploy")
    assert fetched.status == ServerStatus.ACTIVE.value
    assert fetched.user_id == user_id
    assert fetched.organization_id == organization.id
    assert fetched.deleted_at is None


async def test_create_probes_with_supplied_credentials_outside_transaction(
    server_service, organization, user_id, probe, db_session: AsyncSession
):
    in_transaction: list[bool] = []
    probe.side_effect = lambda creds: in_transaction.append(db_session.in_transaction())

    await create(server_service, organization, user_id)

    probe.assert_awaited_once_with(
        SSHCredentials(
            host="10.0.0.5",
            port=22,
            username="deploy",
            password=None,
            private_key_path="/home/deploy/.ssh/id_rsa.pem",
        )
    )
    assert in_transaction == [False]


async def test_create_unreachable_host_stores_nothing(
    server_service, organization, user_id, probe
):
    probe.side_effect = SSHUnreachableError("ssh connection to server failed: timed out")

    with pytest.raises(SSHUnreachableError):
        await create(server_service, organization, user_id)

    listing = await server_service.list(organization.id, user_id, ServerQueryParams())
    assert listing.pagination.total_items == 0


async def test_create_duplicate_name_in_org_conflicts(server_service, organization, user_id):
    await create(server_service, organization, user_id)

    with pytest.raises(ServerAlreadyExistsError):
        await create(server_service, organization, user_id, host="10.0.0.6")


async def test_create_duplicate_host_port_in_org_conflicts(
    server_service, organization, user_id
):
    await create(server_service, organization, user_id)

    with pytest.raises(ServerHostAlreadyExistsError) as exc_info:
        await create(server_service, organization, user_id, name="web-02")

    assert isinstance(exc_info.value, AlreadyExistsError)


async def test_same_host_on_another_port_is_allowed(server_service, organization, user_id):
    await create(server_service, organization, user_id)

    server = await create(server_service, organization, user_id, name="web-02", port=2222)

    assert server.port == 2222


async def test_same_name_in_another_organization_is_allowed(
    server_service, organization, user_id, db_session
):
    other_org = OrganizationFactory.build()
    db_session.add(other_org)
    await db_session.commit()

    await create(server_service, organization, user_id)
    server = await create(server_service, other_org, user_id)

    assert server.organization_id == other_org.id


@pytest.mark.parametrize("build", [OrganizationFactory.inactive, OrganizationFactory.deleted])
async def test_create_in_unusable_organization_fails(
    server_service, db_session, user_id, build
):
    org = build()
    db_session.add(org)
    await db_session.commit()

    with pytest.raises(OrganizationNotFoundError):
        await create(server_service, org, user_id)


async def test_create_in_unknown_organization_fails(server_service, user_id):
    with pytest.raises(OrganizationNotFoundError):
        await server_service.create(make_request(), user_id, generate_uuid())


async def test_create_revalidates_auth_for_unvalidated_requests(
    server_service, organization, user_id, probe
):
    request = ServerCreate.model_construct(
        name="web-01",
        description="",
        host="10.0.0.5",
        port=22,
        username="deploy",
        ssh_password="pw",
        ssh_private_key_path="/home/deploy/.ssh/id_rsa.pem",
        status=ServerStatus.ACTIVE,
    )

    with pytest.raises(InvalidFieldError):
        await server_service.create(request, user_id, organization.id)

    probe.assert_not_awaited()


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"name": "!"}, "name"),
        ({"host": "not a host!!"}, "host"),
        ({"port": 0}, "port"),
        ({"port": 70000}, "port"),
        ({"username": "bad user"}, "username"),
    ],
)
async def test_create_revalidates_fields_for_unvalidated_requests(
    server_service, organization, user_id, probe, db_session, overrides, field
):
    fields = {
        "name": "web-01",
        "description": "",
        "host": "10.0.0.5",
        "port": 22,
        "username": "deploy",
        "ssh_password": "pw",
        "ssh_private_key_path": None,
        "status": ServerStatus.ACTIVE,
    } | overrides
    request = ServerCreate.model_construct(**fields)

    with pytest.raises(InvalidFieldError) as exc_info:
        await server_service.create(request, user_id, organization.id)

    assert exc_info.value.field == field
    probe.assert_not_awaited()
    assert await ServerRepository(db_session).count_scoped(
        [Server.organization_id == organization.id]
    ) == 0


@pytest.mark.parametrize(
    ("changes", "field"),
    [
        ({"name": "!"}, "name"),
        ({"port": 0}, "port"),
        ({"host": "not a host!!"}, "host"),
        ({"username": "bad user"}, "username"),
    ],
)
async def test_update_revalidates_changed_fields_for_unvalidated_requests(
    server_service, organization, user_id, probe, changes, field
):
    server = await create(server_service, organization, user_id)
    probe.reset_mock()

    with pytest.raises(InvalidFieldError) as exc_info:
        await server_service.update(server.id, ServerUpdate.model_construct(**changes), user_id)

    assert exc_info.value.field == field
    probe.assert_not_awaited()
    stored = await server_service.get(server.id, user_id)
    assert (stored.name, stored.host, stored.port, stored.username) == (
        server.name,
        server.host,
        server.port,
        server.username,
    )


async def test_concurrent_insert_maps_integrity_error_to_conflict(
    server_service, organization, user_id
):
    await create(server_service, organization, user_id)

    # Simulate a racing insert that committed after our uniqueness check ran
    with patch.object(server_service.server_repo, "get_by_name", AsyncMock(return_value=None)):
        with pytest.raises(ServerAlreadyExistsError):
            await create(server_service, organization, user_id, host="10.0.0.9")

    with patch.object(server_service.server_repo, "get_by_host", AsyncMock(return_value=None)):
        with pytest.raises(ServerHostAlreadyExistsError):
            await create(server_service, organization, user_id, name="web-09")

    # The session is usable again after the rollback
    server = await create(server_service, organization, user_id, name="web-10", host="10.0.0.10")
    assert server.name == "web-10"


# --- get / resolve_target ---


async def test_get_by_another_user_is_permission_denied(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    with pytest.raises(PermissionDeniedError):
        await server_service.get(server.id, generate_uuid())


async def test_get_unknown_id_is_not_found(server_service, user_id):
    with pytest.raises(ServerNotFoundError):
        await server_service.get(generate_uuid(), user_id)


async def test_get_malformed_id_is_invalid(server_service, user_id):
    with pytest.raises(InvalidFieldError):
        await server_service.get("not-a-uuid", user_id)


async def test_resolve_target_without_id_returns_none(server_service, user_id):
    assert await server_service.resolve_target(None, user_id) is None
    assert await server_service.resolve_target("", user_id) is None


async def test_resolve_target_returns_owned_server(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    resolved = await server_service.resolve_target(str(server.id), user_id)

    assert resolved is not None and resolved.id == server.id


# --- update ---


async def test_description_only_update_runs_no_uniqueness_query_and_no_probe(
    server_service, organization, user_id, probe
):
    server = await create(server_service, organization, user_id)
    probe.reset_mock()

    repo = server_service.server_repo
    with (
        patch.object(repo, "get_by_name", AsyncMock()) as by_name,
        patch.object(repo, "get_by_host", AsyncMock()) as by_host,
    ):
        updated = await server_service.update(
            server.id, ServerUpdate(description="Moved to rack 4"), user_id
        )

    by_name.assert_not_called()
    by_host.assert_not_called()
    probe.assert_not_awaited()
    assert updated.description == "Moved to rack 4"
    assert updated.name == "web-01"


async def test_update_refreshes_updated_at(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)
    before = server.updated_at

    updated = await server_service.update(server.id, ServerUpdate(description="x"), user_id)

    assert updated.updated_at >= before


async def test_update_to_taken_name_conflicts(server_service, organization, user_id):
    await create(server_service, organization, user_id)
    second = await create(server_service, organization, user_id, name="web-02", host="10.0.0.6")

    with pytest.raises(ServerAlreadyExistsError):
        await server_service.update(second.id, ServerUpdate(name="web-01"), user_id)


async def test_update_keeping_own_name_and_address_succeeds(
    server_service, organization, user_id
):
    server = await create(server_service, organization, user_id)

    updated = await server_service.update(
        server.id, ServerUpdate(name="web-01", host="10.0.0.5", port=22), user_id
    )

    assert updated.name == "web-01"


async def test_update_to_taken_address_conflicts(server_service, organization, user_id):
    await create(server_service, organization, user_id)
    second = await create(server_service, organization, user_id, name="web-02", host="10.0.0.6")

    with pytest.raises(ServerHostAlreadyExistsError):
        await server_service.update(second.id, ServerUpdate(host="10.0.0.5"), user_id)


async def test_update_adding_password_while_key_remains_is_invalid(
    server_service, organization, user_id
):
    server = await create(server_service, organization, user_id)

    with pytest.raises(InvalidFieldError):
        await server_service.update(server.id, ServerUpdate(ssh_password="pw"), user_id)


async def test_update_switching_from_key_to_password(
    server_service, organization, user_id, probe
):
    server = await create(server_service, organization, user_id)
    probe.reset_mock()

    updated = await server_service.update(
        server.id, ServerUpdate(ssh_password="pw", ssh_private_key_path=""), user_id
    )

    assert updated.ssh_password == "pw"
    assert updated.ssh_private_key_path is None
    probe.assert_awaited_once()
    creds = probe.await_args.args[0]
    assert creds.password == "pw" and creds.private_key_path is None


async def test_update_connection_facts_probes_merged_credentials(
    server_service, organization, user_id, probe, db_session
):
    server = await create(server_service, organization, user_id)
    probe.reset_mock()
    in_transaction: list[bool] = []
    probe.side_effect = lambda creds: in_transaction.append(db_session.in_transaction())

    updated = await server_service.update(server.id, ServerUpdate(port=2222), user_id)

    assert updated.port == 2222
    creds = probe.await_args.args[0]
    assert (creds.host, creds.port, creds.username) == ("10.0.0.5", 2222, "deploy")
    assert creds.private_key_path == "/home/deploy/.ssh/id_rsa.pem"
    assert in_transaction == [False]


async def test_update_unreachable_leaves_record_unchanged(
    server_service, organization, user_id, probe
):
    server = await create(server_service, organization, user_id)
    probe.side_effect = SSHUnreachableError()

    with pytest.raises(SSHUnreachableError):
        await server_service.update(server.id, ServerUpdate(host="10.9.9.9"), user_id)

    fetched = await server_service.get(server.id, user_id)
    assert fetched.host == "10.0.0.5"


async def test_update_without_probing_when_disabled(
    db_session, organization, user_id, probe
):
    service = ServerService(
        ServerRepository(db_session),
        OrganizationRepository(db_session),
        db_session,
        probe=probe,
        probe_on_update=False,
    )
    server = await create(service, organization, user_id)
    probe.reset_mock()

    await service.update(server.id, ServerUpdate(host="10.0.0.77"), user_id)

    probe.assert_not_awaited()


async def test_update_by_another_user_is_permission_denied(
    server_service, organization, user_id
):
    server = await create(server_service, organization, user_id)

    with pytest.raises(PermissionDeniedError):
        await server_service.update(server.id, ServerUpdate(description="x"), generate_uuid())


# --- update_status ---


async def test_update_status_returns_persisted_state(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    updated = await server_service.update_status(server.id, "maintenance", user_id)

    assert updated.status == ServerStatus.MAINTENANCE.value
    assert (await server_service.get(server.id, user_id)).status == "maintenance"


async def test_update_status_rejects_unknown_status(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    with pytest.raises(InvalidFieldError):
        await server_service.update_status(server.id, "rebooting", user_id)


async def test_update_status_by_another_user_is_permission_denied(
    server_service, organization, user_id
):
    server = await create(server_service, organization, user_id)

    with pytest.raises(PermissionDeniedError):
        await server_service.update_status(server.id, "inactive", generate_uuid())


# --- delete ---


async def test_deleted_server_is_not_found(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)

    await server_service.delete(server.id, user_id)

    with pytest.raises(ServerNotFoundError):
        await server_service.get(server.id, user_id)
    with pytest.raises(ServerNotFoundError):
        await server_service.update(server.id, ServerUpdate(description="x"), user_id)
    with pytest.raises(ServerNotFoundError):
        await server_service.delete(server.id, user_id)


async def test_delete_keeps_row_with_deleted_at(
    server_service, organization, user_id, db_session
):
    server = await create(server_service, organization, user_id)

    await server_service.delete(server.id, user_id)

    row = await db_session.get(Server, server.id)
    assert row is not None and row.deleted_at is not None


async def test_name_and_address_reusable_after_delete(server_service, organization, user_id):
    server = await create(server_service, organization, user_id)
    await server_service.delete(server.id, user_id)

    again = await create(server_service, organization, user_id)

    assert again.id != server.id


async def test_delete_by_another_user_is_permission_denied(
    server_service, organization, user_id
):
    server = await create(server_service, organization, user_id)

    with pytest.raises(PermissionDeniedError):
        await server_service.delete(server.id, generate_uuid())


# --- list ---


async def seed(db_session, organization, user_id, *names: str, **overrides) -> list[Server]:
    servers = [
        ServerFactory.build(
            name=name, user_id=user_id, organization_id=organization.id, **overrides
        )
        for name in names
    ]
    db_session.add_all(servers)
    await db_session.commit()
    return servers


async def test_list_only_returns_callers_live_servers(
    server_service, organization, user_id, db_session
):
    await seed(db_session, organization, user_id, "alpha", "bravo")
    await seed(db_session, organization, generate_uuid(), "other-user")
    other_org = OrganizationFactory.build()
    db_session.add(other_org)
    await db_session.commit()
    await seed(db_session, other_org, user_id, "other-org")
    db_session.add(
        ServerFactory.deleted(name="gone", user_id=user_id, organization_id=organization.id)
    )
    await db_session.commit()

    listing = await server_service.list(
        organization.id, user_id, ServerQueryParams(sort_by="name", sort_order="asc")
    )

    assert [s.name for s in listing.servers] == ["alpha", "bravo"]
    assert listing.pagination.total_items == 2


async def test_list_search_is_case_insensitive_across_fields(
    server_service, organization, user_id, db_session
):
    await seed(db_session, organization, user_id, "Database-Primary")
    await seed(db_session, organization, user_id, "cache", description="Redis for the DATABASE tier")
    await seed(db_session, organization, user_id, "edge", username="dbadmin")
    await seed(db_session, organization, user_id, "unrelated")

    listing = await server_service.list(
        organization.id,
        user_id,
        ServerQueryParams(search="database", sort_by="name", sort_order="asc"),
    )

    assert {s.name for s in listing.servers} == {"cache", "Database-Primary"}


@pytest.mark.parametrize(
    ("search", "expected"),
    [("_", {"web_01"}), ("%", {"cache"}), ("b_0", {"web_01"})],
)
async def test_list_search_treats_wildcards_literally(
    server_service, organization, user_id, db_session, search, expected
):
    await seed(db_session, organization, user_id, "web_01", "web-01", "db")
    await seed(db_session, organization, user_id, "cache", description="99.9% hit rate")

    listing = await server_service.list(
        organization.id, user_id, ServerQueryParams(search=search)
    )

    assert {s.name for s in listing.servers} == expected


async def test_list_first_page_metadata(server_service, organization, user_id, db_session):
    await seed(db_session, organization, user_id, *[f"node-{i:02d}" for i in range(25)])

    listing = await server_service.list(
        organization.id,
        user_id,
        ServerQueryParams(page=1, page_size=10, sort_by="name", sort_order="asc"),
    )

    assert [s.name for s in listing.servers] == [f"node-{i:02d}" for i in range(10)]
    meta = listing.pagination
    assert (meta.current_page, meta.total_pages, meta.total_items) == (1, 3, 25)
    assert meta.has_next and not meta.has_prev


async def test_list_paginates_with_metadata(server_service, organization, user_id, db_session):
    await seed(db_session, organization, user_id, *[f"node-{i:02d}" for i in range(25)])

    listing = await server_service.list(
        organization.id,
        user_id,
        ServerQueryParams(page=2, page_size=10, sort_by="name", sort_order="asc"),
    )

    assert [s.name for s in listing.servers] == [f"node-{i:02d}" for i in range(10, 20)]
    meta = listing.pagination
    assert (meta.current_page, meta.page_size, meta.total_pages, meta.total_items) == (2, 10, 3, 25)
    assert meta.has_next and meta.has_prev


async def test_list_oversized_page_size_falls_back_to_default(
    server_service, organization, user_id, db_session
):
    await seed(db_session, organization, user_id, *[f"node-{i:02d}" for i in range(12)])

    listing = await server_service.list(
        organization.id, user_id, ServerQueryParams(page_size=500)
    )

    assert listing.pagination.page_size == 10
    assert len(listing.servers) == 10
    assert listing.pagination.has_next and not listing.pagination.has_prev


async def test_list_sorts_descending_by_port(server_service, organization, user_id, db_session):
    await seed(db_session, organization, user_id, "a", port=22)
    await seed(db_session, organization, user_id, "b", port=2222)
    await seed(db_session, organization, user_id, "c", port=222)

    listing = await server_service.list(
        organization.id, user_id, ServerQueryParams(sort_by="port", sort_order="desc")
    )

    assert [s.port for s in listing.servers] == [2222, 222, 22]


async def test_list_response_never_contains_credentials(
    server_service, organization, user_id, db_session
):
    await seed(db_session, organization, user_id, "secret-box", ssh_password="hunter2")

    listing = await server_service.list(organization.id, user_id, ServerQueryParams())

    dumped = listing.model_dump_json()
    assert "hunter2" not in dumped
    assert "ssh_password" not in dumped
