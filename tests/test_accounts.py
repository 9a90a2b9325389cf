"""Tenant administration, user provisioning and work-order scoping."""

import pytest

from woms.errors import AlreadyExists, Forbidden, NotFound, OutOfScope, ValidationFailed
from woms.models import Role, TenantStatus
from woms.services import accounts, work_orders
from tests.helpers import ctx_for


async def test_create_tenant_uppercases_code(db, world):
    tenant = await accounts.create_tenant(db, ctx_for(world.admin), " north_1 ", "North One")
    assert tenant.code == "NORTH_1"
    assert tenant.status == TenantStatus.ACTIVE
    with pytest.raises(AlreadyExists):
        await accounts.create_tenant(db, ctx_for(world.admin), "north_1", "Duplicate")


async def test_create_tenant_rejects_bad_codes(db, world):
    with pytest.raises(ValidationFailed):
        await accounts.create_tenant(db, ctx_for(world.admin), "no spaces", "Bad")


async def test_only_platform_admin_manages_tenants(db, world):
    with pytest.raises(Forbidden):
        await accounts.list_tenants(db, ctx_for(world.staff))
    with pytest.raises(Forbidden):
        await accounts.set_tenant_status(db, ctx_for(world.acme_admin), world.acme.id, TenantStatus.INACTIVE)


async def test_tenant_status_changes_never_delete(db, world):
    tenant = await accounts.set_tenant_status(db, ctx_for(world.admin), world.globex.id, TenantStatus.ARCHIVED)
    assert tenant.status == TenantStatus.ARCHIVED
    active = await accounts.list_tenants(db, ctx_for(world.admin), TenantStatus.ACTIVE)
    assert world.globex.id not in [t.id for t in active]
    assert len(await accounts.list_tenants(db, ctx_for(world.admin))) == 3


async def test_get_tenant_scoping(db, world):
    assert (await accounts.get_tenant(db, ctx_for(world.staff), world.acme.id)).id == world.acme.id
    assert (await accounts.get_tenant(db, ctx_for(world.acme_client), world.acme.id)).code == "ACME"
    with pytest.raises(OutOfScope):
        await accounts.get_tenant(db, ctx_for(world.acme_client), world.globex.id)
    with pytest.raises(NotFound):
        await accounts.get_tenant(db, ctx_for(world.admin), 99999)


async def test_provisioned_user_lands_in_effective_tenant(db, world):
    user = await accounts.provision_user(
        db, ctx_for(world.admin, switch_to=world.globex.id), "Tech@Globex.example.com", "Tech", "pw-123456", Role.CLIENT
    )
    assert user.tenant_id == world.globex.id
    assert user.email == "tech@globex.example.com"


async def test_client_admin_cannot_create_staff(db, world):
    with pytest.raises(Forbidden):
        await accounts.provision_user(db, ctx_for(world.acme_admin), "s@acme.example.com", "S", "pw-123456", Role.STAFF)


async def test_duplicate_email_within_tenant(db, world):
    with pytest.raises(AlreadyExists):
        await accounts.provision_user(
            db, ctx_for(world.acme_admin), "CLIENT@acme.example.com", "Dup", "pw-123456"
        )


async def test_deactivate_user(db, world):
    user = await accounts.deactivate_user(db, ctx_for(world.acme_admin), world.acme_other.id)
    assert user.is_active is False
    with pytest.raises(ValidationFailed):
        await accounts.deactivate_user(db, ctx_for(world.acme_admin), world.acme_admin.id)
    with pytest.raises(OutOfScope):
        await accounts.deactivate_user(db, ctx_for(world.globex_admin), world.acme_client.id)


async def test_list_users_scope(db, world):
    _, everyone = await accounts.list_users(db, ctx_for(world.admin))
    assert everyone == 6
    rows, acme = await accounts.list_users(db, ctx_for(world.acme_admin))
    assert acme == 3
    assert {u.tenant_id for u in rows} == {world.acme.id}


async def test_webhook_work_order_unknown_tenant(db, world):
    with pytest.raises(NotFound):
        await work_orders.ingest_work_order(
            db, "NOPE", {"job_no": "X1", "supplier_name": "S", "property_name": "P", "description": "D"}
        )


async def test_webhook_work_order_ignores_payload_tenant(db, world):
    work_order = await work_orders.ingest_work_order(
        db,
        "globex",
        {"job_no": "X1", "supplier_name": "S", "property_name": "P", "description": "D", "tenant_id": world.acme.id},
    )
    assert work_order.tenant_id == world.globex.id
    with pytest.raises(AlreadyExists):
        await work_orders.ingest_work_order(
            db, "GLOBEX", {"job_no": "X1", "supplier_name": "S", "property_name": "P", "description": "D"}
        )
