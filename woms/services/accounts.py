"""Tenant administration and user provisioning."""

import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.context import AuthorizationContext
from woms.auth.credentials import get_password_hash
from woms.auth.scope import Action, ensure_access, list_filter, require_role, stamp_tenant
from woms.errors import Forbidden, NotFound, OutOfScope, ValidationFailed
from woms.models import Role, Tenant, TenantStatus, User
from woms.storage import repositories as repo

logger = logging.getLogger(__name__)

TENANT_CODE_RE = re.compile(r"^[A-Z0-9_-]+$")

# Roles a client_admin may hand out inside its own organization
CLIENT_ASSIGNABLE_ROLES = frozenset({Role.CLIENT, Role.CLIENT_ADMIN})


async def create_tenant(
    db: AsyncSession,
    ctx: AuthorizationContext,
    code: str,
    name: str,
    primary_contact_email: str | None = None,
) -> Tenant:
    require_role(ctx, Action.MANAGE_TENANTS)
    code = (code or "").strip().upper()
    if not TENANT_CODE_RE.match(code):
        raise ValidationFailed("Tenant code may only contain letters, numbers, hyphens and underscores")
    tenant = await repo.create_tenant(db, code, name.strip(), primary_contact_email)
    logger.info("Tenant %s (%s) created by user %s", tenant.id, tenant.code, ctx.principal.id)
    return tenant


async def get_tenant(db: AsyncSession, ctx: AuthorizationContext, tenant_id: int) -> Tenant:
    """Platform admins read any tenant; everyone else only their effective one."""
    tenant = await repo.find_tenant_by_id(db, tenant_id)
    if tenant is None:
        raise NotFound(f"Tenant {tenant_id} not found")
    if not (ctx.is_cross_tenant_role or tenant.id == ctx.effective_tenant_id):
        raise OutOfScope()
    return tenant


async def list_tenants(
    db: AsyncSession, ctx: AuthorizationContext, status: TenantStatus | None = None
) -> list[Tenant]:
    require_role(ctx, Action.MANAGE_TENANTS)
    return await repo.list_tenants(db, status)


async def set_tenant_status(
    db: AsyncSession, ctx: AuthorizationContext, tenant_id: int, status: TenantStatus
) -> Tenant:
    """Tenants are archived or deactivated, never deleted."""
    require_role(ctx, Action.MANAGE_TENANTS)
    tenant = await repo.find_tenant_by_id(db, tenant_id)
    if tenant is None:
        raise NotFound(f"Tenant {tenant_id} not found")
    if tenant.status != status:
        logger.info("Tenant %s status %s -> %s", tenant.id, tenant.status.value, status.value)
        tenant.status = status
        await db.flush()
    return tenant


async def provision_user(
    db: AsyncSession,
    ctx: AuthorizationContext,
    email: str,
    full_name: str,
    password: str,
    role: Role = Role.CLIENT,
    phone_number: str | None = None,
) -> User:
    """
    Create a user in the effective tenant. client_admins may only create
    client-side accounts; platform admins may create any role.
    """
    require_role(ctx, Action.MANAGE_USERS)
    if ctx.principal.role == Role.CLIENT_ADMIN and role not in CLIENT_ASSIGNABLE_ROLES:
        raise Forbidden(f"client_admin may not create '{role.value}' users")
    fields = stamp_tenant(
        ctx,
        {
            "email": email,
            "full_name": full_name.strip(),
            "phone_number": phone_number,
            "password_hash": get_password_hash(password),
            "role": role,
            "is_active": True,
        },
    )
    user = await repo.create_user(db, **fields)
    logger.info("User %s (%s) created in tenant %s", user.id, user.role.value, user.tenant_id)
    return user


async def deactivate_user(db: AsyncSession, ctx: AuthorizationContext, user_id: int) -> User:
    user = ensure_access(ctx, await repo.find_user_by_id(db, user_id), action=Action.MANAGE_USERS)
    if user.id == ctx.principal.id:
        raise ValidationFailed("You cannot deactivate your own account")
    user.is_active = False
    await db.flush()
    logger.info("User %s deactivated by %s", user.id, ctx.principal.id)
    return user


async def list_users(
    db: AsyncSession, ctx: AuthorizationContext, page: int = 1, limit: int = 50
) -> tuple[list[User], int]:
    return await repo.list_users(db, list_filter(ctx), page=page, limit=limit)
