"""Repository functions for tenants, users and work orders."""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from woms.errors import AlreadyExists
from woms.models import Tenant, TenantStatus, User, WorkOrder


def apply_scope(stmt, model, scope, owner_column=None):
    """Narrow a select by a ScopeFilter. A global filter leaves it untouched."""
    if scope is None:
        return stmt
    if scope.tenant_id is not None:
        stmt = stmt.where(model.tenant_id == scope.tenant_id)
    if scope.owner_email is not None and owner_column is not None:
        stmt = stmt.where(func.lower(owner_column) == scope.owner_email.lower())
    return stmt


# Tenant directory - lookups return None for unknown tenants


async def find_tenant_by_id(db: AsyncSession, tenant_id: int) -> Tenant | None:
    """Get tenant by id."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalar_one_or_none()


async def find_tenant_by_code(db: AsyncSession, code: str) -> Tenant | None:
    """Get tenant by code (codes are stored upper-case)."""
    result = await db.execute(select(Tenant).where(Tenant.code == (code or "").strip().upper()))
    return result.scalar_one_or_none()


async def list_tenants(db: AsyncSession, status: TenantStatus | None = None) -> list[Tenant]:
    stmt = select(Tenant).order_by(Tenant.code)
    if status is not None:
        stmt = stmt.where(Tenant.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_tenant(
    db: AsyncSession,
    code: str,
    name: str,
    primary_contact_email: str | None = None,
) -> Tenant:
    """Create tenant. Code is upper-cased and must be globally unique."""
    code = code.strip().upper()
    if await find_tenant_by_code(db, code):
        raise AlreadyExists(f"Tenant code '{code}' is already in use")
    tenant = Tenant(
        code=code,
        name=name,
        status=TenantStatus.ACTIVE,
        primary_contact_email=primary_contact_email,
    )
    db.add(tenant)
    try:
        await db.flush()
    except IntegrityError as e:
        raise AlreadyExists(f"Tenant code '{code}' is already in use") from e
    await db.refresh(tenant)
    return tenant


# Users


async def find_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def find_user_by_email(db: AsyncSession, tenant_id: int, email: str) -> User | None:
    """Emails are unique per tenant, compared case-insensitively."""
    result = await db.execute(
        select(User).where(
            User.tenant_id == tenant_id,
            User.email == email.strip().lower(),
        )
    )
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, **fields) -> User:
    """Create user; ``fields`` must already carry the stamped tenant_id."""
    email = fields["email"].strip().lower()
    if await find_user_by_email(db, fields["tenant_id"], email):
        raise AlreadyExists(f"A user with email '{email}' already exists in this organization")
    user = User(**{**fields, "email": email})
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        raise AlreadyExists(f"A user with email '{email}' already exists in this organization") from e
    await db.refresh(user)
    return user


async def list_users(db: AsyncSession, scope, page: int = 1, limit: int = 50) -> tuple[list[User], int]:
    """Active users visible under ``scope``, ordered by name."""
    stmt = apply_scope(select(User).where(User.is_active.is_(True)), User, scope)
    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await db.execute(
        stmt.order_by(User.full_name).limit(limit).offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total or 0


# Work orders


async def find_work_order(db: AsyncSession, work_order_id: int) -> WorkOrder | None:
    result = await db.execute(select(WorkOrder).where(WorkOrder.id == work_order_id))
    return result.scalar_one_or_none()


async def find_work_order_by_job_no(db: AsyncSession, tenant_id: int, job_no: str) -> WorkOrder | None:
    result = await db.execute(
        select(WorkOrder).where(WorkOrder.tenant_id == tenant_id, WorkOrder.job_no == job_no)
    )
    return result.scalar_one_or_none()


async def count_work_orders_for_quote(db: AsyncSession, quote_id: int) -> int:
    return await db.scalar(
        select(func.count()).select_from(WorkOrder).where(WorkOrder.created_from_quote_id == quote_id)
    ) or 0


async def job_numbers_with_prefix(db: AsyncSession, tenant_id: int, prefix: str) -> list[str]:
    """Every job number starting with ``prefix`` inside one tenant, unordered."""
    result = await db.execute(
        select(WorkOrder.job_no).where(WorkOrder.tenant_id == tenant_id, WorkOrder.job_no.like(f"{prefix}%"))
    )
    return list(result.scalars().all())


async def create_work_order(db: AsyncSession, **fields) -> WorkOrder:
    """Insert a work order. Duplicate (tenant_id, job_no) raises AlreadyExists."""
    if await find_work_order_by_job_no(db, fields["tenant_id"], fields["job_no"]):
        raise AlreadyExists(f"A work order with job number '{fields['job_no']}' already exists")
    work_order = WorkOrder(**fields)
    db.add(work_order)
    await db.flush()
    await db.refresh(work_order)
    return work_order


async def list_work_orders(
    db: AsyncSession, scope, page: int = 1, limit: int = 20
) -> tuple[list[WorkOrder], int]:
    stmt = apply_scope(select(WorkOrder), WorkOrder, scope, owner_column=WorkOrder.authorized_email)
    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await db.execute(
        stmt.order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total or 0
