"""Login, tenant administration and user management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.credentials import create_access_token, verify_password
from woms.auth.middleware import AuthContextDep
from woms.database import get_db
from woms.errors import AccountDisabled, Unauthenticated
from woms.models import TenantStatus
from woms.schemas.admin import (
    CreateTenantRequest,
    CreateUserRequest,
    LoginRequest,
    TenantResponse,
    TokenResponse,
    UpdateTenantStatusRequest,
    UserListResponse,
    UserResponse,
)
from woms.services import accounts
from woms.storage.repositories import find_tenant_by_code, find_user_by_email

auth_router = APIRouter()
router = APIRouter()


@auth_router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: Annotated[AsyncSession, Depends(get_db)]):
    """Exchange tenant code, email and password for an access token."""
    tenant = await find_tenant_by_code(db, body.tenant_code)
    user = await find_user_by_email(db, tenant.id, body.email) if tenant else None
    if user is None or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")
    if not user.is_active:
        raise AccountDisabled()
    if tenant.status != TenantStatus.ACTIVE:
        raise AccountDisabled("Your organization account is inactive. Please contact support.")
    token = create_access_token(user.id, user.role.value, user.tenant_id)
    return TokenResponse(access_token=token, user_id=user.id, role=user.role, tenant_id=user.tenant_id)


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    body: CreateTenantRequest,
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    tenant = await accounts.create_tenant(db, ctx, body.code, body.name, body.primary_contact_email)
    await db.commit()
    return tenant


@router.get("/tenants", response_model=list[TenantResponse])
async def list_tenants(
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: Annotated[TenantStatus | None, Query(alias="status")] = None,
):
    return await accounts.list_tenants(db, ctx, status_filter)


@router.get("/tenants/{tenant_id}", response_model=TenantResponse)
async def get_tenant(tenant_id: int, ctx: AuthContextDep, db: Annotated[AsyncSession, Depends(get_db)]):
    return await accounts.get_tenant(db, ctx, tenant_id)


@router.patch("/tenants/{tenant_id}/status", response_model=TenantResponse)
async def update_tenant_status(
    tenant_id: int,
    body: UpdateTenantStatusRequest,
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Activate, deactivate or archive a tenant. Tenants are never deleted."""
    tenant = await accounts.set_tenant_status(db, ctx, tenant_id, body.status)
    await db.commit()
    return tenant


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: CreateUserRequest,
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a user in the current tenant context."""
    user = await accounts.provision_user(
        db, ctx, body.email, body.full_name, body.password, body.role, body.phone_number
    )
    await db.commit()
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    ctx: AuthContextDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    rows, total = await accounts.list_users(db, ctx, page=page, limit=limit)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in rows], total=total, page=page, limit=limit
    )


@router.delete("/users/{user_id}", response_model=UserResponse)
async def deactivate_user(user_id: int, ctx: AuthContextDep, db: Annotated[AsyncSession, Depends(get_db)]):
    """Soft delete: the user is deactivated, never removed."""
    user = await accounts.deactivate_user(db, ctx, user_id)
    await db.commit()
    return user
