"""Auth, tenant and user schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from woms.models import Role, TenantStatus
from woms.schemas.quote import EMAIL_PATTERN


class LoginRequest(BaseModel):
    """POST /v1/auth/login request."""

    tenant_code: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: Role
    tenant_id: int


class CreateTenantRequest(BaseModel):
    """POST /v1/admin/tenants request."""

    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1)
    primary_contact_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)


class UpdateTenantStatusRequest(BaseModel):
    status: TenantStatus


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    status: TenantStatus
    primary_contact_email: str | None = None
    created_at: datetime


class CreateUserRequest(BaseModel):
    """POST /v1/users request. The tenant comes from the request context."""

    email: str = Field(pattern=EMAIL_PATTERN)
    full_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8)
    role: Role = Role.CLIENT
    phone_number: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    email: str
    full_name: str
    phone_number: str | None = None
    role: Role
    is_active: bool
    created_at: datetime


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
    page: int
    limit: int
