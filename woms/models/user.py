"""User (principal) model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from woms.database import Base
from woms.models.tenant import _utcnow


class Role(str, enum.Enum):
    PLATFORM_ADMIN = "platform_admin"
    STAFF = "staff"
    CLIENT_ADMIN = "client_admin"
    CLIENT = "client"


CROSS_TENANT_ROLES = frozenset({Role.PLATFORM_ADMIN, Role.STAFF})


class User(Base):
    """Users belong to exactly one home tenant; deactivated, never deleted."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False)
    # Stored lower-cased; unique per tenant
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.CLIENT,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)
