"""Authorization Context Builder.

Turns a resolved Principal plus the optional tenant-override header into the
one ``AuthorizationContext`` every downstream check uses. The context is an
immutable value built per request and passed explicitly; it is never stored
anywhere shared.
"""

import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from woms.errors import ForbiddenContextSwitch, InvalidContext, InvalidContextFormat
from woms.models.user import CROSS_TENANT_ROLES, Role
from woms.services.audit import AuditLogger, audit_logger
from woms.storage.repositories import find_tenant_by_id

_TENANT_ID_RE = re.compile(r"^[0-9]+$")

# Tenant ids are 32-bit integer primary keys.
MAX_TENANT_ID = 2**31 - 1


@dataclass(frozen=True)
class Principal:
    """Authenticated identity. Carries no access decision."""

    id: int
    role: Role
    home_tenant_id: int
    active: bool
    email: str

    @property
    def is_cross_tenant_role(self) -> bool:
        return self.role in CROSS_TENANT_ROLES


@dataclass(frozen=True)
class AuthorizationContext:
    """Per-request tenant scope.

    ``original_tenant_id`` is only set when ``context_switched`` is true.
    """

    principal: Principal
    effective_tenant_id: int
    context_switched: bool = False
    original_tenant_id: int | None = None
    is_cross_tenant_role: bool = False


def parse_context_override(raw: str) -> int:
    """Tenant override must be a positive integer tenant id. Leading zeros are accepted."""
    value = raw.strip()
    if not _TENANT_ID_RE.match(value) or not 0 < int(value) <= MAX_TENANT_ID:
        raise InvalidContextFormat(f"Invalid tenant context '{raw}': expected a positive integer tenant id")
    return int(value)


def home_context(principal: Principal) -> AuthorizationContext:
    """Context without any override: scoped to the principal's home tenant."""
    return AuthorizationContext(
        principal=principal,
        effective_tenant_id=principal.home_tenant_id,
        context_switched=False,
        original_tenant_id=None,
        is_cross_tenant_role=principal.is_cross_tenant_role,
    )


async def build_authorization_context(
    db: AsyncSession,
    principal: Principal,
    tenant_override: str | None = None,
    audit: AuditLogger | None = None,
) -> AuthorizationContext:
    """
    Apply the context-switch protocol.

    A blank or missing override means no switch. Non-elevated roles sending an
    override get ForbiddenContextSwitch regardless of its value. Elevated roles
    get InvalidContextFormat for a malformed id and InvalidContext for a tenant
    that does not exist; inactive or archived tenants are accepted.
    """
    if tenant_override is None or not tenant_override.strip():
        return home_context(principal)

    if not principal.is_cross_tenant_role:
        raise ForbiddenContextSwitch(
            f"Role '{principal.role.value}' may not request a tenant context switch"
        )

    target_tenant_id = parse_context_override(tenant_override)
    tenant = await find_tenant_by_id(db, target_tenant_id)
    if tenant is None:
        raise InvalidContext(f"Tenant {target_tenant_id} does not exist")

    (audit or audit_logger).log_context_switch(
        principal_id=principal.id,
        original_tenant_id=principal.home_tenant_id,
        target_tenant_id=tenant.id,
    )
    return AuthorizationContext(
        principal=principal,
        effective_tenant_id=tenant.id,
        context_switched=True,
        original_tenant_id=principal.home_tenant_id,
        is_cross_tenant_role=True,
    )
