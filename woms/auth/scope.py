"""Scope Enforcer - the single role x operation x ownership decision table.

Every handler asks this module three questions: may the caller touch this
record, which predicate narrows a list query, and which tenant id gets
stamped on a new record. Nothing here does I/O.
"""

import enum
from dataclasses import dataclass

from woms.auth.context import AuthorizationContext
from woms.errors import Forbidden, NotFound, OutOfScope
from woms.models.user import Role


class Action(str, enum.Enum):
    """Operations whose allowed roles differ from plain read/write access."""

    READ = "read"
    WRITE = "write"
    CREATE_QUOTE = "create_quote"
    SUBMIT_QUOTE = "submit_quote"
    DISCUSS_QUOTE = "discuss_quote"
    REQUEST_INFO = "request_info"
    PROVIDE_QUOTE = "provide_quote"
    APPROVE_QUOTE = "approve_quote"
    CLIENT_DECLINE_QUOTE = "client_decline_quote"
    STAFF_DECLINE_QUOTE = "staff_decline_quote"
    EXPIRE_QUOTE = "expire_quote"
    CONVERT_QUOTE = "convert_quote"
    MANAGE_USERS = "manage_users"
    MANAGE_TENANTS = "manage_tenants"


_ALL = frozenset(Role)
_STAFF_SIDE = frozenset({Role.STAFF, Role.PLATFORM_ADMIN})

ROLE_PERMISSIONS: dict[Action, frozenset[Role]] = {
    Action.READ: _ALL,
    Action.WRITE: _ALL,
    Action.CREATE_QUOTE: frozenset({Role.CLIENT, Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.SUBMIT_QUOTE: frozenset({Role.CLIENT, Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.DISCUSS_QUOTE: frozenset({Role.CLIENT, Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.REQUEST_INFO: _STAFF_SIDE,
    Action.PROVIDE_QUOTE: _STAFF_SIDE,
    Action.APPROVE_QUOTE: frozenset({Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.CLIENT_DECLINE_QUOTE: frozenset({Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.STAFF_DECLINE_QUOTE: _STAFF_SIDE,
    Action.EXPIRE_QUOTE: _STAFF_SIDE,
    Action.CONVERT_QUOTE: _STAFF_SIDE,
    Action.MANAGE_USERS: frozenset({Role.CLIENT_ADMIN, Role.PLATFORM_ADMIN}),
    Action.MANAGE_TENANTS: frozenset({Role.PLATFORM_ADMIN}),
}


@dataclass(frozen=True)
class ScopeFilter:
    """List-query predicate. ``None`` fields mean "no restriction"."""

    tenant_id: int | None = None
    owner_email: str | None = None

    @property
    def is_global(self) -> bool:
        return self.tenant_id is None and self.owner_email is None


def _same_email(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def role_allows(ctx: AuthorizationContext, action: Action) -> bool:
    return ctx.principal.role in ROLE_PERMISSIONS[action]


def require_role(ctx: AuthorizationContext, action: Action) -> None:
    """Raise Forbidden when the caller's role may not perform ``action`` at all."""
    if not role_allows(ctx, action):
        raise Forbidden(f"Role '{ctx.principal.role.value}' may not perform '{action.value}'")


def can_access(
    ctx: AuthorizationContext,
    resource_tenant_id: int,
    owner_email: str | None = None,
    has_owner: bool = False,
) -> bool:
    """
    Single-resource read/write decision.

    - staff / platform_admin: always.
    - client_admin: resource belongs to the effective tenant.
    - client: same tenant and, for resources with an owner-email concept
      (``has_owner``), the caller's email matches the owner email.
    """
    role = ctx.principal.role
    if role in (Role.STAFF, Role.PLATFORM_ADMIN):
        return True
    if resource_tenant_id != ctx.effective_tenant_id:
        return False
    if role == Role.CLIENT_ADMIN:
        return True
    if role == Role.CLIENT:
        if has_owner:
            return _same_email(ctx.principal.email, owner_email)
        return True
    return False


def ensure_access(
    ctx: AuthorizationContext,
    resource,
    owner_attr: str | None = None,
    action: Action = Action.READ,
):
    """
    Gate a loaded resource. ``None`` means it does not exist (NotFound);
    one outside the caller's scope raises OutOfScope before the role is
    checked, so a foreign resource looks the same whatever the action.
    Returns the resource for chaining.
    """
    if resource is None:
        raise NotFound()
    owner_email = getattr(resource, owner_attr) if owner_attr else None
    if not can_access(ctx, resource.tenant_id, owner_email, has_owner=owner_attr is not None):
        raise OutOfScope()
    require_role(ctx, action)
    return resource


def list_filter(ctx: AuthorizationContext, has_owner: bool = False) -> ScopeFilter:
    """
    Predicate for list queries.

    Cross-tenant roles without a context switch get no tenant filter at all
    (global visibility). With a switch they are narrowed to the target tenant.
    client_admin is always narrowed to its tenant, client additionally to its
    own email where the resource has an owner.
    """
    role = ctx.principal.role
    if ctx.is_cross_tenant_role:
        if ctx.context_switched:
            return ScopeFilter(tenant_id=ctx.effective_tenant_id)
        return ScopeFilter()
    if role == Role.CLIENT and has_owner:
        return ScopeFilter(tenant_id=ctx.effective_tenant_id, owner_email=ctx.principal.email.lower())
    return ScopeFilter(tenant_id=ctx.effective_tenant_id)


def stamp_tenant(ctx: AuthorizationContext, payload: dict | None = None) -> dict:
    """
    Tenant id for a new record is always the effective tenant id. Any
    client-supplied ``tenant_id`` in ``payload`` is overwritten, not validated.
    """
    data = dict(payload or {})
    data["tenant_id"] = ctx.effective_tenant_id
    return data
