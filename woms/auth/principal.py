"""Principal Resolver - credential in, identity out. No access decisions here."""

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.context import Principal
from woms.auth.credentials import decode_access_token
from woms.errors import AccountDisabled, Unauthenticated
from woms.models import TenantStatus
from woms.storage.repositories import find_tenant_by_id, find_user_by_id

logger = logging.getLogger(__name__)


async def resolve_principal(
    db: AsyncSession,
    credential: str,
    decode: Callable[[str], dict[str, Any]] = decode_access_token,
) -> Principal:
    """
    Decode the credential and load the stored user behind it.

    The stored role wins over the token's claim. The token's tenant must match
    the stored home tenant, and the home tenant must still exist and be active.
    """
    claims = decode(credential)
    user = await find_user_by_id(db, claims["principal_id"])
    if user is None:
        raise Unauthenticated("User associated with this token no longer exists")
    if user.tenant_id != claims["home_tenant_id"]:
        logger.warning("Token tenant mismatch for user %s", user.id)
        raise Unauthenticated("Token does not match the user's organization")
    if not user.is_active:
        raise AccountDisabled()

    tenant = await find_tenant_by_id(db, user.tenant_id)
    if tenant is None:
        raise Unauthenticated("User has no associated organization")
    if tenant.status != TenantStatus.ACTIVE:
        raise AccountDisabled("Your organization account is inactive. Please contact support.")

    return Principal(
        id=user.id,
        role=user.role,
        home_tenant_id=user.tenant_id,
        active=user.is_active,
        email=user.email,
    )
