"""Request authentication dependencies."""

import hmac
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from woms.auth.context import AuthorizationContext, build_authorization_context
from woms.auth.credentials import hash_api_key
from woms.auth.principal import resolve_principal
from woms.config import settings
from woms.database import get_db
from woms.errors import Unauthenticated

API_KEY_HEADER = APIKeyHeader(name="Authorization", auto_error=False)
WEBHOOK_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def _bearer_token(auth_header: str | None) -> str:
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthenticated("Missing or invalid Authorization header")
    token = auth_header[7:].strip()
    if not token:
        raise Unauthenticated("Missing access token")
    return token


async def get_auth_context(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_header: str | None = Depends(API_KEY_HEADER),
) -> AuthorizationContext:
    """Resolve the bearer token to a principal, then apply the tenant override header."""
    principal = await resolve_principal(db, _bearer_token(auth_header))
    return await build_authorization_context(
        db, principal, request.headers.get(settings.context_header)
    )


async def require_webhook_key(api_key: str | None = Depends(WEBHOOK_KEY_HEADER)) -> None:
    """Webhook callers present the shared key; only its salted hash is configured."""
    if not api_key:
        raise Unauthenticated("Missing API key")
    if not settings.webhook_api_key_hash or not hmac.compare_digest(
        hash_api_key(api_key), settings.webhook_api_key_hash
    ):
        raise Unauthenticated("Invalid API key")


# Type alias for dependency injection
AuthContextDep = Annotated[AuthorizationContext, Depends(get_auth_context)]
