"""Password hashing, JWT access tokens and webhook API keys."""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from woms.config import settings
from woms.errors import Unauthenticated


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Generate a bcrypt hash for a password."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def create_access_token(
    user_id: int,
    role: str,
    tenant_id: int,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed token carrying the minimum identity claims."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {"sub": str(user_id), "role": role, "tenant_id": tenant_id, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a token into ``{principal_id, role, home_tenant_id}``.
    Structurally invalid, badly signed or expired tokens raise Unauthenticated.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise Unauthenticated("Token expired") from e
    except JWTError as e:
        raise Unauthenticated("Invalid token") from e
    try:
        return {
            "principal_id": int(payload["sub"]),
            "role": str(payload["role"]),
            "home_tenant_id": int(payload["tenant_id"]),
        }
    except (KeyError, TypeError, ValueError) as e:
        raise Unauthenticated("Token is missing identity claims") from e


def hash_api_key(api_key: str) -> str:
    """Hash API key with salt for storage/lookup."""
    return hashlib.sha256(f"{settings.api_key_hash_salt}:{api_key}".encode()).hexdigest()
