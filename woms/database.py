"""Database connection and session management."""

import ssl
from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from woms.config import settings

# libpq sslmode values asyncpg takes as-is
_PASSTHROUGH_SSLMODES = frozenset({"allow", "prefer", "require"})


def _make_permissive_ssl_context():
    """SSL context for managed Postgres poolers that present incomplete chains."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def ssl_connect_arg(mode: str, insecure: bool = False):
    """Translate a libpq ``sslmode`` (or ``ssl=true``) into asyncpg's ``ssl`` argument."""
    mode = mode.strip().lower()
    if mode in ("disable", "false", "0"):
        return False
    if insecure:
        return _make_permissive_ssl_context()
    if mode in ("verify-ca", "verify-full"):
        ctx = ssl.create_default_context()
        ctx.check_hostname = mode == "verify-full"
        return ctx
    if mode in _PASSTHROUGH_SSLMODES:
        return mode
    return "require"


def get_engine_url_and_connect_args(url: str | None = None, insecure: bool | None = None):
    """Strip sslmode from URL (asyncpg doesn't accept it) and add SSL via connect_args."""
    url = url or settings.database_url
    insecure = settings.database_ssl_insecure if insecure is None else insecure
    connect_args = {}
    if "sslmode=" in url or "ssl=" in url:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        modes = query.pop("sslmode", None) or query.pop("ssl", None) or ["require"]
        query.pop("ssl", None)
        new_query = urlencode(query, doseq=True)
        url = urlunparse(parsed._replace(query=new_query))
        connect_args["ssl"] = ssl_connect_arg(modes[-1], insecure)
    return url, connect_args


_db_url, _connect_args = get_engine_url_and_connect_args()


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


engine = create_async_engine(
    _db_url,
    echo=settings.log_level == "DEBUG",
    connect_args=_connect_args,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
