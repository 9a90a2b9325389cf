"""Shared fixtures: a file-backed sqlite database per test, a small tenant world, fixed clock."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from woms.database import Base
from woms.models import QuoteStatus, Role, Tenant, TenantStatus, User
from woms.services.quotes import QuoteService
from tests.helpers import FakeClock, RecordingNotifier, ctx_for, password_hash, quote_data


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed sqlite so independent sessions (sequence allocator, races) see each other."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'woms.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(db, clock, notifier) -> QuoteService:
    return QuoteService(db, notifier=notifier, clock=clock)


@pytest_asyncio.fixture
async def world(session_maker) -> SimpleNamespace:
    """
    Platform tenant WPSG with admin and staff, two client tenants with their own users.

    Built in its own session so tests hold detached rows that a rollback in the
    service under test cannot expire.
    """
    async with session_maker() as setup:
        return await _build_world(setup)


async def _build_world(db) -> SimpleNamespace:
    wpsg = Tenant(code="WPSG", name="Williams Property Service Group", status=TenantStatus.ACTIVE)
    acme = Tenant(code="ACME", name="Acme Strata", status=TenantStatus.ACTIVE)
    globex = Tenant(code="GLOBEX", name="Globex Realty", status=TenantStatus.ACTIVE)
    db.add_all([wpsg, acme, globex])
    await db.flush()

    def user(tenant, email, role):
        return User(
            tenant_id=tenant.id,
            email=email,
            full_name=email.split("@")[0].title(),
            password_hash=password_hash(),
            role=role,
            is_active=True,
        )

    w = SimpleNamespace(
        wpsg=wpsg,
        acme=acme,
        globex=globex,
        admin=user(wpsg, "admin@wpsg.example.com", Role.PLATFORM_ADMIN),
        staff=user(wpsg, "staff@wpsg.example.com", Role.STAFF),
        acme_admin=user(acme, "manager@acme.example.com", Role.CLIENT_ADMIN),
        acme_client=user(acme, "client@acme.example.com", Role.CLIENT),
        acme_other=user(acme, "other@acme.example.com", Role.CLIENT),
        globex_admin=user(globex, "manager@globex.example.com", Role.CLIENT_ADMIN),
    )
    db.add_all([w.admin, w.staff, w.acme_admin, w.acme_client, w.acme_other, w.globex_admin])
    await db.commit()
    return w


@pytest.fixture
def drive(service, world, clock):
    """Create an ACME quote and walk it through real operations to ``status``."""

    async def _drive(status: QuoteStatus, valid_for: timedelta | None = timedelta(days=14)):
        client = ctx_for(world.acme_client)
        staff = ctx_for(world.staff)
        manager = ctx_for(world.acme_admin)

        quote = await service.create_quote(client, quote_data())
        if status == QuoteStatus.DRAFT:
            return quote
        quote = await service.submit(client, quote.id)
        if status == QuoteStatus.SUBMITTED:
            return quote
        if status == QuoteStatus.INFORMATION_REQUESTED:
            return await service.request_info(staff, quote.id, "Which floor is affected?")
        if status == QuoteStatus.DECLINED:
            return await service.decline(staff, quote.id, "Outside service area")
        valid_until = clock() + valid_for if valid_for is not None else None
        quote = await service.provide_quote(
            staff, quote.id, Decimal("1250.00"), Decimal("6"), "Includes materials", valid_until
        )
        if status == QuoteStatus.QUOTED:
            return quote
        if status == QuoteStatus.UNDER_DISCUSSION:
            return await service.discuss(client, quote.id, "Can the price come down?")
        if status == QuoteStatus.EXPIRED:
            return await service.mark_expired(staff, quote.id)
        quote = await service.approve(manager, quote.id)
        if status == QuoteStatus.APPROVED:
            return quote
        quote, _ = await service.convert_to_work_order(staff, quote.id)
        return quote

    return _drive
