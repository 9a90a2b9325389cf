#!/usr/bin/env python3
"""
Seed script: creates a platform tenant, a demo client tenant, one user per role,
and prints an access token for each.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from woms.auth.credentials import create_access_token, get_password_hash
from woms.config import settings
from woms.models import Role
from woms.storage.repositories import create_tenant, create_user, find_tenant_by_code, find_user_by_email

DEMO_PASSWORD = "demo_password_123"  # Demo password - print this for user

TENANTS = [
    ("WPSG", "Williams Property Service Group"),
    ("DEMO", "Demo Property Management"),
]

USERS = [
    ("WPSG", "admin@wpsg.example.com", "Platform Admin", Role.PLATFORM_ADMIN),
    ("WPSG", "staff@wpsg.example.com", "Service Staff", Role.STAFF),
    ("DEMO", "manager@demo.example.com", "Client Admin", Role.CLIENT_ADMIN),
    ("DEMO", "client@demo.example.com", "Client User", Role.CLIENT),
]


async def seed():
    engine = create_async_engine(settings.database_url)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        tenants = {}
        for code, name in TENANTS:
            tenant = await find_tenant_by_code(session, code)
            if tenant:
                print(f"Tenant {code} already exists, using existing.")
            else:
                tenant = await create_tenant(session, code, name)
            tenants[code] = tenant
        await session.commit()

        tokens = []
        for code, email, full_name, role in USERS:
            tenant = tenants[code]
            user = await find_user_by_email(session, tenant.id, email)
            if user is None:
                user = await create_user(
                    session,
                    tenant_id=tenant.id,
                    email=email,
                    full_name=full_name,
                    password_hash=get_password_hash(DEMO_PASSWORD),
                    role=role,
                    is_active=True,
                )
            tokens.append((role, email, code, create_access_token(user.id, user.role.value, tenant.id)))
        await session.commit()

    await engine.dispose()

    print("Seed complete!")
    print(f"Password for every demo user: {DEMO_PASSWORD}")
    for role, email, code, token in tokens:
        print(f"\n[{role.value}] {email} (tenant {code})")
        print(f"  Authorization: Bearer {token}")
    print(f"\nStaff switch tenant with: {settings.context_header}: {tenants['DEMO'].id}")
    print("Example: curl http://localhost:8000/v1/quotes -H \"Authorization: Bearer <token>\"")


if __name__ == "__main__":
    asyncio.run(seed())
