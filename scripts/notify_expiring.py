#!/usr/bin/env python3
"""
Send one "expiring" notice for every Quoted quote whose validity ends within
QUOTE_EXPIRING_WINDOW_DAYS. Meant to run daily from cron or a scheduler:
python scripts/notify_expiring.py
"""

import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from woms.config import settings
from woms.database import get_engine_url_and_connect_args
from woms.services.quotes import notify_expiring_quotes


async def run():
    url, connect_args = get_engine_url_and_connect_args()
    engine = create_async_engine(url, connect_args=connect_args)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        sent = await notify_expiring_quotes(session)

    await engine.dispose()
    print(f"Expiring notices sent: {sent} (window {settings.quote_expiring_window_days} days)")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(run())
