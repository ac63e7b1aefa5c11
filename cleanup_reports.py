#!/usr/bin/env python3
"""
Standalone maintenance script: delete cached reports older than the retention window.
Usage: python cleanup_reports.py [retention_days]
"""

import asyncio
import sys
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from app.core.config import settings
from app.services.reports import cleanup_old_reports

async def cleanup(retention_days=None):
    days = settings.REPORT_RETENTION_DAYS if retention_days is None else retention_days
    print(f"Removing reports older than {days} day(s)...")

    engine = create_async_engine(settings.DATABASE_URL)
    async_session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async with async_session_maker() as session:
        try:
            deleted = await cleanup_old_reports(session, retention_days=days)
            print(f"✅ Deleted {deleted} report(s)")
        finally:
            await session.close()
            await engine.dispose()

if __name__ == "__main__":
    days = int(sys.argv[1]) if len(sys.argv) > 1 else None
    asyncio.run(cleanup(days))
