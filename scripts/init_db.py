#!/usr/bin/env python3
"""
Database initialization script for Vellum.

Creates every table and the current_documents view from the ORM models.
Production databases should be migrated with `alembic upgrade head`.
"""
import asyncio
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from sqlalchemy import inspect, text

from vellum.core.database import close_database, get_engine, init_database


async def verify_tables() -> list:
    """Return the names of the tables now present."""
    async with get_engine().connect() as conn:
        return await conn.run_sync(lambda sync_conn: sorted(inspect(sync_conn).get_table_names()))


async def main() -> int:
    """Initialize database from the models."""
    print("Initializing database...")

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("✅ Database connection successful")

        await init_database()
        tables = await verify_tables()
        print(f"✅ Schema ready ({len(tables)} tables)")
        for name in tables:
            print(f"   - {name}")
        return 0

    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        import traceback
        traceback.print_exc()
        return 1

    finally:
        await close_database()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
