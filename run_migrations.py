#!/usr/bin/env python
"""
Apply Alembic migrations for the self-hosted backend and seed the catalog
"""

import asyncio
import subprocess
import sys
import os


async def seed_catalog() -> int:
    from atorwala.db.session import async_session, engine
    from atorwala.services.catalog import FALLBACK_PRODUCTS
    from atorwala.services.db_backend import seed_products

    async with async_session() as db:
        added = await seed_products(db, FALLBACK_PRODUCTS)
    await engine.dispose()
    return added


def run_migrations():
    """Run alembic upgrade, then insert the default products that are missing"""

    # Load environment from .env if exists
    if os.path.exists('.env'):
        from dotenv import load_dotenv
        load_dotenv()

    try:
        print("Applying migrations...")
        subprocess.run(
            ['alembic', 'upgrade', 'head'],
            check=True
        )

        print("Seeding catalog...")
        added = asyncio.run(seed_catalog())
        print(f"✅ Migrations completed successfully! {added} products added.")
        return 0

    except subprocess.CalledProcessError as e:
        print(f"❌ Migration failed with error: {e}")
        return 1
    except FileNotFoundError:
        print("❌ Alembic not found. Install with: pip install alembic")
        return 1

if __name__ == "__main__":
    sys.exit(run_migrations())
