#!/usr/bin/env python3
"""
Seed script: creates a demo tenant with an API key and loads the AU GST rate table.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import datetime, timezone
from uuid import uuid4

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from easytax.auth.middleware import hash_api_key
from easytax.config import settings
from easytax.database import get_engine_url_and_connect_args
from easytax.engine.writer import save_tax_codes
from easytax.schemas.tax_code import TaxCodeBatchItem
from easytax.storage.repositories import SqlTaxCodeStore


API_KEY = "sk_demo_easytax_12345"  # Demo API key - print this for user

AU_GST_PRODUCTS = [
    "HardwareProduct",
    "InstallProduct",
    "NetworkAccessProduct",
    "OtherProduct",
]


async def seed():
    url, connect_args = get_engine_url_and_connect_args(settings.database_url)
    engine = create_async_engine(url, connect_args=connect_args)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        tenant_id = str(uuid4())
        api_key_hash = hash_api_key(API_KEY)
        now = datetime.now(timezone.utc)

        # Check if tenant exists
        result = await session.execute(
            text("SELECT tenant_id FROM tenants WHERE api_key_hash = :hash"),
            {"hash": api_key_hash},
        )
        row = result.fetchone()
        if row:
            tenant_id = str(row[0])
            print("Tenant already exists, using existing.")
        else:
            await session.execute(
                text("""
                    INSERT INTO tenants (tenant_id, name, api_key_hash, created_at)
                    VALUES (:tid, :name, :hash, :now)
                """),
                {"tid": tenant_id, "name": "Demo Tenant", "hash": api_key_hash, "now": now},
            )
            await session.commit()

        # Same identity replaces, so re-running the seed is harmless
        items = [
            TaxCodeBatchItem(
                tax_zone="AU",
                product_name=product,
                tax_code="GST",
                tax_rate="0.10",
                valid_from_date="2000-10-01T00:00:00+10:00",
            )
            for product in AU_GST_PRODUCTS
        ]
        await save_tax_codes(SqlTaxCodeStore(session), tenant_id, items, now)

    await engine.dispose()

    base = f"http://localhost:8000{settings.mount_path}/taxCodes"
    print("Seed complete!")
    print(f"API Key: {API_KEY}")
    print(f"Use: Authorization: Bearer {API_KEY}")
    print(f"Example: curl '{base}/AU/HardwareProduct/GST?validNow=true' \\")
    print('  -H "Authorization: Bearer ' + API_KEY + '"')


if __name__ == "__main__":
    asyncio.run(seed())
