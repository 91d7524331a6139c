"""
Database seeding script for a starter ledger.

Creates the default income/expense categories and an unrestricted
General Fund for development.
Run with `python -m fundledger.seed_ledger` after the database is set up.
"""

import asyncio
from decimal import Decimal
from sqlalchemy import select

from fundledger.app.core.config import settings
from fundledger.app.db.session import AsyncSessionLocal, engine, Base
from fundledger.app.models.category import Category
from fundledger.app.models.enums import CategoryType, FundType
from fundledger.app.models.fund import Fund

DEFAULT_CATEGORIES = [
    ("Donations", CategoryType.INCOME, "#16A34A"),
    ("Grant Revenue", CategoryType.INCOME, "#0EA5E9"),
    ("Program Expenses", CategoryType.EXPENSE, "#F97316"),
    ("Administrative", CategoryType.EXPENSE, "#A855F7"),
    (settings.transfer_category_name, CategoryType.EXPENSE, "#6B7280"),
]


async def seed_ledger():
    """
    Seed the categories and fund a fresh ledger needs.

    Skips everything if a General Fund already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting ledger seeding...")

        result = await db.execute(select(Fund).where(Fund.name == "General Fund"))
        if result.scalar_one_or_none():
            print("ℹ️  General Fund already exists, skipping seeding")
            return

        for name, category_type, color in DEFAULT_CATEGORIES:
            db.add(Category(name=name, type=category_type, color=color))
            print(f"✅ Created {category_type.value} category '{name}'")

        db.add(Fund(
            name="General Fund",
            type=FundType.UNRESTRICTED,
            description="Unrestricted operating fund",
            starting_balance=Decimal("0.00"),
            balance=Decimal("0.00"),
        ))
        print("✅ Created General Fund")

        await db.commit()
        print("🎉 Ledger seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_ledger())
