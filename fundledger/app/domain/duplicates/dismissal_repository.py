"""
Persistent store of transaction pairs reviewed as "not a duplicate".
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fundledger.app.models.dismissed_duplicate import DismissedDuplicatePair

logger = logging.getLogger(__name__)


def pair_key(transaction1_id: int, transaction2_id: int) -> str:
    """Order-independent key of a transaction pair."""
    low, high = sorted((transaction1_id, transaction2_id))
    return f"{low}|{high}"


class DismissedPairRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, transaction1_id: int, transaction2_id: int) -> None:
        """
        Record a dismissed pair. Idempotent.

        Runs in a savepoint so a concurrent insert of the same key only
        rolls back this row, not the caller's unit of work.
        """
        key = pair_key(transaction1_id, transaction2_id)
        if await self.contains(transaction1_id, transaction2_id):
            return

        low, high = sorted((transaction1_id, transaction2_id))
        try:
            async with self.db.begin_nested():
                self.db.add(DismissedDuplicatePair(
                    pair_key=key,
                    transaction1_id=low,
                    transaction2_id=high,
                ))
        except IntegrityError:
            logger.info("Duplicate pair %s already dismissed", key)

    async def contains(self, transaction1_id: int, transaction2_id: int) -> bool:
        result = await self.db.execute(
            select(DismissedDuplicatePair.id).where(
                DismissedDuplicatePair.pair_key == pair_key(transaction1_id, transaction2_id)
            )
        )
        return result.scalar_one_or_none() is not None

    async def load_keys(self) -> set[str]:
        """All dismissed pair keys, for scanning many pairs at once."""
        result = await self.db.execute(select(DismissedDuplicatePair.pair_key))
        return set(result.scalars().all())
