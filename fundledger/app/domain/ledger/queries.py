"""
Read helpers for transactions, shared by the ledger services.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from fundledger.app.core.exceptions import ResourceNotFoundError
from fundledger.app.models.transaction import Transaction


async def load_transaction(
    db: AsyncSession,
    transaction_id: int,
    include_deleted: bool = False
) -> Transaction:
    """
    Load a transaction with its splits, refreshing any cached copy.

    Raises:
        ResourceNotFoundError: if missing (or soft-deleted and not included)
    """
    stmt = (
        select(Transaction)
        .options(selectinload(Transaction.splits))
        .where(Transaction.id == transaction_id)
        .execution_options(populate_existing=True)
    )
    if not include_deleted:
        stmt = stmt.where(Transaction.is_deleted == False)  # noqa: E712

    result = await db.execute(stmt)
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return transaction


async def load_transfer_legs(db: AsyncSession, transfer_pair_id: Optional[str]) -> list[Transaction]:
    """Both legs of a transfer, deleted or not, ordered by ID."""
    if not transfer_pair_id:
        return []
    result = await db.execute(
        select(Transaction)
        .options(selectinload(Transaction.splits))
        .where(Transaction.transfer_pair_id == transfer_pair_id)
        .order_by(Transaction.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
