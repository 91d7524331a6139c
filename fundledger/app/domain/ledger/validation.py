"""
Ledger validation rules shared by the mutation engine and transfers.
"""

from decimal import Decimal
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from fundledger.app.core.config import settings
from fundledger.app.core.exceptions import (
    LedgerValidationError,
    InvariantViolationError,
    ResourceNotFoundError,
)
from fundledger.app.models.category import Category
from fundledger.app.models.fund import Fund
from fundledger.app.models.donor import Donor
from fundledger.app.models.grant import Grant
from fundledger.app.schemas.transaction import SplitCreate

CENT = Decimal("0.01")


def validate_amount(amount: Decimal) -> Decimal:
    """Round to cents, then reject anything that is not positive."""
    if amount is None:
        raise LedgerValidationError("Amount must be greater than zero", details={"amount": None})

    rounded = Decimal(amount).quantize(CENT)
    if rounded <= 0:
        raise LedgerValidationError(
            "Amount must be greater than zero",
            details={"amount": str(amount)}
        )
    return rounded


def validate_splits(amount: Decimal, splits: Optional[Sequence[SplitCreate]]) -> None:
    """Split amounts must add up to the transaction amount within tolerance."""
    if not splits:
        return

    split_total = Decimal("0")
    for split in splits:
        rounded = split.amount.quantize(CENT) if split.amount is not None else None
        if rounded is None or rounded <= 0:
            raise LedgerValidationError(
                "Split amounts must be greater than zero",
                details={"split_amount": str(split.amount)}
            )
        split_total += rounded

    if abs(split_total - amount) > settings.split_tolerance:
        raise LedgerValidationError(
            f"Split amounts (${split_total:,.2f}) must equal transaction amount (${amount:,.2f})",
            details={
                "split_total": str(split_total),
                "amount": str(amount),
                "tolerance": str(settings.split_tolerance),
            }
        )


async def require_category(db: AsyncSession, category_id: Optional[int]) -> Category:
    """A transaction must reference an existing category."""
    if category_id is None:
        raise LedgerValidationError("Category is required", details={"category_id": None})

    category = await db.get(Category, category_id)
    if category is None:
        raise LedgerValidationError(
            f"Category {category_id} does not exist",
            details={"category_id": category_id}
        )
    return category


async def require_references(
    db: AsyncSession,
    fund_id: Optional[int] = None,
    donor_id: Optional[int] = None,
    grant_id: Optional[int] = None,
    to_fund_id: Optional[int] = None,
) -> Optional[Grant]:
    """
    Check every referenced fund, donor and grant exists.

    Returns the grant (if any) so callers can run the capacity check on
    the same loaded row.
    """
    for fid in (fund_id, to_fund_id):
        if fid is not None and await db.get(Fund, fid) is None:
            raise ResourceNotFoundError("Fund", fid)

    if donor_id is not None and await db.get(Donor, donor_id) is None:
        raise ResourceNotFoundError("Donor", donor_id)

    grant = None
    if grant_id is not None:
        grant = await db.get(Grant, grant_id)
        if grant is None:
            raise ResourceNotFoundError("Grant", grant_id)
    return grant


def ensure_grant_capacity(grant: Grant, amount: Decimal, already_counted: Decimal = Decimal("0")) -> None:
    """
    An expense may not exceed the grant's remaining balance.

    already_counted is the part of amount_used that belongs to the
    transaction being replaced (updates), which is released before checking.
    """
    remaining = grant.remaining_balance + already_counted
    if amount > remaining:
        raise InvariantViolationError(
            f"Expense amount (${amount:,.2f}) exceeds grant remaining balance (${remaining:,.2f}). "
            f"Grant '{grant.name}' has ${grant.amount_used:,.2f} used of ${grant.amount:,.2f} total.",
            details={
                "grant_id": grant.id,
                "grant_name": grant.name,
                "amount_used": str(grant.amount_used),
                "grant_amount": str(grant.amount),
                "remaining_balance": str(remaining),
                "requested_amount": str(amount),
            }
        )
