"""
Aggregate Recalculator (Domain Logic).

Derives fund balances, donor totals and grant usage from scratch by
scanning the live (not soft-deleted) transactions that reference them.
No incremental deltas are kept.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from fundledger.app.models.fund import Fund
from fundledger.app.models.donor import Donor
from fundledger.app.models.grant import Grant
from fundledger.app.models.transaction import Transaction
from fundledger.app.models.enums import TransactionType

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _distinct_ids(ids: Iterable[Optional[int]]) -> list[int]:
    seen = []
    for entity_id in ids:
        if entity_id is not None and entity_id not in seen:
            seen.append(entity_id)
    return seen


class AggregateRecalculator:
    """
    Recomputes derived fields inside the caller's unit of work.

    Every method flushes its change but never commits; the mutation that
    triggered the recalculation decides when the whole unit commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _sum_live(self, *conditions) -> Decimal:
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.is_deleted == False,  # noqa: E712
            *conditions
        )
        result = await self.db.execute(stmt)
        return Decimal(str(result.scalar() or 0)).quantize(Decimal("0.01"))

    async def recalculate_fund(self, fund_id: int) -> Optional[Fund]:
        """Set balance = starting_balance + income - expenses."""
        fund = await self.db.get(Fund, fund_id, populate_existing=True)
        if fund is None:
            return None

        income = await self._sum_live(
            Transaction.fund_id == fund_id,
            Transaction.type == TransactionType.INCOME,
        )
        expenses = await self._sum_live(
            Transaction.fund_id == fund_id,
            Transaction.type == TransactionType.EXPENSE,
        )

        balance = (fund.starting_balance or ZERO) + income - expenses
        if fund.balance != balance:
            fund.balance = balance
            await self.db.flush()

        logger.debug("Fund %s balance recalculated: %s", fund_id, balance)
        return fund

    async def recalculate_donor(self, donor_id: int) -> Optional[Donor]:
        """Set contribution total and first/last dates from live income."""
        donor = await self.db.get(Donor, donor_id, populate_existing=True)
        if donor is None:
            return None

        stmt = select(
            func.coalesce(func.sum(Transaction.amount), 0),
            func.min(Transaction.date),
            func.max(Transaction.date),
        ).where(
            Transaction.is_deleted == False,  # noqa: E712
            Transaction.donor_id == donor_id,
            Transaction.type == TransactionType.INCOME,
        )
        total, first_date, last_date = (await self.db.execute(stmt)).one()

        donor.total_contributions = Decimal(str(total or 0)).quantize(Decimal("0.01"))
        donor.first_contribution_date = first_date
        donor.last_contribution_date = last_date
        await self.db.flush()

        logger.debug("Donor %s totals recalculated: %s", donor_id, donor.total_contributions)
        return donor

    async def recalculate_grant(self, grant_id: int) -> Optional[Grant]:
        """Set amount_used to the sum of live expenses charged to the grant."""
        grant = await self.db.get(Grant, grant_id)
        if grant is None:
            return None

        used = await self._sum_live(
            Transaction.grant_id == grant_id,
            Transaction.type == TransactionType.EXPENSE,
        )
        if grant.amount_used != used:
            grant.amount_used = used
            await self.db.flush()

        logger.debug("Grant %s usage recalculated: %s of %s", grant_id, used, grant.amount)
        return grant

    async def recalculate(
        self,
        fund_ids: Iterable[Optional[int]] = (),
        donor_ids: Iterable[Optional[int]] = (),
        grant_ids: Iterable[Optional[int]] = (),
    ) -> None:
        """Recalculate each distinct referenced entity once."""
        for fund_id in _distinct_ids(fund_ids):
            await self.recalculate_fund(fund_id)
        for donor_id in _distinct_ids(donor_ids):
            await self.recalculate_donor(donor_id)
        for grant_id in _distinct_ids(grant_ids):
            await self.recalculate_grant(grant_id)
