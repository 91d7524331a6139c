"""
Transfer Service (Domain Logic).

Moves money between two funds as a pair of linked transactions.
Must be atomic: both legs and both balance updates commit together or
not at all.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from fundledger.app.core.config import settings
from fundledger.app.core.exceptions import LedgerValidationError
from fundledger.app.db.session import transactional
from fundledger.app.domain.ledger.queries import load_transaction
from fundledger.app.domain.ledger.recalculator import AggregateRecalculator
from fundledger.app.domain.ledger.validation import validate_amount
from fundledger.app.models.category import Category
from fundledger.app.models.enums import CategoryType, FundType, TransactionType
from fundledger.app.models.fund import Fund
from fundledger.app.models.transaction import Transaction
from fundledger.app.schemas.transaction import TransferCreate
from fundledger.app.services.audit import AuditAction, AuditSink, DatabaseAuditSink, record_audit

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """The two legs of one transfer."""
    transfer_pair_id: str
    expense_leg: Transaction
    income_leg: Transaction


class TransferService:

    def __init__(
        self,
        db: AsyncSession,
        audit_sink: Optional[AuditSink] = None,
        recalculator: Optional[AggregateRecalculator] = None,
    ):
        self.db = db
        self.audit = audit_sink or DatabaseAuditSink(db)
        self.recalculator = recalculator or AggregateRecalculator(db)

    async def create_transfer(self, request: TransferCreate) -> TransferResult:
        """
        Transfer an amount from one fund to another.

        Flow:
        1. Validate amount and that two distinct, existing funds are named
        2. Resolve or create the shared Transfer category
        3. Build an Expense leg on the source and an Income leg on the
           destination, sharing one transfer pair ID
        4. Flush both legs and recalculate both balances
        5. Commit (any failure in 2-4 rolls back everything)

        Returns:
            TransferResult with both legs reloaded after commit
        """
        amount = validate_amount(request.amount)

        if request.from_fund_id is None or request.to_fund_id is None:
            raise LedgerValidationError(
                "Both source and destination funds are required for transfers",
                details={"from_fund_id": request.from_fund_id, "to_fund_id": request.to_fund_id}
            )

        if request.from_fund_id == request.to_fund_id:
            raise LedgerValidationError(
                "Cannot transfer to the same fund",
                details={"fund_id": request.from_fund_id}
            )

        transfer_date = request.date or date.today()
        transfer_pair_id = str(uuid.uuid4())

        logger.info(
            "Creating transfer",
            extra={
                "from_fund_id": request.from_fund_id,
                "to_fund_id": request.to_fund_id,
                "amount": str(amount),
                "transfer_pair_id": transfer_pair_id,
            }
        )

        async with transactional(self.db):
            from_fund = await self.db.get(Fund, request.from_fund_id)
            to_fund = await self.db.get(Fund, request.to_fund_id)
            if from_fund is None or to_fund is None:
                raise LedgerValidationError(
                    "Invalid fund selection for transfer",
                    details={
                        "from_fund_id": request.from_fund_id,
                        "from_fund_exists": from_fund is not None,
                        "to_fund_id": request.to_fund_id,
                        "to_fund_exists": to_fund is not None,
                    }
                )

            category = await self._resolve_transfer_category()

            expense_leg = Transaction(
                date=transfer_date,
                amount=amount,
                description=request.description or f"Transfer to {to_fund.name}",
                type=TransactionType.EXPENSE,
                category_id=category.id,
                fund_type=FundType.UNRESTRICTED,
                fund_id=from_fund.id,
                to_fund_id=to_fund.id,
                transfer_pair_id=transfer_pair_id,
                reference_number=request.reference_number,
                tags=settings.transfer_tag,
            )
            income_leg = Transaction(
                date=transfer_date,
                amount=amount,
                description=request.description or f"Transfer from {from_fund.name}",
                type=TransactionType.INCOME,
                category_id=category.id,
                fund_type=FundType.UNRESTRICTED,
                fund_id=to_fund.id,
                to_fund_id=from_fund.id,
                transfer_pair_id=transfer_pair_id,
                reference_number=request.reference_number,
                tags=settings.transfer_tag,
            )

            self.db.add_all([expense_leg, income_leg])
            await self.db.flush()

            await self.recalculator.recalculate_fund(from_fund.id)
            await self.recalculator.recalculate_fund(to_fund.id)

            expense_id, income_id = expense_leg.id, income_leg.id
            from_name, to_name = from_fund.name, to_fund.name

        await record_audit(
            self.audit,
            AuditAction.TRANSFER,
            "Transaction",
            expense_id,
            f"Transferred ${amount:,.2f} from {from_name} to {to_name}",
            new_values={
                "transfer_pair_id": transfer_pair_id,
                "amount": amount,
                "from_fund_id": request.from_fund_id,
                "to_fund_id": request.to_fund_id,
                "expense_leg_id": expense_id,
                "income_leg_id": income_id,
            }
        )

        return TransferResult(
            transfer_pair_id=transfer_pair_id,
            expense_leg=await load_transaction(self.db, expense_id),
            income_leg=await load_transaction(self.db, income_id),
        )

    async def _resolve_transfer_category(self) -> Category:
        result = await self.db.execute(
            select(Category).where(
                Category.name == settings.transfer_category_name,
                Category.type == CategoryType.EXPENSE,
            ).limit(1)
        )
        category = result.scalar_one_or_none()
        if category is None:
            category = Category(
                name=settings.transfer_category_name,
                type=CategoryType.EXPENSE,
                description="Internal transfers between funds",
                color="#6B7280",
            )
            self.db.add(category)
            await self.db.flush()
        return category
