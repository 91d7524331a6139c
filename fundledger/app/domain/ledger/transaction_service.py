"""
Transaction Service (Domain Logic).

Validates and applies create / update / soft-delete / restore /
permanent-delete on transactions and keeps every affected fund, donor and
grant aggregate in step within the same unit of work.

Each public mutation:
1. Validates input against the ledger invariants
2. Writes the transaction rows
3. Recalculates the aggregates of every entity whose transaction set changed
4. Commits (or rolls back everything)
5. Notifies the audit sink (best effort)
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.orm import selectinload

from fundledger.app.core.exceptions import (
    AppException,
    LedgerValidationError,
    InvariantViolationError,
    ResourceNotFoundError,
)
from fundledger.app.db.session import transactional
from fundledger.app.domain.ledger.queries import load_transaction, load_transfer_legs
from fundledger.app.domain.ledger.recalculator import AggregateRecalculator
from fundledger.app.domain.ledger.recurrence import next_occurrence
from fundledger.app.domain.ledger.transfer_service import TransferService
from fundledger.app.domain.ledger.validation import (
    CENT,
    validate_amount,
    validate_splits,
    require_category,
    require_references,
    ensure_grant_capacity,
)
from fundledger.app.models.enums import TransactionType
from fundledger.app.models.grant import Grant
from fundledger.app.models.transaction import Transaction, TransactionSplit
from fundledger.app.schemas.transaction import (
    SplitCreate,
    TransactionCreate,
    TransactionUpdate,
    TransferCreate,
)
from fundledger.app.services.audit import AuditAction, AuditSink, DatabaseAuditSink, record_audit

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Transaction"

# Fields of a transfer leg that must stay identical to its partner leg
TRANSFER_LOCKED_FIELDS = ("date", "amount", "type", "fund_id")


def _snapshot(transaction: Transaction) -> dict:
    return {
        "date": transaction.date,
        "amount": transaction.amount,
        "type": transaction.type,
        "category_id": transaction.category_id,
        "fund_id": transaction.fund_id,
        "donor_id": transaction.donor_id,
        "grant_id": transaction.grant_id,
        "payee": transaction.payee,
        "description": transaction.description,
    }


class TransactionService:

    def __init__(
        self,
        db: AsyncSession,
        audit_sink: Optional[AuditSink] = None,
        recalculator: Optional[AggregateRecalculator] = None,
    ):
        self.db = db
        self.audit = audit_sink or DatabaseAuditSink(db)
        self.recalculator = recalculator or AggregateRecalculator(db)

    # Reads

    async def get(self, transaction_id: int, include_deleted: bool = False) -> Transaction:
        return await load_transaction(self.db, transaction_id, include_deleted=include_deleted)

    async def list_deleted(self, max_count: int = 50) -> list[Transaction]:
        """Most recently soft-deleted transactions first."""
        result = await self.db.execute(
            select(Transaction)
            .options(selectinload(Transaction.splits))
            .where(Transaction.is_deleted == True)  # noqa: E712
            .order_by(desc(Transaction.deleted_at), desc(Transaction.id))
            .limit(max_count)
        )
        return list(result.scalars().all())

    # Mutations

    async def create(self, request: TransactionCreate) -> Transaction:
        """
        Create a transaction and update the aggregates it feeds.

        Transfer requests are delegated to TransferService and the expense
        leg is returned.

        Raises:
            LedgerValidationError: non-positive amount, missing category,
                split total mismatch
            ResourceNotFoundError: unknown fund, donor or grant
            InvariantViolationError: expense exceeds grant remaining balance
        """
        logger.info(
            "Creating transaction",
            extra={
                "type": request.type.value,
                "amount": str(request.amount),
                "category_id": request.category_id,
            }
        )

        if request.type == TransactionType.TRANSFER:
            transfers = TransferService(self.db, self.audit, self.recalculator)
            result = await transfers.create_transfer(
                TransferCreate(
                    from_fund_id=request.fund_id,
                    to_fund_id=request.to_fund_id,
                    amount=request.amount,
                    date=request.date,
                    description=request.description,
                    reference_number=request.reference_number,
                )
            )
            return result.expense_leg

        async with transactional(self.db):
            transaction = await self._insert(request)
            transaction_id = transaction.id
            new_values = _snapshot(transaction)

        await record_audit(
            self.audit,
            AuditAction.CREATE,
            ENTITY_TYPE,
            transaction_id,
            f"Created {request.type.value} transaction for ${new_values['amount']:,.2f}",
            new_values=new_values,
        )

        return await self.get(transaction_id)

    async def update(self, transaction_id: int, request: TransactionUpdate) -> Transaction:
        """
        Replace every mutable field and the split set of a transaction.

        Aggregates are recalculated for both the old and the new fund,
        donor and grant so no stale total stays attached to an entity the
        transaction no longer references.
        """
        if request.type == TransactionType.TRANSFER:
            raise LedgerValidationError(
                "Transfers are created through the transfer endpoint, not by editing a transaction",
                details={"transaction_id": transaction_id}
            )

        async with transactional(self.db):
            transaction = await self.get(transaction_id)
            old_values = _snapshot(transaction)

            amount = validate_amount(request.amount)
            await require_category(self.db, request.category_id)
            await self._require_split_categories(request.splits)
            grant = await require_references(
                self.db,
                fund_id=request.fund_id,
                donor_id=request.donor_id,
                grant_id=request.grant_id,
            )

            if transaction.transfer_pair_id:
                self._ensure_transfer_leg_unchanged(transaction, request, amount)

            if grant is not None and request.type == TransactionType.EXPENSE:
                already_counted = Decimal("0")
                if (
                    transaction.grant_id == grant.id
                    and transaction.type == TransactionType.EXPENSE
                ):
                    already_counted = transaction.amount
                ensure_grant_capacity(grant, amount, already_counted)

            validate_splits(amount, request.splits)

            old_fund_id = transaction.fund_id
            old_donor_id = transaction.donor_id
            old_grant_id = transaction.grant_id

            transaction.date = request.date
            transaction.amount = amount
            transaction.description = request.description
            transaction.type = request.type
            transaction.category_id = request.category_id
            transaction.fund_type = request.fund_type
            transaction.fund_id = request.fund_id
            if not transaction.transfer_pair_id:
                transaction.to_fund_id = None
            transaction.donor_id = request.donor_id
            transaction.grant_id = request.grant_id
            transaction.payee = request.payee
            transaction.tags = request.tags
            transaction.reference_number = request.reference_number
            transaction.po_number = request.po_number
            transaction.is_reconciled = request.is_reconciled

            # Replace the split set wholesale; delete-orphan removes the old rows
            transaction.splits = self._build_splits(amount, request.splits)

            await self.db.flush()

            await self.recalculator.recalculate(
                fund_ids=[old_fund_id, request.fund_id],
                donor_ids=[old_donor_id, request.donor_id],
                grant_ids=[old_grant_id, request.grant_id],
            )
            new_values = _snapshot(transaction)

        logger.info("Transaction %s updated", transaction_id)

        await record_audit(
            self.audit,
            AuditAction.UPDATE,
            ENTITY_TYPE,
            transaction_id,
            f"Updated transaction #{transaction_id}",
            old_values=old_values,
            new_values=new_values,
        )

        return await self.get(transaction_id)

    async def soft_delete(self, transaction_id: int, deleted_by: Optional[str] = None) -> Transaction:
        """
        Flag a transaction as deleted and drop it from every aggregate.

        The row is kept so it can be restored. Deleting one leg of a
        transfer deletes the other leg too.
        """
        async with transactional(self.db):
            transaction = await self.get(transaction_id, include_deleted=True)
            if transaction.is_deleted:
                return transaction

            legs = await self._with_partner(transaction)
            old_values = _snapshot(transaction)

            for leg in legs:
                if not leg.is_deleted:
                    leg.soft_delete(deleted_by)
            await self.db.flush()

            await self._recalculate_for(legs)
            leg_ids = [leg.id for leg in legs]

        logger.info("Transaction %s soft-deleted", transaction_id, extra={"legs": leg_ids})

        await record_audit(
            self.audit,
            AuditAction.DELETE,
            ENTITY_TYPE,
            transaction_id,
            f"Soft-deleted transaction #{transaction_id}",
            old_values=old_values,
        )

        return await self.get(transaction_id, include_deleted=True)

    async def restore(self, transaction_id: int) -> Transaction:
        """
        Clear the delete flag and count the transaction again.

        Raises:
            ResourceNotFoundError: if there is no deleted transaction with this ID
            InvariantViolationError: if restoring an expense would overspend its grant
        """
        async with transactional(self.db):
            transaction = await self.get(transaction_id, include_deleted=True)
            if not transaction.is_deleted:
                raise ResourceNotFoundError("Deleted transaction", transaction_id)

            legs = await self._with_partner(transaction)

            for leg in legs:
                if leg.is_deleted and leg.grant_id is not None and leg.type == TransactionType.EXPENSE:
                    grant = await self.db.get(Grant, leg.grant_id)
                    if grant is not None:
                        ensure_grant_capacity(grant, leg.amount)

            for leg in legs:
                leg.restore()
            await self.db.flush()

            await self._recalculate_for(legs)
            new_values = _snapshot(transaction)

        logger.info("Transaction %s restored from soft-delete", transaction_id)

        await record_audit(
            self.audit,
            AuditAction.RESTORE,
            ENTITY_TYPE,
            transaction_id,
            f"Restored transaction #{transaction_id}",
            new_values=new_values,
        )

        return await self.get(transaction_id)

    async def permanent_delete(self, transaction_id: int, recalculate: bool = False) -> None:
        """
        Remove a transaction and its splits irreversibly.

        Aggregates are not recomputed implicitly. A soft-deleted transaction
        is already excluded from them. A live transaction is only removed
        when recalculate=True, in which case its fund, donor and grant are
        recalculated in the same unit of work.

        Raises:
            InvariantViolationError: live transaction without recalculate=True
        """
        async with transactional(self.db):
            transaction = await self.get(transaction_id, include_deleted=True)
            legs = await self._with_partner(transaction)

            live_ids = [leg.id for leg in legs if not leg.is_deleted]
            if live_ids and not recalculate:
                raise InvariantViolationError(
                    f"Transaction #{transaction_id} still counts towards fund, donor and grant totals; "
                    "soft-delete it first or request recalculation",
                    details={"transaction_id": transaction_id, "live_ids": live_ids}
                )

            old_values = _snapshot(transaction)
            fund_ids = [leg.fund_id for leg in legs]
            donor_ids = [leg.donor_id for leg in legs]
            grant_ids = [leg.grant_id for leg in legs]
            leg_ids = [leg.id for leg in legs]

            for leg in legs:
                await self.db.delete(leg)
            await self.db.flush()

            if recalculate:
                await self.recalculator.recalculate(
                    fund_ids=fund_ids, donor_ids=donor_ids, grant_ids=grant_ids
                )

        logger.warning(
            "Transaction %s permanently deleted", transaction_id,
            extra={"legs": leg_ids, "recalculated": recalculate}
        )

        await record_audit(
            self.audit,
            AuditAction.PERMANENT_DELETE,
            ENTITY_TYPE,
            transaction_id,
            f"Permanently deleted transaction #{transaction_id}",
            old_values=old_values,
        )

    async def process_recurring(self, as_of: Optional[date] = None) -> list[Transaction]:
        """
        Generate the next occurrence of every due recurring template.

        Each template is handled in its own unit of work; a template whose
        occurrence is rejected (e.g. grant exhausted) is logged and left due.
        """
        as_of = as_of or date.today()
        result = await self.db.execute(
            select(Transaction.id).where(
                Transaction.is_recurring == True,  # noqa: E712
                Transaction.is_deleted == False,  # noqa: E712
                Transaction.next_recurrence_date.is_not(None),
                Transaction.next_recurrence_date <= as_of,
            ).order_by(Transaction.next_recurrence_date, Transaction.id)
        )
        template_ids = list(result.scalars().all())

        created_ids = []
        for template_id in template_ids:
            try:
                async with transactional(self.db):
                    template = await self.get(template_id)
                    occurrence_date = template.next_recurrence_date
                    occurrence = await self._insert(
                        TransactionCreate(
                            date=occurrence_date,
                            amount=template.amount,
                            description=template.description,
                            type=template.type,
                            category_id=template.category_id,
                            fund_type=template.fund_type,
                            fund_id=template.fund_id,
                            donor_id=template.donor_id,
                            grant_id=template.grant_id,
                            payee=template.payee,
                            tags=template.tags,
                            splits=[
                                SplitCreate(
                                    category_id=split.category_id,
                                    amount=split.amount,
                                    description=split.description,
                                )
                                for split in template.splits
                            ] or None,
                        )
                    )
                    template.next_recurrence_date = next_occurrence(
                        occurrence_date, template.recurrence_pattern
                    )
                    created_ids.append(occurrence.id)
                    new_values = _snapshot(occurrence)
            except AppException as exc:
                logger.warning(
                    "Recurring template %s skipped: %s", template_id, exc.message,
                    extra={"details": exc.details}
                )
                continue

            await record_audit(
                self.audit,
                AuditAction.CREATE,
                ENTITY_TYPE,
                created_ids[-1],
                f"Generated recurring occurrence from template #{template_id}",
                new_values=new_values,
            )

        logger.info("Processed recurring templates", extra={"due": len(template_ids), "created": len(created_ids)})
        return [await self.get(created_id) for created_id in created_ids]

    # Internals

    async def _insert(self, request: TransactionCreate) -> Transaction:
        """Validate, persist and recalculate; caller owns the unit of work."""
        amount = validate_amount(request.amount)
        await require_category(self.db, request.category_id)
        await self._require_split_categories(request.splits)
        grant = await require_references(
            self.db,
            fund_id=request.fund_id,
            donor_id=request.donor_id,
            grant_id=request.grant_id,
        )

        if grant is not None and request.type == TransactionType.EXPENSE:
            ensure_grant_capacity(grant, amount)

        validate_splits(amount, request.splits)

        transaction = Transaction(
            date=request.date,
            amount=amount,
            description=request.description,
            type=request.type,
            category_id=request.category_id,
            fund_type=request.fund_type,
            fund_id=request.fund_id,
            donor_id=request.donor_id,
            grant_id=request.grant_id,
            payee=request.payee,
            tags=request.tags,
            reference_number=request.reference_number,
            po_number=request.po_number,
            is_recurring=request.is_recurring,
            splits=self._build_splits(amount, request.splits),
        )

        if request.is_recurring and request.recurrence_pattern:
            transaction.recurrence_pattern = request.recurrence_pattern.value
            transaction.next_recurrence_date = next_occurrence(
                request.date, request.recurrence_pattern.value
            )

        self.db.add(transaction)
        await self.db.flush()

        await self.recalculator.recalculate(
            fund_ids=[request.fund_id],
            donor_ids=[request.donor_id],
            grant_ids=[request.grant_id],
        )
        return transaction

    @staticmethod
    def _build_splits(amount: Decimal, splits: Optional[Sequence[SplitCreate]]) -> list[TransactionSplit]:
        if not splits:
            return []
        return [
            TransactionSplit(
                category_id=split.category_id,
                amount=split.amount.quantize(CENT),
                description=split.description,
                percentage=(split.amount.quantize(CENT) / amount * 100).quantize(CENT),
            )
            for split in splits
        ]

    async def _require_split_categories(self, splits: Optional[Sequence[SplitCreate]]) -> None:
        for split in splits or []:
            await require_category(self.db, split.category_id)

    @staticmethod
    def _ensure_transfer_leg_unchanged(
        transaction: Transaction, request: TransactionUpdate, amount: Decimal
    ) -> None:
        requested = {
            "date": request.date,
            "amount": amount,
            "type": request.type,
            "fund_id": request.fund_id,
        }
        changed = [
            field for field in TRANSFER_LOCKED_FIELDS
            if getattr(transaction, field) != requested[field]
        ]
        if changed:
            raise LedgerValidationError(
                "Transfer legs cannot change date, amount, type or fund individually; "
                "delete the transfer and create a new one",
                details={
                    "transaction_id": transaction.id,
                    "transfer_pair_id": transaction.transfer_pair_id,
                    "changed_fields": changed,
                }
            )

    async def _with_partner(self, transaction: Transaction) -> list[Transaction]:
        if not transaction.transfer_pair_id:
            return [transaction]
        legs = await load_transfer_legs(self.db, transaction.transfer_pair_id)
        return legs or [transaction]

    async def _recalculate_for(self, legs: Sequence[Transaction]) -> None:
        await self.recalculator.recalculate(
            fund_ids=[leg.fund_id for leg in legs],
            donor_ids=[leg.donor_id for leg in legs],
            grant_ids=[leg.grant_id for leg in legs],
        )
