"""
Fund transfer tests.

A transfer is two linked transactions plus two balance updates that must
land together or not at all.
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import select, func

from fundledger.app.core.exceptions import LedgerValidationError
from fundledger.app.domain.ledger.recalculator import AggregateRecalculator
from fundledger.app.domain.ledger.transaction_service import TransactionService
from fundledger.app.domain.ledger.transfer_service import TransferService
from fundledger.app.models.category import Category
from fundledger.app.models.enums import TransactionType
from fundledger.app.models.fund import Fund
from fundledger.app.models.transaction import Transaction
from fundledger.app.schemas.transaction import TransactionCreate, TransactionUpdate, TransferCreate


class FailingSecondBalanceRecalculator(AggregateRecalculator):
    """Lets the source balance update through, then fails."""

    def __init__(self, db):
        super().__init__(db)
        self.fund_calls = 0

    async def recalculate_fund(self, fund_id):
        self.fund_calls += 1
        if self.fund_calls == 2:
            raise RuntimeError("connection lost")
        return await super().recalculate_fund(fund_id)


async def fund_balance(db, fund_id):
    return (await db.get(Fund, fund_id, populate_existing=True)).balance


async def transaction_count(db):
    return (await db.execute(select(func.count(Transaction.id)))).scalar()


@pytest.mark.asyncio
async def test_transfer_creates_linked_legs_and_moves_balance(db_session, general_fund, building_fund):
    service = TransferService(db_session)

    result = await service.create_transfer(TransferCreate(
        from_fund_id=general_fund.id,
        to_fund_id=building_fund.id,
        amount=Decimal("250.00"),
        date=date(2024, 4, 1),
        reference_number="TR-1001",
    ))

    expense_leg, income_leg = result.expense_leg, result.income_leg
    assert expense_leg.transfer_pair_id == income_leg.transfer_pair_id == result.transfer_pair_id
    assert expense_leg.type == TransactionType.EXPENSE
    assert income_leg.type == TransactionType.INCOME
    assert expense_leg.amount == income_leg.amount == Decimal("250.00")
    assert expense_leg.fund_id == general_fund.id
    assert expense_leg.to_fund_id == building_fund.id
    assert income_leg.fund_id == building_fund.id
    assert income_leg.to_fund_id == general_fund.id
    assert expense_leg.description == "Transfer to Building Fund"
    assert income_leg.description == "Transfer from General Fund"
    assert expense_leg.reference_number == income_leg.reference_number == "TR-1001"
    assert expense_leg.tags == "Transfer"

    assert await fund_balance(db_session, general_fund.id) == Decimal("750.00")
    assert await fund_balance(db_session, building_fund.id) == Decimal("750.00")
    assert await transaction_count(db_session) == 2


@pytest.mark.asyncio
async def test_transfer_reuses_transfer_category(db_session, general_fund, building_fund):
    service = TransferService(db_session)
    request = TransferCreate(
        from_fund_id=general_fund.id,
        to_fund_id=building_fund.id,
        amount=Decimal("10.00"),
    )

    first = await service.create_transfer(request)
    second = await service.create_transfer(request)

    assert first.expense_leg.category_id == second.income_leg.category_id
    count = (await db_session.execute(
        select(func.count(Category.id)).where(Category.name == "Transfer")
    )).scalar()
    assert count == 1
    assert first.expense_leg.date == date.today()


@pytest.mark.asyncio
async def test_transfer_to_same_fund_is_rejected(db_session, general_fund):
    service = TransferService(db_session)

    with pytest.raises(LedgerValidationError):
        await service.create_transfer(TransferCreate(
            from_fund_id=general_fund.id,
            to_fund_id=general_fund.id,
            amount=Decimal("10.00"),
        ))


@pytest.mark.asyncio
async def test_transfer_requires_existing_funds(db_session, general_fund):
    service = TransferService(db_session)
    fund_id = general_fund.id

    with pytest.raises(LedgerValidationError) as exc_info:
        await service.create_transfer(TransferCreate(
            from_fund_id=fund_id,
            to_fund_id=4242,
            amount=Decimal("10.00"),
        ))

    assert exc_info.value.details["to_fund_exists"] is False
    assert await transaction_count(db_session) == 0
    assert await fund_balance(db_session, fund_id) == Decimal("1000.00")


@pytest.mark.asyncio
async def test_transfer_requires_positive_amount(db_session, general_fund, building_fund):
    service = TransferService(db_session)

    with pytest.raises(LedgerValidationError):
        await service.create_transfer(TransferCreate(
            from_fund_id=general_fund.id,
            to_fund_id=building_fund.id,
            amount=Decimal("0.00"),
        ))


@pytest.mark.asyncio
async def test_failed_transfer_leaves_no_trace(db_session, general_fund, building_fund):
    """Failure after the source balance moved rolls back both legs and both balances."""
    from_id, to_id = general_fund.id, building_fund.id
    recalculator = FailingSecondBalanceRecalculator(db_session)
    service = TransferService(db_session, recalculator=recalculator)

    with pytest.raises(RuntimeError):
        await service.create_transfer(TransferCreate(
            from_fund_id=from_id,
            to_fund_id=to_id,
            amount=Decimal("300.00"),
        ))

    assert recalculator.fund_calls == 2
    assert await transaction_count(db_session) == 0
    assert await fund_balance(db_session, from_id) == Decimal("1000.00")
    assert await fund_balance(db_session, to_id) == Decimal("500.00")


@pytest.mark.asyncio
async def test_failed_category_lookup_rolls_back(db_session, mocker, general_fund, building_fund):
    from_id, to_id = general_fund.id, building_fund.id
    mocker.patch.object(
        TransferService, "_resolve_transfer_category", side_effect=RuntimeError("boom")
    )

    with pytest.raises(RuntimeError):
        await TransferService(db_session).create_transfer(TransferCreate(
            from_fund_id=from_id,
            to_fund_id=to_id,
            amount=Decimal("5.00"),
        ))

    assert await transaction_count(db_session) == 0


@pytest.mark.asyncio
async def test_create_with_transfer_type_delegates(db_session, general_fund, building_fund):
    service = TransactionService(db_session)

    leg = await service.create(TransactionCreate(
        date=date(2024, 4, 2),
        amount=Decimal("100.00"),
        type=TransactionType.TRANSFER,
        fund_id=general_fund.id,
        to_fund_id=building_fund.id,
    ))

    assert leg.type == TransactionType.EXPENSE
    assert leg.transfer_pair_id is not None
    assert await transaction_count(db_session) == 2
    assert await fund_balance(db_session, general_fund.id) == Decimal("900.00")
    assert await fund_balance(db_session, building_fund.id) == Decimal("600.00")


@pytest.mark.asyncio
async def test_deleting_one_leg_deletes_the_transfer(db_session, general_fund, building_fund):
    transfer = await TransferService(db_session).create_transfer(TransferCreate(
        from_fund_id=general_fund.id,
        to_fund_id=building_fund.id,
        amount=Decimal("200.00"),
    ))
    service = TransactionService(db_session)

    await service.soft_delete(transfer.income_leg.id)

    expense_leg = await service.get(transfer.expense_leg.id, include_deleted=True)
    assert expense_leg.is_deleted is True
    assert await fund_balance(db_session, general_fund.id) == Decimal("1000.00")
    assert await fund_balance(db_session, building_fund.id) == Decimal("500.00")

    await service.restore(transfer.expense_leg.id)

    income_leg = await service.get(transfer.income_leg.id)
    assert income_leg.is_deleted is False
    assert await fund_balance(db_session, general_fund.id) == Decimal("800.00")
    assert await fund_balance(db_session, building_fund.id) == Decimal("700.00")


@pytest.mark.asyncio
async def test_transfer_leg_amount_cannot_be_edited(db_session, general_fund, building_fund):
    transfer = await TransferService(db_session).create_transfer(TransferCreate(
        from_fund_id=general_fund.id,
        to_fund_id=building_fund.id,
        amount=Decimal("200.00"),
        date=date(2024, 4, 3),
    ))
    leg = transfer.expense_leg
    service = TransactionService(db_session)
    from_id, leg_id, category_id = general_fund.id, leg.id, leg.category_id

    with pytest.raises(LedgerValidationError) as exc_info:
        await service.update(leg_id, TransactionUpdate(
            date=date(2024, 4, 3),
            amount=Decimal("250.00"),
            type=TransactionType.EXPENSE,
            category_id=category_id,
            fund_id=from_id,
        ))
    assert exc_info.value.details["changed_fields"] == ["amount"]

    updated = await service.update(leg_id, TransactionUpdate(
        date=date(2024, 4, 3),
        amount=Decimal("200.00"),
        type=TransactionType.EXPENSE,
        category_id=category_id,
        fund_id=from_id,
        description="Roof repair reserve",
    ))
    assert updated.description == "Roof repair reserve"
    assert updated.to_fund_id is not None
    assert await fund_balance(db_session, from_id) == Decimal("800.00")
