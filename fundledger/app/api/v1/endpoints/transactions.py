"""
Transaction API Endpoints.

Thin HTTP layer over TransactionService; every mutation keeps fund, donor
and grant aggregates consistent before it returns.
"""

import datetime as dt
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from fundledger.app.db.session import get_db
from fundledger.app.domain.duplicates.detection_service import DuplicateDetectionService
from fundledger.app.domain.ledger.transaction_service import TransactionService
from fundledger.app.schemas.duplicate import EntryWarning
from fundledger.app.schemas.transaction import (
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    RecurringRunResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: TransactionCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Record a transaction.

    A Transfer request creates both legs and returns the expense leg.
    """
    transaction = await TransactionService(db).create(request)
    return TransactionResponse.model_validate(transaction)


@router.get("/deleted", response_model=List[TransactionResponse])
async def list_deleted_transactions(
    max_count: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Soft-deleted transactions, most recently deleted first."""
    transactions = await TransactionService(db).list_deleted(max_count)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post("/process-recurring", response_model=RecurringRunResponse)
async def process_recurring_transactions(
    as_of: Optional[dt.date] = Query(None, description="Defaults to today"),
    db: AsyncSession = Depends(get_db)
):
    """Generate the next occurrence of every due recurring template."""
    created = await TransactionService(db).process_recurring(as_of)
    return RecurringRunResponse(
        created=[TransactionResponse.model_validate(t) for t in created],
        count=len(created),
    )


@router.get("/check-duplicate", response_model=List[EntryWarning])
async def check_duplicate_entry(
    date: dt.date,
    amount: Decimal,
    payee: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """Warn about existing entries with the same date, amount and payee."""
    matches = await DuplicateDetectionService(db).check_entry(date, amount, payee)
    return [EntryWarning.model_validate(t) for t in matches]


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: int,
    include_deleted: bool = False,
    db: AsyncSession = Depends(get_db)
):
    transaction = await TransactionService(db).get(transaction_id, include_deleted=include_deleted)
    return TransactionResponse.model_validate(transaction)


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    request: TransactionUpdate,
    db: AsyncSession = Depends(get_db)
):
    transaction = await TransactionService(db).update(transaction_id, request)
    return TransactionResponse.model_validate(transaction)


@router.delete("/{transaction_id}", response_model=TransactionResponse)
async def delete_transaction(
    transaction_id: int,
    deleted_by: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """Soft-delete a transaction (and its transfer partner, if any)."""
    transaction = await TransactionService(db).soft_delete(transaction_id, deleted_by)
    return TransactionResponse.model_validate(transaction)


@router.post("/{transaction_id}/restore", response_model=TransactionResponse)
async def restore_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db)
):
    transaction = await TransactionService(db).restore(transaction_id)
    return TransactionResponse.model_validate(transaction)


@router.delete("/{transaction_id}/permanent", status_code=status.HTTP_204_NO_CONTENT)
async def permanently_delete_transaction(
    transaction_id: int,
    recalculate: bool = False,
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a transaction for good.

    A transaction that still counts towards aggregates is only removed
    with recalculate=true.
    """
    await TransactionService(db).permanent_delete(transaction_id, recalculate=recalculate)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
