"""
Transfer API Endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fundledger.app.db.session import get_db
from fundledger.app.domain.ledger.transfer_service import TransferService
from fundledger.app.schemas.transaction import TransferCreate, TransferResponse, TransactionResponse

router = APIRouter(prefix="/transfers", tags=["Transfers"])


@router.post("", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    request: TransferCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Move money from one fund to another.

    Both legs and both fund balances are committed together or not at all.
    """
    result = await TransferService(db).create_transfer(request)
    return TransferResponse(
        transfer_pair_id=result.transfer_pair_id,
        expense_leg=TransactionResponse.model_validate(result.expense_leg),
        income_leg=TransactionResponse.model_validate(result.income_leg),
    )
