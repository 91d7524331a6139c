"""
Fund, Donor and Grant API Endpoints.

Read the derived aggregates and force a from-scratch recalculation.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fundledger.app.core.exceptions import ResourceNotFoundError
from fundledger.app.db.session import get_db, transactional
from fundledger.app.domain.ledger.recalculator import AggregateRecalculator
from fundledger.app.models.donor import Donor
from fundledger.app.models.fund import Fund
from fundledger.app.models.grant import Grant
from fundledger.app.schemas.aggregates import FundResponse, DonorResponse, GrantResponse

router = APIRouter(tags=["Aggregates"])


async def _get_or_404(db: AsyncSession, model, entity_id: int):
    entity = await db.get(model, entity_id, populate_existing=True)
    if entity is None:
        raise ResourceNotFoundError(model.__name__, entity_id)
    return entity


@router.get("/funds/{fund_id}", response_model=FundResponse)
async def get_fund(fund_id: int, db: AsyncSession = Depends(get_db)):
    return FundResponse.model_validate(await _get_or_404(db, Fund, fund_id))


@router.post("/funds/{fund_id}/recalculate", response_model=FundResponse)
async def recalculate_fund(fund_id: int, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, Fund, fund_id)
    async with transactional(db):
        await AggregateRecalculator(db).recalculate_fund(fund_id)
    return FundResponse.model_validate(await _get_or_404(db, Fund, fund_id))


@router.get("/donors/{donor_id}", response_model=DonorResponse)
async def get_donor(donor_id: int, db: AsyncSession = Depends(get_db)):
    return DonorResponse.model_validate(await _get_or_404(db, Donor, donor_id))


@router.post("/donors/{donor_id}/recalculate", response_model=DonorResponse)
async def recalculate_donor(donor_id: int, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, Donor, donor_id)
    async with transactional(db):
        await AggregateRecalculator(db).recalculate_donor(donor_id)
    return DonorResponse.model_validate(await _get_or_404(db, Donor, donor_id))


@router.get("/grants/{grant_id}", response_model=GrantResponse)
async def get_grant(grant_id: int, db: AsyncSession = Depends(get_db)):
    return GrantResponse.model_validate(await _get_or_404(db, Grant, grant_id))


@router.post("/grants/{grant_id}/recalculate", response_model=GrantResponse)
async def recalculate_grant(grant_id: int, db: AsyncSession = Depends(get_db)):
    await _get_or_404(db, Grant, grant_id)
    async with transactional(db):
        await AggregateRecalculator(db).recalculate_grant(grant_id)
    return GrantResponse.model_validate(await _get_or_404(db, Grant, grant_id))
