"""
Duplicate Detection API Endpoints.
"""

from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fundledger.app.db.session import get_db
from fundledger.app.domain.duplicates.detection_service import DuplicateDetectionService
from fundledger.app.schemas.duplicate import (
    DuplicateSearchCriteria,
    DuplicateMatch,
    DuplicateResolveRequest,
    DuplicateCountResponse,
    DismissedPairResponse,
)

router = APIRouter(prefix="/duplicates", tags=["Duplicates"])


@router.post("/search", response_model=List[DuplicateMatch])
async def search_duplicates(
    criteria: DuplicateSearchCriteria,
    db: AsyncSession = Depends(get_db)
):
    """Ranked candidate duplicate pairs, strongest first."""
    return await DuplicateDetectionService(db).find_duplicates(criteria)


@router.get("/count", response_model=DuplicateCountResponse)
async def count_duplicates(db: AsyncSession = Depends(get_db)):
    """Likely-or-better duplicates within the default window."""
    count = await DuplicateDetectionService(db).get_duplicate_count()
    return DuplicateCountResponse(count=count)


@router.post("/resolve", status_code=status.HTTP_204_NO_CONTENT)
async def resolve_duplicate(
    request: DuplicateResolveRequest,
    db: AsyncSession = Depends(get_db)
):
    await DuplicateDetectionService(db).resolve_duplicate(
        request.transaction1_id,
        request.transaction2_id,
        request.resolution,
    )


@router.get("/dismissed", response_model=DismissedPairResponse)
async def is_dismissed(
    transaction1_id: int,
    transaction2_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Whether a pair was reviewed as not-a-duplicate, in either order."""
    dismissed = await DuplicateDetectionService(db).is_dismissed_pair(transaction1_id, transaction2_id)
    return DismissedPairResponse(
        transaction1_id=transaction1_id,
        transaction2_id=transaction2_id,
        dismissed=dismissed,
    )
