"""
Duplicate detection Pydantic schemas.

Defines search criteria, ranked matches and resolution requests.
"""

import datetime as dt
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List

from fundledger.app.models.enums import DuplicateMatchType, DuplicateResolution
from fundledger.app.schemas.transaction import TransactionResponse


class DuplicateSearchCriteria(BaseModel):
    """Schema for duplicate search configuration."""
    date_range_days: int = Field(3, ge=0, description="Max days between two entries of a pair")
    amount_tolerance_percent: Decimal = Field(Decimal("0"), ge=0)
    match_payee: bool = True
    match_description: bool = True
    match_category: bool = False
    match_fund: bool = True
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    minimum_match_type: DuplicateMatchType = DuplicateMatchType.POSSIBLE


class DuplicateMatch(BaseModel):
    """Schema for a scored candidate duplicate pair."""
    transaction1_id: int
    transaction2_id: int
    transaction1: TransactionResponse
    transaction2: TransactionResponse
    similarity_score: Decimal
    matching_criteria: List[str]
    match_type: DuplicateMatchType


class DuplicateResolveRequest(BaseModel):
    """Schema for resolving a duplicate pair."""
    transaction1_id: int
    transaction2_id: int
    resolution: DuplicateResolution


class DuplicateCountResponse(BaseModel):
    """Schema for dashboard duplicate count."""
    count: int


class DismissedPairResponse(BaseModel):
    """Schema for dismissed-pair lookup."""
    transaction1_id: int
    transaction2_id: int
    dismissed: bool


class EntryWarning(BaseModel):
    """Schema for a pre-entry duplicate warning."""
    id: int
    date: dt.date
    amount: Decimal
    payee: Optional[str]
    description: Optional[str]

    class Config:
        from_attributes = True
