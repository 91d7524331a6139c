"""
Fund, donor and grant Pydantic schemas.

Read models for the derived aggregates kept in sync by the ledger.
"""

from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from fundledger.app.models.enums import FundType, DonorType, GrantStatus


class FundResponse(BaseModel):
    """Schema for fund response."""
    id: int
    name: str
    type: FundType
    starting_balance: Decimal
    balance: Decimal
    target_balance: Optional[Decimal]
    is_active: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class DonorResponse(BaseModel):
    """Schema for donor response."""
    id: int
    name: str
    type: DonorType
    total_contributions: Decimal
    first_contribution_date: Optional[date]
    last_contribution_date: Optional[date]
    is_active: bool

    class Config:
        from_attributes = True


class GrantResponse(BaseModel):
    """Schema for grant response."""
    id: int
    name: str
    grantor_name: str
    amount: Decimal
    amount_used: Decimal
    remaining_balance: Decimal
    status: GrantStatus

    class Config:
        from_attributes = True
