"""
Transaction Pydantic schemas.

Defines request and response models for ledger mutations and transfers.
"""

import datetime as dt
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List

from fundledger.app.models.enums import TransactionType, FundType, RecurrencePattern


class SplitCreate(BaseModel):
    """Schema for one split line of a transaction."""
    category_id: int
    amount: Decimal
    description: Optional[str] = Field(None, max_length=500)


class TransactionCreate(BaseModel):
    """Schema for creating a transaction."""
    date: dt.date
    amount: Decimal = Field(..., description="Positive amount; direction comes from type")
    description: Optional[str] = Field(None, max_length=500)
    type: TransactionType
    category_id: Optional[int] = None
    fund_type: FundType = FundType.UNRESTRICTED
    fund_id: Optional[int] = None
    to_fund_id: Optional[int] = Field(None, description="Destination fund, transfers only")
    donor_id: Optional[int] = None
    grant_id: Optional[int] = None
    payee: Optional[str] = Field(None, max_length=200)
    tags: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=50)
    po_number: Optional[str] = Field(None, max_length=50)
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    splits: Optional[List[SplitCreate]] = None


class TransactionUpdate(BaseModel):
    """Schema for replacing the mutable fields of a transaction."""
    date: dt.date
    amount: Decimal
    description: Optional[str] = Field(None, max_length=500)
    type: TransactionType
    category_id: Optional[int] = None
    fund_type: FundType = FundType.UNRESTRICTED
    fund_id: Optional[int] = None
    to_fund_id: Optional[int] = None
    donor_id: Optional[int] = None
    grant_id: Optional[int] = None
    payee: Optional[str] = Field(None, max_length=200)
    tags: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=50)
    po_number: Optional[str] = Field(None, max_length=50)
    is_reconciled: bool = False
    splits: Optional[List[SplitCreate]] = None


class SplitResponse(BaseModel):
    """Schema for split response."""
    id: int
    category_id: int
    amount: Decimal
    description: Optional[str]
    percentage: Optional[Decimal]

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    """Schema for transaction response."""
    id: int
    date: dt.date
    amount: Decimal
    description: Optional[str]
    type: TransactionType
    category_id: int
    fund_type: FundType
    fund_id: Optional[int]
    to_fund_id: Optional[int]
    transfer_pair_id: Optional[str]
    donor_id: Optional[int]
    grant_id: Optional[int]
    payee: Optional[str]
    tags: Optional[str]
    reference_number: Optional[str]
    po_number: Optional[str]
    is_reconciled: bool
    is_recurring: bool
    recurrence_pattern: Optional[str]
    next_recurrence_date: Optional[dt.date]
    is_deleted: bool
    deleted_at: Optional[dt.datetime]
    splits: List[SplitResponse] = []

    class Config:
        from_attributes = True


class TransferCreate(BaseModel):
    """Schema for moving money between two funds."""
    from_fund_id: Optional[int] = None
    to_fund_id: Optional[int] = None
    amount: Decimal
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, max_length=500)
    reference_number: Optional[str] = Field(None, max_length=50)


class TransferResponse(BaseModel):
    """Schema for the two legs of a transfer."""
    transfer_pair_id: str
    expense_leg: TransactionResponse
    income_leg: TransactionResponse


class RecurringRunResponse(BaseModel):
    """Schema for a recurring-template processing run."""
    created: List[TransactionResponse]
    count: int
