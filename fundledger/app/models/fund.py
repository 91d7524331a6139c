"""
Fund database model.

Restricted and unrestricted funds whose balance is derived from the ledger.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Enum
from sqlalchemy.sql import func
from fundledger.app.db.session import Base
from fundledger.app.models.enums import FundType


class Fund(Base):
    """
    Fund model.

    balance is never written directly by callers; the aggregate recalculator
    sets it to starting_balance + income - expenses over live transactions.
    The version column is an optimistic concurrency token checked on every
    update.
    """
    __tablename__ = "funds"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(200), nullable=False)
    type = Column(Enum(FundType), default=FundType.UNRESTRICTED, nullable=False)
    description = Column(String(500), nullable=True)

    # Financials
    starting_balance = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    balance = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    target_balance = Column(Numeric(12, 2), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Fund(id={self.id}, name='{self.name}', balance={self.balance})>"
