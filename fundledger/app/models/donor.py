"""
Donor database model.

Contribution totals are derived from income transactions.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Numeric, Enum
from sqlalchemy.sql import func
from fundledger.app.db.session import Base
from fundledger.app.models.enums import DonorType


class Donor(Base):
    """Donor model."""
    __tablename__ = "donors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(200), nullable=False)
    type = Column(Enum(DonorType), default=DonorType.INDIVIDUAL, nullable=False)
    email = Column(String(255), nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Derived from live income transactions
    total_contributions = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    first_contribution_date = Column(Date, nullable=True)
    last_contribution_date = Column(Date, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Donor(id={self.id}, name='{self.name}', total={self.total_contributions})>"
