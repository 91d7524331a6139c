"""
Grant database model.

Tracks the awarded amount and the portion already spent.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Date, Numeric, Enum
from sqlalchemy.sql import func
from fundledger.app.db.session import Base
from fundledger.app.models.enums import GrantStatus


class Grant(Base):
    """
    Grant model.

    amount_used is the sum of live expense transactions attributed to the
    grant. The version column guards the overspend check against concurrent
    writers: a write based on a stale read fails instead of committing.
    """
    __tablename__ = "grants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(200), nullable=False)
    grantor_name = Column(String(200), nullable=False)
    grant_number = Column(String(100), nullable=True)

    # Financials
    amount = Column(Numeric(12, 2), nullable=False)
    amount_used = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    status = Column(Enum(GrantStatus), default=GrantStatus.ACTIVE, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining_balance(self) -> Decimal:
        return (self.amount or Decimal("0")) - (self.amount_used or Decimal("0"))

    def __repr__(self):
        return f"<Grant(id={self.id}, name='{self.name}', used={self.amount_used}/{self.amount})>"
