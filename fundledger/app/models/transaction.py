"""
Transaction database model.

Income, expense and transfer-leg records. Rows are soft-deleted so that
aggregates can be recomputed and deletions restored.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Numeric, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fundledger.app.db.session import Base
from fundledger.app.models.enums import TransactionType, FundType


class Transaction(Base):
    """
    Transaction model.

    A transfer between funds is stored as two rows (an Expense leg on the
    source fund and an Income leg on the destination fund) sharing one
    transfer_pair_id.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Core fields
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(500), nullable=True)
    type = Column(Enum(TransactionType), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False, index=True)
    fund_type = Column(Enum(FundType), default=FundType.UNRESTRICTED, nullable=False)

    # Linkage
    fund_id = Column(Integer, ForeignKey('funds.id'), nullable=True, index=True)
    to_fund_id = Column(Integer, ForeignKey('funds.id'), nullable=True)
    transfer_pair_id = Column(String(36), nullable=True, index=True)
    donor_id = Column(Integer, ForeignKey('donors.id'), nullable=True, index=True)
    grant_id = Column(Integer, ForeignKey('grants.id'), nullable=True, index=True)

    # Reference details
    payee = Column(String(200), nullable=True)
    tags = Column(String(500), nullable=True)
    reference_number = Column(String(50), nullable=True)
    po_number = Column(String(50), nullable=True)
    is_reconciled = Column(Boolean, default=False, nullable=False)

    # Recurring templates
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(String(20), nullable=True)
    next_recurrence_date = Column(Date, nullable=True)

    # Soft delete
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    splits = relationship(
        "TransactionSplit",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionSplit.id",
    )

    __table_args__ = (
        Index('ix_transactions_dup_scan', 'is_deleted', 'date', 'amount'),
    )

    def soft_delete(self, deleted_by: str = None):
        self.is_deleted = True
        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by = deleted_by

    def restore(self):
        self.is_deleted = False
        self.deleted_at = None
        self.deleted_by = None

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, type='{self.type.value}', amount={self.amount}, "
            f"deleted={self.is_deleted})>"
        )


class TransactionSplit(Base):
    """
    Transaction split model.

    Allocates part of a transaction to another category. The splits of a
    transaction always add up to its amount.
    """
    __tablename__ = "transaction_splits"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    transaction_id = Column(Integer, ForeignKey('transactions.id', ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(500), nullable=True)
    percentage = Column(Numeric(5, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    transaction = relationship("Transaction", back_populates="splits")

    def __repr__(self):
        return f"<TransactionSplit(id={self.id}, transaction_id={self.transaction_id}, amount={self.amount})>"
