"""
Audit Log Database Model.

Records every ledger mutation for compliance review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fundledger.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking ledger mutations.

    Events logged:
    - Create / Update / Delete / Restore / PermanentDelete of transactions
    - Transfer between funds
    - DuplicateResolved
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # What action was performed
    action = Column(String(50), nullable=False, index=True)

    # Which record was affected
    entity_type = Column(String(100), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)

    description = Column(String(500), nullable=True)

    # Snapshots (JSON for flexibility)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}#{self.entity_id})>"
