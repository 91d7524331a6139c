"""
Dismissed duplicate pair database model.

Remembers transaction pairs a reviewer marked as "not a duplicate".
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from fundledger.app.db.session import Base


class DismissedDuplicatePair(Base):
    """
    Dismissed pair model.

    pair_key is "<smaller id>|<larger id>", so the pair is found no matter
    which transaction is passed first. The unique constraint makes repeated
    or concurrent dismissals idempotent.
    """
    __tablename__ = "dismissed_duplicate_pairs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    pair_key = Column(String(50), nullable=False, unique=True, index=True)
    transaction1_id = Column(Integer, nullable=False)
    transaction2_id = Column(Integer, nullable=False)

    dismissed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<DismissedDuplicatePair(key='{self.pair_key}')>"
