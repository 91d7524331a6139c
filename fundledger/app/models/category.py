"""
Category database model.

Income and expense classification for transactions and splits.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from fundledger.app.db.session import Base
from fundledger.app.models.enums import CategoryType


class Category(Base):
    """Category model."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False, index=True)
    type = Column(Enum(CategoryType), nullable=False)
    description = Column(String(500), nullable=True)
    color = Column(String(20), nullable=True)

    # Archived categories stay attached to historical transactions
    is_archived = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}', type='{self.type.value}')>"
