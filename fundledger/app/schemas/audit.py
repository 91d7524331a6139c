"""
Audit log Pydantic schemas.
"""

from datetime import datetime
from pydantic import BaseModel
from typing import Optional, Dict, Any


class AuditLogResponse(BaseModel):
    """Schema for one audit trail entry."""
    id: int
    action: str
    entity_type: str
    entity_id: int
    description: Optional[str]
    old_values: Optional[Dict[str, Any]]
    new_values: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
