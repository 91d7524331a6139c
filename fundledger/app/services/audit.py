"""
Audit logging service for tracking ledger mutations.

The audit sink is fire-and-forget: a failure to record an entry is logged
and swallowed so that it never turns a committed mutation into an error.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, Protocol
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fundledger.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    RESTORE = "Restore"
    PERMANENT_DELETE = "PermanentDelete"
    TRANSFER = "Transfer"
    DUPLICATE_RESOLVED = "DuplicateResolved"


class AuditSink(Protocol):
    """Receives a notification for every ledger mutation."""

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: int,
        description: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


def _jsonable(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    result = {}
    for key, value in values.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        result[key] = value
    return result


class DatabaseAuditSink:
    """Audit sink that stores entries in the audit_logs table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: int,
        description: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record an audit entry in its own commit.

        Must be called after the mutation itself committed. Any error is
        rolled back and logged, never raised.
        """
        try:
            audit_log = AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
                old_values=_jsonable(old_values),
                new_values=_jsonable(new_values),
            )
            self.db.add(audit_log)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(
                "Failed to create audit log for %s on %s %s", action, entity_type, entity_id
            )


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_type: Filter by entity type (e.g. "Transaction")
        entity_id: Filter by entity ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def record_audit(
    sink: AuditSink,
    action: str,
    entity_type: str,
    entity_id: int,
    description: Optional[str] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Notify an audit sink without letting its failure reach the caller.

    The mutation being audited has already committed.
    """
    try:
        await sink.log(
            action,
            entity_type,
            entity_id,
            description,
            old_values=old_values,
            new_values=new_values,
        )
    except Exception:
        logger.exception("Audit sink failed for %s on %s %s", action, entity_type, entity_id)
