"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fundledger.app.api.v1.endpoints import (
    transactions, transfers, duplicates, aggregates, audit
)

router = APIRouter()

# Ledger mutations
router.include_router(transactions.router)
router.include_router(transfers.router)

# Duplicate review
router.include_router(duplicates.router)

# Derived aggregates (funds, donors, grants)
router.include_router(aggregates.router)

# Audit trail
router.include_router(audit.router)
