"""
FastAPI Application Entry Point.

This is the main application file for the FundLedger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fundledger.app.core.config import settings
from fundledger.app.core.observability import ObservabilityMiddleware, configure_logging
from fundledger.app.api.v1.router import router as api_v1_router
from fundledger.app.db.session import engine, Base
from fundledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fundledger.app.models.category import Category  # noqa: F401
from fundledger.app.models.fund import Fund  # noqa: F401
from fundledger.app.models.donor import Donor  # noqa: F401
from fundledger.app.models.grant import Grant  # noqa: F401
from fundledger.app.models.transaction import Transaction, TransactionSplit  # noqa: F401
from fundledger.app.models.dismissed_duplicate import DismissedDuplicatePair  # noqa: F401
from fundledger.app.models.audit_log import AuditLog  # noqa: F401

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Fund ledger with atomic transfers, derived balances and duplicate detection",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to FundLedger Backend API",
        "docs": "/docs",
        "health": "/health",
    }
