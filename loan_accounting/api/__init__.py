"""
Loan Accounting API Application Factory
"""

from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import LoanAccountingSystem, get_system
from .cron import router as cron_router
from .customers import router as customers_router
from .loans import router as loans_router
from .notifications import router as notifications_router
from .. import __version__


def create_app(system: Optional[LoanAccountingSystem] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        system: Pre-built system to serve; when omitted one is created from
            configuration on first request
    """
    app = FastAPI(
        title="Loan Accounting API",
        description="Loan status and quarterly subscription interest",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if system is not None:
        app.dependency_overrides[get_system] = lambda: system

    app.include_router(cron_router, prefix="/cron", tags=["Cron"])
    app.include_router(customers_router, prefix="/customers", tags=["Customers"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_accounting_api",
            "version": __version__
        }

    return app


__all__ = ["create_app", "LoanAccountingSystem", "get_system"]
