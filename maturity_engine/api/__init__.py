"""
FastAPI application factory and API package.

Run with:
    uvicorn maturity_engine.api:app --reload --port 8000

Or via main.py:
    python -m maturity_engine.main --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from maturity_engine.config import get_settings
from maturity_engine.api.routes import (
    catalogue_router,
    get_service,
    health_router,
    program_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Maturity Engine API",
        description="Maturity scores, navigation tree and response editing for security programs",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS — allow the frontend (adjust origins in production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health_router, tags=["Health"])
    application.include_router(catalogue_router, prefix="/api", tags=["Catalogues"])
    application.include_router(program_router, prefix="/api/programs", tags=["Programs"])

    def current_service():
        # Honour test overrides of the service dependency
        return application.dependency_overrides.get(get_service, get_service)()

    @application.on_event("startup")
    async def startup():
        # Starts the periodic cache sweep on the server's event loop
        await current_service().start()
        logger.info(f"Starting {settings.app_name} API")
        logger.info(f"Mode: {'MOCK' if settings.mock_mode else 'MongoDB'}")

    @application.on_event("shutdown")
    async def shutdown():
        await current_service().close()
        logger.info(f"{settings.app_name} API stopped")

    return application


# Module-level instance for `uvicorn maturity_engine.api:app`
app = create_app()
