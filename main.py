import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from boligdeposit.config import Settings, settings as default_settings
from boligdeposit.database import AsyncSessionLocal, Base
from boligdeposit.exception_handlers import register_exception_handlers
from boligdeposit.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from boligdeposit.routes import admin, cookie_consent, privacy
from boligdeposit.scheduler import scheduler
from boligdeposit.services.api_client import ApiClient
from boligdeposit.services.gdpr_service import GDPRCompliance
from boligdeposit.utils.retention import install_maintenance_jobs

logger = logging.getLogger(__name__)


def create_app(
    session_factory: Optional[async_sessionmaker] = None,
    settings: Settings = default_settings,
    start_scheduler: Optional[bool] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Create the FastAPI application with its GDPR service wired in."""
    session_factory = session_factory or AsyncSessionLocal
    start_scheduler = settings.scheduler_enabled if start_scheduler is None else start_scheduler

    if configure_logging:
        setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)

    api_client = ApiClient(settings.api_base_url, timeout=settings.api_timeout_seconds)
    gdpr = GDPRCompliance(session_factory, settings, api_client=api_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s (%s)", settings.app_name, settings.environment)
        if settings.database_url.startswith("sqlite") or settings.debug:
            engine = session_factory.kw["bind"]
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created (if not existing).")

        if start_scheduler:
            install_maintenance_jobs(
                scheduler,
                gdpr,
                inactive_days=settings.anonymization_after_days,
                interval_hours=settings.maintenance_interval_hours,
            )
            scheduler.start()

        yield

        logger.info("Shutting down %s", settings.app_name)
        if start_scheduler and scheduler.running:
            scheduler.shutdown(wait=False)
        await api_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="GDPR consent, processing ledger, data subject requests and erasure for BoligDeposit",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.gdpr = gdpr

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(privacy.router, prefix="/api/v1")
    app.include_router(cookie_consent.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
