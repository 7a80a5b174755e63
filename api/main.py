"""
FastAPI application initialization
"""

from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, status, data_sources, rules, jobs, alerts, quality
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.exceptions import ETLException, NotFoundError, ValidationError, ConcurrencyError
from core.logging import setup_logging
from etl.pipeline import PipelineManager, build_pipeline
from schemas.api import ErrorResponse
from schemas.catalog import Catalog
import logging

logger = logging.getLogger(__name__)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: ETLException):
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
        body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    return handler


def create_app(
    manager: Optional[PipelineManager] = None,
    catalog: Optional[Catalog] = None,
    start_scheduler: Optional[bool] = None
) -> FastAPI:
    """
    Build the API around a pipeline manager.

    Args:
        manager: Manager to expose (default: build_pipeline())
        catalog: Catalog to load at startup (default: CATALOG_PATH when set)
        start_scheduler: Start the scheduler at startup (default: SCHEDULER_ENABLED)
    """
    app = FastAPI(
        title="Geoanalyzer ETL API",
        description="Catalog management, job execution and alerts for the ETL orchestration core",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.manager = manager or build_pipeline()

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(NotFoundError, _error_handler(404))
    app.add_exception_handler(ValidationError, _error_handler(422))
    app.add_exception_handler(ConcurrencyError, _error_handler(409))

    app.include_router(health.router)
    app.include_router(status.router)
    app.include_router(data_sources.router)
    app.include_router(rules.router)
    app.include_router(jobs.router)
    app.include_router(alerts.router)
    app.include_router(quality.router)

    @app.on_event("startup")
    async def startup_event():
        """Application startup event"""
        logger.info("Starting Geoanalyzer ETL API")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        pipeline: PipelineManager = app.state.manager
        startup_catalog = catalog
        if startup_catalog is None and settings.CATALOG_PATH:
            logger.info(f"Loading catalog from {settings.CATALOG_PATH}")
            startup_catalog = Catalog.from_file(settings.CATALOG_PATH)

        if startup_catalog is not None:
            await pipeline.initialize(
                startup_catalog.jobs,
                startup_catalog.data_sources,
                startup_catalog.transformation_rules
            )

        run_scheduler = settings.SCHEDULER_ENABLED if start_scheduler is None else start_scheduler
        if run_scheduler:
            pipeline.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Application shutdown event"""
        logger.info("Shutting down Geoanalyzer ETL API")
        await app.state.manager.shutdown()

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Geoanalyzer ETL API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "status": "/status",
                "data_sources": "/data-sources",
                "rules": "/rules",
                "jobs": "/jobs",
                "alerts": "/alerts",
                "quality": "/quality/analyze"
            }
        }

    return app


def get_application() -> FastAPI:
    """Factory for `uvicorn --factory api.main:get_application`"""
    setup_logging()
    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:get_application",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_config=None
    )
