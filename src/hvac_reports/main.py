"""
HVAC Qualification Reports Backend
Main FastAPI application: report drafting, criteria evaluation and PDF/Excel export
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .database.core import create_engine, create_session_factory, init_models
from .routers import hvac_reports
from .schemas.enums import StorageBackend
from .services.compliance_summary import ComplianceSummaryService
from .services.report_builder import ReportBuilder
from .services.report_exporter import ReportExporter
from .services.report_validator import ReportValidator
from .services.storage.blob_store import MemoryBlobStore, SqlBlobStore
from .services.storage.repositories import ReportFileRepository, ReportRepository
from .utils.errors import HvacReportError, http_error_handler, hvac_error_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create storage and report services; dispose the engine on shutdown"""
    settings: Settings = app.state.settings
    engine = None

    if settings.storage_backend == StorageBackend.SQL:
        engine = create_engine(settings.database_url)
        try:
            await init_models(engine)
        except (SQLAlchemyError, OSError) as e:
            # Requests touching storage will answer 503 until the database is reachable
            logger.error(f"Failed to initialise blob store tables: {e}")
        store = SqlBlobStore(create_session_factory(engine))
    else:
        logger.warning("Using in-memory storage; reports are lost on restart")
        store = MemoryBlobStore()

    thresholds = settings.load_criteria()
    builder = ReportBuilder(thresholds)
    validator = ReportValidator()
    file_repository = ReportFileRepository(store)
    report_repository = ReportRepository(store, file_repository)

    app.state.blob_store = store
    app.state.report_repository = report_repository
    app.state.file_repository = file_repository
    app.state.report_builder = builder
    app.state.report_validator = validator
    app.state.summary_service = ComplianceSummaryService(settings.instance_aggregation_policy)
    app.state.report_exporter = ReportExporter(
        report_repository,
        builder=builder,
        validator=validator,
        policy=settings.instance_aggregation_policy,
        include_charts=settings.include_charts,
    )
    logger.info(f"HVAC report service started with {settings.storage_backend.value} storage")

    try:
        yield
    finally:
        if engine is not None:
            await engine.dispose()
        logger.info("HVAC report service stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    # Configure logging
    logging.basicConfig(level=getattr(logging, settings.log_level))

    app = FastAPI(
        title="HVAC Qualification Reports",
        description="""
        ## HVAC Qualification Reports API

        Drafting, evaluation and export of hospital cleanroom (HVAC) qualification test reports.

        ### Key Features:
        - **Report drafting**: report info, rooms and typed test instances
        - **Derived values**: room volume, flow rates, air change rate, ISO class
        - **Criteria evaluation**: every test is evaluated against configurable thresholds
        - **Validation gate**: all missing information is reported before export
        - **Export**: PDF and Excel documents with per-room sections and a compliance summary
        """,
        version=__version__,
        lifespan=lifespan,
        tags_metadata=[
            {
                "name": "hvac-reports",
                "description": "HVAC qualification reports, rooms, tests and exports",
            },
            {
                "name": "Health",
                "description": "System health checks",
            }
        ]
    )
    app.state.settings = settings

    # Add exception handlers
    app.add_exception_handler(HvacReportError, hvac_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(hvac_reports.router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for the main application"""
        return {
            "status": "ok",
            "service": "hvac-reports",
            "version": __version__,
            "storage_backend": settings.storage_backend.value,
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
