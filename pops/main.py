"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from pops.api.envs import router as envs_router
from pops.api.health import router as health_router
from pops.api.mirror import router as mirror_router
from pops.api.sync import router as sync_router
from pops.config import Settings
from pops.database import init_schema, open_store
from pops.exceptions import EnvironmentLifecycleError, InternalServerError
from pops.notion.client import NotionClient
from pops.services.env_registry import EnvironmentRegistry
from pops.services.env_watcher import EnvironmentWatcher
from pops.services.run_tracker import SyncRunTracker
from pops.services.sync_service import SyncOrchestrator, SyncScheduler, default_sources

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings.debug)
    logger.info("Starting POPS (debug=%s)", settings.debug)

    if settings.sync_enabled:
        settings.validate_sync_credentials()

    try:
        prod_store = open_store(
            settings.database_path,
            busy_timeout_ms=settings.sqlite_busy_timeout_ms,
        )
        await init_schema(prod_store)
    except Exception as exc:
        logger.critical(
            "Failed to initialize database at %s: %s. Check database path and permissions.",
            settings.database_path,
            exc,
        )
        raise
    app.state.prod_store = prod_store

    registry = EnvironmentRegistry(
        prod_store,
        settings.resolved_envs_dir,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
        max_ttl_seconds=settings.env_max_ttl_seconds,
    )
    app.state.registry = registry
    try:
        cleanup = await registry.startup_cleanup()
    except Exception as exc:
        logger.critical("Failed to reconcile named environments: %s", exc)
        raise
    if cleanup.expired or cleanup.orphaned:
        logger.info(
            "Startup cleanup removed %d expired and %d orphaned environment(s)",
            len(cleanup.expired),
            len(cleanup.orphaned),
        )

    run_tracker = SyncRunTracker(ttl_seconds=settings.sync_run_ttl_seconds)
    app.state.run_tracker = run_tracker

    watcher = EnvironmentWatcher(registry, settings.env_sweep_interval_seconds, run_tracker)
    watcher.start()
    app.state.env_watcher = watcher

    notion_client: NotionClient | None = None
    scheduler: SyncScheduler | None = None
    app.state.orchestrator = None
    if settings.sync_enabled:
        notion_client = NotionClient.from_settings(settings)
        orchestrator = SyncOrchestrator(prod_store, notion_client, default_sources(settings))
        app.state.orchestrator = orchestrator
        if settings.sync_interval_seconds > 0:
            scheduler = SyncScheduler(orchestrator, settings.sync_interval_seconds)
            scheduler.start()
    else:
        logger.info("Notion sync disabled")

    yield

    if scheduler is not None:
        try:
            await scheduler.stop()
        except Exception as exc:
            logger.error("Error during sync scheduler shutdown: %s", exc, exc_info=True)

    try:
        await watcher.stop()
    except Exception as exc:
        logger.error("Error during environment watcher shutdown: %s", exc, exc_info=True)

    if notion_client is not None:
        try:
            await notion_client.aclose()
        except Exception as exc:
            logger.error("Error closing Notion client: %s", exc, exc_info=True)

    try:
        await registry.close()
        await prod_store.dispose()
    except Exception as exc:
        logger.error("Error during engine disposal: %s", exc, exc_info=True)

    logger.info("POPS stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="POPS",
        description="Notion finance mirror with disposable named environments",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings

    app.include_router(health_router)
    app.include_router(envs_router)
    app.include_router(sync_router)
    app.include_router(mirror_router)

    # Global exception handlers

    @app.exception_handler(EnvironmentLifecycleError)
    async def environment_error_handler(
        request: Request, exc: EnvironmentLifecycleError
    ) -> JSONResponse:
        logger.info(
            "%s in %s %s: %s", type(exc).__name__, request.method, request.url.path, exc
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": str(exc), "error": exc.kind},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        logger.error(
            "InternalServerError in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "OperationalError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Database temporarily unavailable"},
        )

    return app


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "pops.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
