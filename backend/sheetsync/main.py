"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sheetsync import __version__
from sheetsync.api.v1.api import api_router
from sheetsync.config import settings
from sheetsync.connectors.registry import build_source_reader, build_target_writer
from sheetsync.logging_config import configure_logging
from sheetsync.scheduler import SyncScheduler

configure_logging(settings.log_level)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One reader and one writer per process, shared by manual triggers and the scheduler
    app.state.source_reader = build_source_reader()
    app.state.target_writer = build_target_writer()
    app.state.scheduler = SyncScheduler(
        source_reader=app.state.source_reader,
        target_writer=app.state.target_writer
    )
    if settings.scheduler_enabled:
        app.state.scheduler.start()
    else:
        log.info("Sync scheduler disabled by configuration")

    yield

    app.state.scheduler.stop()
    for client in (app.state.source_reader, app.state.target_writer):
        close = getattr(client, "close", None)
        if close is not None:
            await close()
    log.info("Shutdown complete")


app = FastAPI(
    title="Sheets Sync",
    description="Synchronizes Google Sheets ranges into business systems",
    version=__version__,
    docs_url="/api/docs",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint - points at the docs."""
    return {
        "message": "Sheets Sync API",
        "version": __version__,
        "docs": "/api/docs"
    }


app.include_router(api_router, prefix=settings.api_v1_str)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=settings.log_level.lower() if settings.log_level.upper() in ("DEBUG", "INFO", "WARNING", "ERROR") else "info")
