"""
backend/app/main.py

FastAPI Entrypoint.
Wires the background-removal pipeline together.

Responsibilities:
- Initialize FastAPI app
- Build the storage area, intake, processing and retrieval components
- Register routers (remove-bg, download) and the /uploads static mount
- Setup middleware (CORS) and error handlers
- Run the storage janitor for the lifetime of the app
- Health check endpoint
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.exceptions import PipelineError
from app.core.logger import logger, setup_logger
from app.core.storage import StorageArea
from app.routes import download, remove_bg
from app.services.intake import IntakeGate
from app.services.janitor import StorageJanitor
from app.services.processing import ProcessingCoordinator
from app.services.registry import DownloadRegistry
from app.services.retrieval import RetrievalGate
from app.services.removal_engine import BackgroundRemovalEngine, get_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.storage.ensure()
    app.state.janitor.start()
    logger.info(f"Storage area: {app.state.storage.root}")
    try:
        yield
    finally:
        await app.state.janitor.stop()


async def pipeline_error_handler(request: Request, exc: PipelineError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    storage: Optional[StorageArea] = None,
    engine: Optional[BackgroundRemovalEngine] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        storage: Storage area to use (default: settings.UPLOAD_DIR)
        engine: Removal engine to use (default: rembg)
    """
    setup_logger(settings.LOG_LEVEL, settings.LOG_FILE or None)

    storage = storage or StorageArea(settings.UPLOAD_DIR)
    engine = engine or get_engine(settings.REMBG_MODEL)
    registry = DownloadRegistry()

    app = FastAPI(
        title="BG Remover",
        description="Removes image backgrounds and serves each result for a single download",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.storage = storage
    app.state.registry = registry
    app.state.intake = IntakeGate(storage, settings.ALLOWED_TYPES)
    app.state.coordinator = ProcessingCoordinator(
        storage,
        engine,
        registry,
        timeout=settings.ENGINE_TIMEOUT_SECONDS or None,
        retain_failed_uploads=settings.RETAIN_FAILED_UPLOADS,
    )
    app.state.retrieval = RetrievalGate(storage, registry)
    app.state.janitor = StorageJanitor(
        storage,
        registry,
        interval=settings.JANITOR_INTERVAL_SECONDS,
        max_age=settings.MAX_FILE_AGE_SECONDS,
    )

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        expose_headers=["Content-Disposition"],
    )

    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(remove_bg.router)
    app.include_router(download.router)
    app.mount("/uploads", StaticFiles(directory=storage.root), name="uploads")

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"message": "BG Remover backend is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)
