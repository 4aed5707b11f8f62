"""
FastAPI Main Application for Plant Doctor.

This module initializes the FastAPI application with all routes and middleware.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plantdoc import __version__
from plantdoc.api.endpoints.diagnose import router as diagnose_router
from plantdoc.api.endpoints.history import router as history_router
from plantdoc.api.endpoints.live import router as live_router
from plantdoc.api.endpoints.model import router as model_router
from plantdoc.api.endpoints.taxonomy import router as taxonomy_router
from plantdoc.core.config import get_settings
from plantdoc.core.errors import LoadError
from plantdoc.core.logging import configure_logging
from plantdoc.services.knowledge_store import get_knowledge_store
from plantdoc.services.model_manager import get_model_manager
from plantdoc.worker.live import reset_live

logger = logging.getLogger(__name__)

# Initialize settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} {__version__}")

    # The API stays up without a model; /api/v1/model/load retries
    try:
        await get_model_manager().load()
    except LoadError as e:
        logger.warning(f"Model not loaded at startup: {e}")

    yield

    reset_live()
    await get_knowledge_store().aclose()
    logger.info(f"{settings.app_name} stopped")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Apple Leaf Disease Diagnosis System",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(taxonomy_router)
app.include_router(diagnose_router)
app.include_router(live_router)
app.include_router(model_router)
app.include_router(history_router)


@app.get("/")
async def root():
    """Root endpoint with system information."""
    return {
        "message": "Plant Doctor API",
        "version": __version__,
        "status": "operational",
    }


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "plant-doctor",
        "model_state": get_model_manager().state.value,
    }


@app.get("/api/v1/info")
async def system_info():
    """System information endpoint."""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "debug": settings.debug,
        "model_path": settings.model_path,
        "knowledge_store_configured": bool(settings.knowledge_store_url),
    }


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )
