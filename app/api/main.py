"""
FastAPI Main Application for Plant Caretaker.

This module initializes the FastAPI application with all routes and middleware.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.api.endpoints.identify import router as identify_router
from app.api.endpoints.plants import router as plants_router
from app.api.endpoints.upload import router as upload_router
from app.services.plant_id_client import close_plant_id_client, is_usable_api_key

# Initialize settings
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} starting")
    yield
    await close_plant_id_client()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Plant identification and care tracking",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(identify_router)
app.include_router(plants_router)
app.include_router(upload_router)


@app.get("/")
async def root():
    """Root endpoint with system information."""
    return {
        "message": "Plant Caretaker API",
        "version": "0.1.0",
        "status": "operational",
    }


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint for Docker health checks."""
    return {"status": "healthy", "service": "plant-caretaker-web"}


@app.get("/api/v1/info")
async def system_info():
    """System information endpoint."""
    return {
        "app_name": settings.app_name,
        "version": "0.1.0",
        "debug": settings.debug,
        "plant_id_configured": is_usable_api_key(settings.plant_id_api_key),
        "photo_storage_enabled": settings.photo_storage_enabled,
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
