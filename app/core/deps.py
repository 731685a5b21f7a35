"""
FastAPI dependency injection utilities for Plant Caretaker.

This module provides dependency injection functions for FastAPI routes.
"""

from typing import TYPE_CHECKING
from fastapi import Depends, HTTPException

if TYPE_CHECKING:
    from app.services.identification import IdentificationService
    from app.services.plant_store import PlantStore
    from app.services.storage import PhotoStorageService


# Lazy imports to avoid circular dependency
def _get_identification_service():
    from app.services.identification import get_identification_service
    return get_identification_service()


def _get_plant_store():
    from app.services.plant_store import get_plant_store
    return get_plant_store()


def _get_storage_service():
    from app.services.storage import StorageConnectionError, get_storage_service
    try:
        return get_storage_service()
    except StorageConnectionError as e:
        raise HTTPException(status_code=503, detail=f"Photo storage unavailable: {str(e)}")


async def depends_identification(
    service: "IdentificationService" = Depends(_get_identification_service),
) -> "IdentificationService":
    """
    FastAPI dependency injection for IdentificationService.

    Usage in routes:
        @router.get("/identify/search")
        async def search(
            q: str,
            identification: IdentificationService = Depends(depends_identification)
        ):
            return await identification.identify_from_text(q)
    """
    return service


async def depends_plant_store(
    store: "PlantStore" = Depends(_get_plant_store),
) -> "PlantStore":
    """FastAPI dependency injection for PlantStore."""
    return store


async def depends_storage(
    service: "PhotoStorageService" = Depends(_get_storage_service),
) -> "PhotoStorageService":
    """
    FastAPI dependency injection for PhotoStorageService.

    Resolving this dependency connects to MinIO, so only routes that
    always store photos should declare it.
    """
    return service
