"""
Plant API endpoints for Plant Caretaker.

This module provides plant submission, lookup, editing, care logging and
growth tracking backed by the PlantStore.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core import depends_plant_store
from app.core.config import get_settings
from app.models.plant import (
    CareRequest,
    CreatePlantResponse,
    GrowthRequest,
    PlantRecord,
    PlantUpdate,
    StoredPlant,
)
from app.services.plant_store import PlantNotFoundError, PlantStore
from app.services.storage import PhotoStorageService, StorageConnectionError, get_storage_service
from app.services.submission import SubmissionError, submit_plant

router = APIRouter(prefix="/api/v1/plants", tags=["plants"])


def _photo_storage() -> Optional[PhotoStorageService]:
    if not get_settings().photo_storage_enabled:
        return None
    try:
        return get_storage_service()
    except StorageConnectionError as e:
        raise HTTPException(status_code=503, detail=f"Photo storage unavailable: {str(e)}")


def _not_found(plant_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Plant {plant_id} not found")


@router.post("", response_model=CreatePlantResponse, status_code=201)
def create_plant(
    record: PlantRecord,
    store: PlantStore = Depends(depends_plant_store),
) -> CreatePlantResponse:
    """
    Save a new plant.

    Example:
        POST /api/v1/plants
        {"name": "Peace Lily", "species": "Spathiphyllum wallisii", "notes": "..."}

        Response (201):
        {
            "plant": {"id": "3f2a...", "name": "Peace Lily", ...},
            "summary": {"id": "3f2a...", "last_watered": "Not yet watered", "date_added": "10/17/2026", ...}
        }
    """
    try:
        stored, summary = submit_plant(store, record, _photo_storage())
    except SubmissionError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return CreatePlantResponse(plant=stored, summary=summary)


@router.get("", response_model=List[StoredPlant])
def list_plants(store: PlantStore = Depends(depends_plant_store)) -> List[StoredPlant]:
    return store.list()


@router.get("/{plant_id}", response_model=StoredPlant)
def get_plant(plant_id: str, store: PlantStore = Depends(depends_plant_store)) -> StoredPlant:
    try:
        return store.get(plant_id)
    except PlantNotFoundError:
        raise _not_found(plant_id)


@router.put("/{plant_id}", response_model=StoredPlant)
def update_plant(
    plant_id: str,
    changes: PlantUpdate,
    store: PlantStore = Depends(depends_plant_store),
) -> StoredPlant:
    try:
        return store.update(plant_id, changes)
    except PlantNotFoundError:
        raise _not_found(plant_id)


@router.delete("/{plant_id}", status_code=204)
def delete_plant(plant_id: str, store: PlantStore = Depends(depends_plant_store)) -> Response:
    try:
        store.delete(plant_id)
    except PlantNotFoundError:
        raise _not_found(plant_id)
    return Response(status_code=204)


@router.put("/{plant_id}/care", response_model=StoredPlant)
def record_care(
    plant_id: str,
    request: CareRequest,
    store: PlantStore = Depends(depends_plant_store),
) -> StoredPlant:
    """Log a care action; watering, fertilizing and pruning also move the matching "last" date."""
    try:
        return store.record_care(plant_id, request.action_type, request.notes)
    except PlantNotFoundError:
        raise _not_found(plant_id)


@router.post("/{plant_id}/growth", response_model=StoredPlant)
def add_growth(
    plant_id: str,
    request: GrowthRequest,
    store: PlantStore = Depends(depends_plant_store),
) -> StoredPlant:
    try:
        return store.add_growth_milestone(
            plant_id, height=request.height, notes=request.notes, image_url=request.image_url
        )
    except PlantNotFoundError:
        raise _not_found(plant_id)
