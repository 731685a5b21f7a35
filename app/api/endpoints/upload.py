"""
Upload API endpoints for Plant Caretaker.

This module stores plant photos in MinIO using PhotoStorageService.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.core import depends_storage
from app.core.config import get_settings
from app.core.images import ImageValidationError, validate_image_upload
from app.models.plant import PhotoUploadResponse
from app.services.storage import PhotoStorageService, StorageConnectionError

router = APIRouter(prefix="/api/v1/upload", tags=["upload"])


@router.post("", response_model=PhotoUploadResponse)
async def upload_photo(
    file: UploadFile = File(..., description="Plant photo (image/*, max 5MB)"),
    storage: PhotoStorageService = Depends(depends_storage),
) -> PhotoUploadResponse:
    """
    Upload a plant photo to MinIO storage.

    Example:
        POST /api/v1/upload
        Content-Type: multipart/form-data

        Response:
        {
            "url": "http://localhost:9000/plant-photos/plants/a1b2c3d4_monstera.jpg",
            "filename": "plants/a1b2c3d4_monstera.jpg",
            "original_filename": "monstera.jpg",
            "content_type": "image/jpeg",
            "size": 48213
        }
    """
    content = await file.read()
    try:
        validate_image_upload(
            file.content_type, len(content), max_size=get_settings().max_upload_size_bytes
        )
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    object_name = storage.object_name_for(file.filename, file.content_type)
    try:
        url = storage.upload_photo(content, object_name, file.content_type)
    except StorageConnectionError as e:
        raise HTTPException(status_code=503, detail=f"Failed to upload photo: {str(e)}")

    return PhotoUploadResponse(
        url=url,
        filename=object_name,
        original_filename=file.filename or "unknown",
        content_type=file.content_type,
        size=len(content),
    )
