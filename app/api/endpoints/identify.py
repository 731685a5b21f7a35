"""
Identification API endpoints for Plant Caretaker.

This module exposes image identification (JSON data URI or multipart
upload) and plant name search.
"""

from typing import Dict

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from app.core import depends_identification
from app.core.config import get_settings
from app.core.images import (
    ImageValidationError,
    encode_data_uri,
    validate_data_uri,
    validate_image_upload,
)
from app.models.identification import (
    FailureCategory,
    IdentificationOutcome,
    IdentificationStatus,
    IdentifyRequest,
)
from app.services.identification import IdentificationService

router = APIRouter(prefix="/api/v1/identify", tags=["identify"])

FAILURE_STATUS_CODES: Dict[FailureCategory, int] = {
    FailureCategory.NETWORK: 502,
    FailureCategory.NOT_CONFIGURED: 503,
    FailureCategory.RATE_LIMITED: 429,
    FailureCategory.TIMEOUT: 504,
    FailureCategory.QUOTA_EXCEEDED: 402,
    FailureCategory.UNAVAILABLE: 503,
    FailureCategory.GENERIC: 502,
}


def _respond(outcome: IdentificationOutcome) -> IdentificationOutcome:
    if outcome.status is IdentificationStatus.FAILED:
        category = outcome.failure or FailureCategory.GENERIC
        raise HTTPException(
            status_code=FAILURE_STATUS_CODES[category],
            detail={"category": category.value, "message": outcome.advisory},
        )
    return outcome


@router.post("", response_model=IdentificationOutcome)
async def identify_image(
    request: IdentifyRequest,
    identification: IdentificationService = Depends(depends_identification),
) -> IdentificationOutcome:
    """
    Identify a plant from a base64 data-URI image.

    Example:
        POST /api/v1/identify
        {"image": "data:image/jpeg;base64,/9j/4AAQ..."}

        Response:
        {
            "status": "identified",
            "details": {"scientific_name": "Spathiphyllum wallisii", ...},
            "form": {"plant_name": "Peace Lily", "plant_type": "Spathiphyllum wallisii", ...},
            ...
        }
    """
    try:
        validate_data_uri(request.image, max_size=get_settings().max_upload_size_bytes)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _respond(await identification.identify_from_image(request.image))


@router.post("/upload", response_model=IdentificationOutcome)
async def identify_upload(
    file: UploadFile = File(..., description="Plant image (image/*, max 5MB)"),
    identification: IdentificationService = Depends(depends_identification),
) -> IdentificationOutcome:
    """Identify a plant from a multipart image upload."""
    content = await file.read()
    try:
        validate_image_upload(
            file.content_type, len(content), max_size=get_settings().max_upload_size_bytes
        )
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    image = encode_data_uri(content, file.content_type)
    return _respond(await identification.identify_from_image(image))


@router.get("/search", response_model=IdentificationOutcome)
async def search_plants(
    q: str = Query(..., description="Plant name to search for"),
    identification: IdentificationService = Depends(depends_identification),
) -> IdentificationOutcome:
    """
    Search plants by common or scientific name.

    The top match fills ``details`` and ``form``; every match is listed
    in ``candidates``.
    """
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search query must not be empty")

    return _respond(await identification.identify_from_text(query))
