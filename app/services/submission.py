"""
Submission stage for Plant Caretaker.

This module assembles a PlantRecord from the add-plant form, hands it to
the plant store and maps the stored record back into the summary shape
the caller displays.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from app.core.images import ImageValidationError, is_data_uri
from app.models.identification import FormFields, PlantDetails
from app.models.plant import (
    NOT_YET_WATERED,
    PlantRecord,
    ScientificDetails,
    StoredPlant,
    StoredPlantSummary,
)
from app.services.plant_store import PlantStore
from app.services.storage import PhotoStorageService, StorageConnectionError

logger = logging.getLogger(__name__)

NAME_REQUIRED_MESSAGE = "Please enter a plant name"
SAVE_FAILED_MESSAGE = "Failed to save plant. Please try again."


class PlantValidationError(Exception):
    """Raised when the form is not complete enough to submit."""

    pass


class SubmissionError(Exception):
    """Raised when the plant could not be persisted."""

    pass


def format_display_date(value: Optional[datetime]) -> Optional[str]:
    """Render a date as M/D/YYYY, or None when absent."""
    if value is None:
        return None
    return f"{value.month}/{value.day}/{value.year}"


def build_plant_record(
    form: FormFields,
    details: Optional[PlantDetails] = None,
    image: Optional[str] = None,
) -> PlantRecord:
    """
    Assemble the submission payload from the current form.

    Only the plant name is required; the image and identification
    details are optional.

    Raises:
        PlantValidationError: If the plant name is empty
    """
    name = form.plant_name
    if not name.strip():
        raise PlantValidationError(NAME_REQUIRED_MESSAGE)

    scientific_details = None
    if details is not None:
        scientific_details = ScientificDetails(
            scientific_name=details.scientific_name,
            common_names=list(details.all_common_names),
            confidence=details.confidence,
            taxonomy=dict(details.taxonomy),
            wiki_url=details.wiki_url,
            description=details.description,
        )

    species = (details.scientific_name if details else None) or form.plant_type or "Unknown"

    return PlantRecord(
        name=name,
        species=species,
        nickname=name,
        main_image=image or None,
        notes=form.notes,
        status="Healthy",
        scientific_details=scientific_details,
    )


def summarize(stored: StoredPlant) -> StoredPlantSummary:
    """Reshape a stored plant into the caller-facing summary."""
    return StoredPlantSummary(
        id=stored.id,
        name=stored.name,
        species=stored.species,
        nickname=stored.nickname,
        image=stored.main_image,
        notes=stored.notes,
        health=stored.status,
        last_watered=format_display_date(stored.last_watered) or NOT_YET_WATERED,
        date_added=format_display_date(stored.date_added or stored.created_at) or "",
    )


def submit_plant(
    store: PlantStore,
    record: PlantRecord,
    photo_storage: Optional[PhotoStorageService] = None,
) -> Tuple[StoredPlant, StoredPlantSummary]:
    """
    Persist a plant record and build its summary.

    When photo storage is given, a data-URI main image is uploaded first
    and the record keeps its URL instead.

    Raises:
        SubmissionError: If the photo upload or the store write fails
    """
    if photo_storage is not None and is_data_uri(record.main_image):
        try:
            url = photo_storage.upload_data_uri(record.main_image)
        except (StorageConnectionError, ImageValidationError) as e:
            logger.error(f"Photo upload for '{record.name}' failed: {e}")
            raise SubmissionError(SAVE_FAILED_MESSAGE) from e
        except Exception as e:
            logger.error(f"Unexpected photo upload error for '{record.name}': {e}", exc_info=True)
            raise SubmissionError(SAVE_FAILED_MESSAGE) from e
        record = record.model_copy(update={"main_image": url})

    try:
        stored = store.create(record)
    except Exception as e:
        logger.error(f"Saving plant '{record.name}' failed: {e}", exc_info=True)
        raise SubmissionError(SAVE_FAILED_MESSAGE) from e

    return stored, summarize(stored)
