"""
Unit tests for the submission stage.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from urllib3.exceptions import MaxRetryError

from app.models.identification import FormFields, PlantDetails
from app.models.plant import NOT_YET_WATERED
from app.services.plant_store import PlantStore
from app.services.storage import StorageConnectionError
from app.services.submission import (
    NAME_REQUIRED_MESSAGE,
    SAVE_FAILED_MESSAGE,
    PlantValidationError,
    SubmissionError,
    build_plant_record,
    format_display_date,
    submit_plant,
    summarize,
)

DETAILS = PlantDetails(
    scientific_name="Spathiphyllum wallisii",
    common_name="Peace Lily",
    all_common_names=["Peace Lily"],
    confidence=0.87,
    taxonomy={"family": "Araceae"},
    family="Araceae",
    genus="Spathiphyllum",
)


def test_format_display_date():
    assert format_display_date(datetime(2024, 3, 5, tzinfo=timezone.utc)) == "3/5/2024"
    assert format_display_date(None) is None


def test_blank_name_is_rejected():
    with pytest.raises(PlantValidationError, match=NAME_REQUIRED_MESSAGE):
        build_plant_record(FormFields(plant_name="   "))


def test_record_from_identification():
    form = FormFields(plant_name="Peace Lily", plant_type="Spathiphyllum wallisii", notes="n")

    record = build_plant_record(form, DETAILS, "data:image/jpeg;base64,AAAA")

    assert record.name == "Peace Lily"
    assert record.nickname == "Peace Lily"
    assert record.species == "Spathiphyllum wallisii"
    assert record.status == "Healthy"
    assert record.main_image == "data:image/jpeg;base64,AAAA"
    assert record.scientific_details.confidence == 0.87
    assert record.scientific_details.taxonomy == {"family": "Araceae"}


def test_manual_record_uses_typed_species():
    record = build_plant_record(FormFields(plant_name="Fern", plant_type="Boston fern"))

    assert record.species == "Boston fern"
    assert record.scientific_details is None
    assert record.main_image is None


def test_manual_record_without_type_is_unknown():
    assert build_plant_record(FormFields(plant_name="Fern")).species == "Unknown"


def test_round_trip_preserves_fields():
    form = FormFields(plant_name="Peace Lily", plant_type="Spathiphyllum wallisii", notes="Keep moist")
    record = build_plant_record(form, DETAILS)

    stored, summary = submit_plant(PlantStore(), record)

    assert summary.id == stored.id
    assert summary.name == "Peace Lily"
    assert summary.species == "Spathiphyllum wallisii"
    assert summary.notes == "Keep moist"
    assert summary.health == "Healthy"
    assert summary.last_watered == NOT_YET_WATERED
    assert summary.date_added == format_display_date(stored.date_added)
    assert stored.scientific_details.confidence == 0.87


def test_summary_shows_watered_date():
    store = PlantStore()
    stored, _ = submit_plant(store, build_plant_record(FormFields(plant_name="Fern")))
    watered = store.record_care(stored.id, "Watered")

    summary = summarize(watered)

    assert summary.last_watered == format_display_date(watered.last_watered)


def test_store_failure_becomes_submission_error():
    store = Mock()
    store.create.side_effect = RuntimeError("disk full")

    with pytest.raises(SubmissionError, match=SAVE_FAILED_MESSAGE):
        submit_plant(store, build_plant_record(FormFields(plant_name="Fern")))


def test_data_uri_photo_is_uploaded_first():
    photo_storage = Mock()
    photo_storage.upload_data_uri.return_value = "http://minio/plant-photos/plants/x.jpg"
    record = build_plant_record(FormFields(plant_name="Fern"), image="data:image/jpeg;base64,AAAA")

    stored, summary = submit_plant(PlantStore(), record, photo_storage)

    photo_storage.upload_data_uri.assert_called_once_with("data:image/jpeg;base64,AAAA")
    assert stored.main_image == "http://minio/plant-photos/plants/x.jpg"
    assert stored.images == ["http://minio/plant-photos/plants/x.jpg"]
    assert summary.image == "http://minio/plant-photos/plants/x.jpg"


def test_photo_upload_failure_saves_nothing():
    photo_storage = Mock()
    photo_storage.upload_data_uri.side_effect = StorageConnectionError("down")
    store = PlantStore()
    record = build_plant_record(FormFields(plant_name="Fern"), image="data:image/jpeg;base64,AAAA")

    with pytest.raises(SubmissionError):
        submit_plant(store, record, photo_storage)

    assert store.list() == []


def test_unexpected_upload_error_saves_nothing():
    photo_storage = Mock()
    photo_storage.upload_data_uri.side_effect = MaxRetryError(pool=None, url="/plant-photos")
    store = PlantStore()
    record = build_plant_record(FormFields(plant_name="Fern"), image="data:image/jpeg;base64,AAAA")

    with pytest.raises(SubmissionError, match=SAVE_FAILED_MESSAGE):
        submit_plant(store, record, photo_storage)

    assert store.list() == []


def test_name_is_saved_as_typed():
    record = build_plant_record(FormFields(plant_name="  Peace Lily "))

    assert record.name == "  Peace Lily "
    assert record.nickname == "  Peace Lily "
