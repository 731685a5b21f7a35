"""
Shared fixtures for Plant Caretaker tests.
"""

import pytest

from app.core import config
from app.services import identification, plant_id_client, plant_store, storage
from app.services.plant_store import PlantStore
from app.services.storage import PhotoStorageService


def _reset():
    config._settings = None
    plant_id_client._plant_id_client = None
    identification._identification_service = None
    plant_store._plant_store = None
    PlantStore._instance = None
    storage._storage_service = None
    PhotoStorageService._instance = None


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Reset every service singleton before and after each test."""
    monkeypatch.setenv("PLANT_ID_API_KEY", "")
    monkeypatch.setenv("PLANT_ID_MOCK_FALLBACK", "true")
    monkeypatch.setenv("PHOTO_STORAGE_ENABLED", "false")
    _reset()
    yield
    _reset()
