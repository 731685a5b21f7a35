"""
PlantStore for Plant Caretaker.

This module provides a singleton, thread-safe in-memory record store for
plants, including care history and growth milestones.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional

from app.core.images import is_data_uri
from app.models.plant import (
    CareActionType,
    CareEvent,
    GrowthMilestone,
    PlantRecord,
    PlantUpdate,
    StoredPlant,
    utcnow,
)

logger = logging.getLogger(__name__)

# Care actions that move a "last done" timestamp
_LAST_ACTION_FIELDS = {
    "Watered": "last_watered",
    "Fertilized": "last_fertilized",
    "Pruned": "last_pruned",
}


class PlantNotFoundError(Exception):
    """Raised when a plant id is not in the store."""

    pass


class PlantStore:
    """
    Singleton in-memory plant store.

    Records are kept as StoredPlant models and copied on the way in and
    out so callers never share mutable state with the store.
    """

    _instance: Optional["PlantStore"] = None

    def __new__(cls) -> "PlantStore":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

        self._plants: Dict[str, StoredPlant] = {}
        self._lock = threading.Lock()

    def _get(self, plant_id: str) -> StoredPlant:
        if plant_id not in self._plants:
            raise PlantNotFoundError(f"Plant {plant_id} not found")
        return self._plants[plant_id]

    def create(self, record: PlantRecord) -> StoredPlant:
        """
        Persist a new plant.

        Args:
            record: Validated submission payload

        Returns:
            The stored plant with id and timestamps
        """
        now = utcnow()
        images = []
        if record.main_image and not is_data_uri(record.main_image):
            images.append(record.main_image)

        stored = StoredPlant(
            **record.model_dump(),
            id=uuid.uuid4().hex,
            images=images,
            date_added=now,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._plants[stored.id] = stored
        logger.info(f"Stored plant {stored.id} ({stored.name})")
        return stored.model_copy(deep=True)

    def get(self, plant_id: str) -> StoredPlant:
        """
        Get a plant by id.

        Raises:
            PlantNotFoundError: If id not found
        """
        with self._lock:
            return self._get(plant_id).model_copy(deep=True)

    def list(self) -> List[StoredPlant]:
        """Get all plants, oldest first."""
        with self._lock:
            return [plant.model_copy(deep=True) for plant in self._plants.values()]

    def update(self, plant_id: str, changes: PlantUpdate) -> StoredPlant:
        """
        Apply a partial update.

        Raises:
            PlantNotFoundError: If id not found
        """
        with self._lock:
            plant = self._get(plant_id)
            updated = plant.model_copy(
                update={**changes.model_dump(exclude_unset=True), "updated_at": utcnow()},
                deep=True,
            )
            self._plants[plant_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, plant_id: str) -> None:
        """
        Remove a plant.

        Raises:
            PlantNotFoundError: If id not found
        """
        with self._lock:
            self._get(plant_id)
            del self._plants[plant_id]
        logger.info(f"Deleted plant {plant_id}")

    def record_care(
        self, plant_id: str, action_type: CareActionType, notes: Optional[str] = None
    ) -> StoredPlant:
        """
        Add a care event (newest first) and update the matching
        last-watered/fertilized/pruned timestamp.

        Raises:
            PlantNotFoundError: If id not found
        """
        now = utcnow()
        with self._lock:
            plant = self._get(plant_id)
            update = {
                "care_history": [CareEvent(action_type=action_type, notes=notes, date=now)]
                + plant.care_history,
                "updated_at": now,
            }
            last_field = _LAST_ACTION_FIELDS.get(action_type)
            if last_field:
                update[last_field] = now
            updated = plant.model_copy(update=update, deep=True)
            self._plants[plant_id] = updated
            return updated.model_copy(deep=True)

    def add_growth_milestone(
        self,
        plant_id: str,
        height: Optional[float] = None,
        notes: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> StoredPlant:
        """
        Add a growth milestone (newest first).

        Raises:
            PlantNotFoundError: If id not found
        """
        now = utcnow()
        with self._lock:
            plant = self._get(plant_id)
            milestone = GrowthMilestone(height=height, notes=notes, image_url=image_url, date=now)
            updated = plant.model_copy(
                update={
                    "growth_milestones": [milestone] + plant.growth_milestones,
                    "updated_at": now,
                },
                deep=True,
            )
            self._plants[plant_id] = updated
            return updated.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._plants.clear()


# Module-level singleton instance
_plant_store: Optional[PlantStore] = None


def get_plant_store() -> PlantStore:
    """
    Get the singleton PlantStore instance.

    Returns:
        PlantStore instance
    """
    global _plant_store
    if _plant_store is None:
        _plant_store = PlantStore()
    return _plant_store
