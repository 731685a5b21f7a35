"""
Core configuration and utilities for Plant Caretaker.
"""

from app.core.deps import depends_identification, depends_plant_store, depends_storage

__all__ = ["depends_identification", "depends_plant_store", "depends_storage"]
