"""
Identification data models for Plant Caretaker.

This module contains Pydantic models for the identification workflow:
the normalized plant details, the auto-filled form fields, and the
outcome returned for an identification or search request.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

UNKNOWN = "Unknown"


class FailureCategory(str, Enum):
    """User-facing categories for recoverable identification failures."""

    NETWORK = "network"
    NOT_CONFIGURED = "not_configured"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAVAILABLE = "unavailable"
    GENERIC = "generic"


class IdentificationStatus(str, Enum):
    """Result of a single identification or search request."""

    IDENTIFIED = "identified"
    NOT_IDENTIFIED = "not_identified"
    FAILED = "failed"
    STALE = "stale"


class PlantDetails(BaseModel):
    """Normalized view of the top-ranked species match."""

    scientific_name: str = Field(..., description="Scientific (binomial) identifier")
    common_name: str = Field(
        ..., description="Display name; falls back to the scientific name"
    )
    all_common_names: List[str] = Field(
        default_factory=list, description="Common names in provider order"
    )
    confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Provider probability (0-1)"
    )
    description: str = Field("", description="Free-text description")
    taxonomy: Dict[str, str] = Field(default_factory=dict, description="Taxonomy ranks")
    family: str = Field(UNKNOWN, description="Taxonomic family")
    genus: str = Field(UNKNOWN, description="Taxonomic genus")
    wiki_url: str = Field("", description="Reference URL")
    common_names_source: Optional[str] = Field(
        None, description="Response field the common names were read from"
    )
    data_quality_warnings: List[str] = Field(
        default_factory=list, description="Problems found in the provider data"
    )

    @property
    def has_distinct_common_name(self) -> bool:
        """True when a common name exists and differs from the scientific name."""
        if not self.all_common_names:
            return False
        primary = self.all_common_names[0]
        return bool(primary) and primary != self.scientific_name


class FormFields(BaseModel):
    """Editable add-plant form values."""

    plant_name: str = Field("", description="Primary display name")
    plant_type: str = Field("", description="Secondary type field (scientific name)")
    notes: str = Field("", description="Free-text notes")


class RecognitionResult(BaseModel):
    """Envelope returned by the recognition capability."""

    success: bool = Field(..., description="Whether the provider call succeeded")
    data: Optional[Dict[str, Any]] = Field(None, description="Raw provider payload")
    is_mock: bool = Field(False, description="Payload is example data")
    mock_reason: Optional[str] = Field(None, description="Why example data was served")


class IdentificationOutcome(BaseModel):
    """Outcome of an identification or search request."""

    status: IdentificationStatus = Field(..., description="Request status")
    details: Optional[PlantDetails] = Field(None, description="Top-ranked match")
    candidates: List[PlantDetails] = Field(
        default_factory=list, description="All matches (text search only)"
    )
    form: Optional[FormFields] = Field(None, description="Auto-filled form values")
    growing_info: Dict[str, str] = Field(
        default_factory=dict, description="Growing notes for the top match"
    )
    advisory: Optional[str] = Field(None, description="User-facing advisory message")
    failure: Optional[FailureCategory] = Field(None, description="Failure category")
    is_mock: bool = Field(False, description="Result built from example data")


class IdentifyRequest(BaseModel):
    """Identification request carrying a captured image."""

    image: str = Field(..., min_length=1, description="Image as a base64 data URI")

    model_config = {
        "json_schema_extra": {
            "examples": [{"image": "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ..."}]
        }
    }
