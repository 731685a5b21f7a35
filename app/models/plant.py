"""
Plant record data models for Plant Caretaker.

This module defines the submission payload, the stored record and the
summary handed back to callers after a plant is saved.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

PlantStatus = Literal["Healthy", "Needs Attention", "Critical", "Sick", "Dormant"]
PlantLocation = Literal["Indoor", "Outdoor", "Balcony", "Garden", "Other"]
SunlightNeeds = Literal["Full Sun", "Partial Sun", "Shade", "Low Light"]
CareActionType = Literal["Watered", "Fertilized", "Pruned", "Repotted", "Other"]

NOT_YET_WATERED = "Not yet watered"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScientificDetails(BaseModel):
    """Scientific metadata captured from identification."""

    scientific_name: str = Field(..., description="Scientific name")
    common_names: List[str] = Field(default_factory=list, description="Common names")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Confidence (0-1)")
    taxonomy: Dict[str, str] = Field(default_factory=dict, description="Taxonomy ranks")
    wiki_url: str = Field("", description="Reference URL")
    description: str = Field("", description="Description")


class PlantRecord(BaseModel):
    """Plant submission payload."""

    name: str = Field(..., min_length=1, description="Plant name")
    species: str = Field("Unknown", description="Species (scientific name or type)")
    nickname: Optional[str] = Field(None, description="Nickname")
    main_image: Optional[str] = Field(None, description="Data URI or photo URL")
    notes: str = Field("", description="Notes")
    status: PlantStatus = Field("Healthy", description="Health status")
    location: PlantLocation = Field("Indoor", description="Where the plant lives")
    sunlight_needs: SunlightNeeds = Field("Partial Sun", description="Light requirement")
    watering_frequency: int = Field(7, ge=1, description="Days between watering")
    fertilizer_frequency: int = Field(30, ge=1, description="Days between fertilizing")
    pruning_frequency: int = Field(90, ge=1, description="Days between pruning")
    scientific_details: Optional[ScientificDetails] = Field(
        None, description="Identification metadata"
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v


class PlantUpdate(BaseModel):
    """Partial update for a stored plant."""

    name: Optional[str] = Field(None, min_length=1)
    species: Optional[str] = None
    nickname: Optional[str] = None
    main_image: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PlantStatus] = None
    location: Optional[PlantLocation] = None
    sunlight_needs: Optional[SunlightNeeds] = None
    watering_frequency: Optional[int] = Field(None, ge=1)
    fertilizer_frequency: Optional[int] = Field(None, ge=1)
    pruning_frequency: Optional[int] = Field(None, ge=1)


class CareEvent(BaseModel):
    """One entry of a plant's care history."""

    action_type: CareActionType = Field(..., description="Care action")
    notes: Optional[str] = Field(None, description="Notes")
    date: datetime = Field(default_factory=utcnow, description="When it happened")


class CareRequest(BaseModel):
    action_type: CareActionType
    notes: Optional[str] = None


class GrowthMilestone(BaseModel):
    """Recorded growth measurement."""

    height: Optional[float] = Field(None, ge=0, description="Height in cm")
    notes: Optional[str] = Field(None, description="Notes")
    image_url: Optional[str] = Field(None, description="Photo URL")
    date: datetime = Field(default_factory=utcnow, description="When it was recorded")


class GrowthRequest(BaseModel):
    height: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    image_url: Optional[str] = None


class StoredPlant(PlantRecord):
    """Plant record as returned by the plant store."""

    id: str = Field(..., description="Unique identifier")
    images: List[str] = Field(default_factory=list, description="Photo URLs")
    date_added: Optional[datetime] = Field(None, description="Date added")
    last_watered: Optional[datetime] = None
    last_fertilized: Optional[datetime] = None
    last_pruned: Optional[datetime] = None
    care_history: List[CareEvent] = Field(default_factory=list)
    growth_milestones: List[GrowthMilestone] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def days_since_watered(self) -> Optional[int]:
        if self.last_watered is None:
            return None
        return (utcnow() - self.last_watered).days

    @computed_field
    @property
    def next_watering_date(self) -> Optional[datetime]:
        if self.last_watered is None:
            return None
        return self.last_watered + timedelta(days=self.watering_frequency)

    @computed_field
    @property
    def needs_watering(self) -> bool:
        if self.last_watered is None:
            return True
        return self.days_since_watered >= self.watering_frequency

    @computed_field
    @property
    def needs_fertilizing(self) -> bool:
        if self.last_fertilized is None:
            return False
        return (utcnow() - self.last_fertilized).days >= self.fertilizer_frequency


class StoredPlantSummary(BaseModel):
    """UI-facing view of a freshly saved plant."""

    id: str = Field(..., description="Unique identifier")
    name: str = Field(..., description="Plant name")
    species: str = Field(..., description="Species")
    nickname: Optional[str] = Field(None, description="Nickname")
    image: Optional[str] = Field(None, description="Main image")
    notes: str = Field("", description="Notes")
    health: str = Field(..., description="Health status")
    last_watered: str = Field(NOT_YET_WATERED, description="Last watered date")
    date_added: str = Field(..., description="Date added")


class CreatePlantResponse(BaseModel):
    plant: StoredPlant
    summary: StoredPlantSummary


class PhotoUploadResponse(BaseModel):
    """Result of storing a plant photo."""
    url: str = Field(..., description="Photo URL")
    filename: str = Field(..., description="Stored object name (UUID prefixed)")
    original_filename: str = Field(..., description="Original file name")
    content_type: str = Field(..., description="File MIME type")
    size: int = Field(..., description="Size in bytes")
