"""
Identification pipeline for Plant Caretaker.

This module turns raw recognition-provider payloads into a single
``PlantDetails`` record and classifies provider failures into
user-facing advisory categories.

The provider's response layout is not under our control, so every field
is resolved through an ordered list of known schema variants. The common
name lookup ends with a heuristic key scan over the ``details`` object,
used only when no known variant matched.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.care_templates import generate_growing_info
from app.models.identification import (
    UNKNOWN,
    FailureCategory,
    IdentificationOutcome,
    IdentificationStatus,
    PlantDetails,
    RecognitionResult,
)
from app.services.form_projection import project_form
from app.services.plant_id_client import (
    PlantIdAuthError,
    PlantIdClient,
    PlantIdError,
    PlantIdNetworkError,
    PlantIdQuotaError,
    PlantIdRateLimitError,
    PlantIdTimeoutError,
    PlantIdUnavailableError,
    get_plant_id_client,
)

logger = logging.getLogger(__name__)

# Paths at which identification responses place the ranked candidates
SUGGESTION_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("result", "classification", "suggestions"),  # v3
    ("classification", "suggestions"),
    ("suggestions",),  # v2
)

# Keys holding the scientific identifier, per request type
IMAGE_NAME_KEYS = ("name", "plant_name")
SEARCH_NAME_KEYS = ("entity_name", "name")

# Keys holding the nested details object
DETAILS_KEYS = ("details", "plant_details")

ADVISORIES: Dict[FailureCategory, str] = {
    FailureCategory.NETWORK: (
        "Network connection error. Please check your internet connection and try again."
    ),
    FailureCategory.NOT_CONFIGURED: (
        "Plant identification service is not configured. "
        "Please use manual entry or text search to add your plant."
    ),
    FailureCategory.RATE_LIMITED: (
        "Too many identification requests. Please wait a moment and try again."
    ),
    FailureCategory.TIMEOUT: (
        "The identification service is taking too long. "
        "Please try again with a different image."
    ),
    FailureCategory.QUOTA_EXCEEDED: (
        "Plant identification service quota exceeded. Please try again later."
    ),
    FailureCategory.UNAVAILABLE: (
        "Plant identification service is temporarily unavailable. "
        "Please try manual entry or text search."
    ),
    FailureCategory.GENERIC: (
        "Could not identify the plant. Please enter details manually or try another image."
    ),
}

NOT_IDENTIFIED_ADVISORY = (
    "The plant couldn't be identified clearly. "
    "Please enter details manually or try another image."
)
UNSUCCESSFUL_ADVISORY = "Failed to get identification results. Please try again."
NO_SEARCH_RESULTS_ADVISORY = (
    "No plants found matching your search. Try a different name or use manual entry."
)
SEARCH_FAILED_ADVISORY = (
    "Failed to search for plants. Please try again or use manual entry."
)

_FAILURE_TYPES: Tuple[Tuple[type, FailureCategory], ...] = (
    (PlantIdNetworkError, FailureCategory.NETWORK),
    (PlantIdAuthError, FailureCategory.NOT_CONFIGURED),
    (PlantIdRateLimitError, FailureCategory.RATE_LIMITED),
    (PlantIdTimeoutError, FailureCategory.TIMEOUT),
    (PlantIdQuotaError, FailureCategory.QUOTA_EXCEEDED),
    (PlantIdUnavailableError, FailureCategory.UNAVAILABLE),
)

# Message fragments used when a failure arrives as an untyped exception
_FAILURE_MARKERS: Tuple[Tuple[Tuple[str, ...], FailureCategory], ...] = (
    (("network error",), FailureCategory.NETWORK),
    (("invalid api key", "requires api key configuration"), FailureCategory.NOT_CONFIGURED),
    (("too many requests",), FailureCategory.RATE_LIMITED),
    (("timeout", "timed out"), FailureCategory.TIMEOUT),
    (("quota exceeded",), FailureCategory.QUOTA_EXCEEDED),
    (("temporarily unavailable",), FailureCategory.UNAVAILABLE),
)


def classify_failure(exc: BaseException) -> FailureCategory:
    """
    Map an identification failure to its advisory category.

    Typed client errors are matched first; anything else is matched on
    its message text and falls back to GENERIC.
    """
    for exc_type, category in _FAILURE_TYPES:
        if isinstance(exc, exc_type):
            return category

    message = str(exc).lower()
    for markers, category in _FAILURE_MARKERS:
        if any(marker in message for marker in markers):
            return category
    return FailureCategory.GENERIC


def advisory_for(category: FailureCategory) -> str:
    return ADVISORIES[category]


def mock_advisory(reason: Optional[str]) -> str:
    return (
        f"Note: Using example data ({reason}). "
        "The identification may not be accurate."
    )


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------


def _dig(data: Any, path: Sequence[str]) -> Any:
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _first_present(candidate: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = candidate.get(key)
        if value:
            return value
    return None


def _details_of(candidate: Mapping[str, Any]) -> Mapping[str, Any]:
    for key in DETAILS_KEYS:
        value = candidate.get(key)
        if isinstance(value, Mapping):
            return value
    return {}


def _as_name_list(values: Sequence[Any]) -> List[str]:
    return [str(value) for value in values if value is not None and str(value) != ""]


def resolve_common_names(candidate: Mapping[str, Any]) -> Tuple[List[str], Optional[str]]:
    """
    Find the candidate's common-name list.

    Checked in order:
        1. ``common_names`` on the candidate itself
        2. ``common_names`` inside the details object
        3. the first list-valued details key whose name contains
           "common" or "name"

    Returns:
        (names in provider order, source path) or ([], None)
    """
    flat = candidate.get("common_names")
    if isinstance(flat, list):
        return _as_name_list(flat), "common_names"

    details = _details_of(candidate)
    nested = details.get("common_names")
    if isinstance(nested, list):
        return _as_name_list(nested), "details.common_names"

    for key, value in details.items():
        if ("common" in key or "name" in key) and isinstance(value, list):
            logger.warning(
                f"Common names found by key scan at details.{key}; "
                "provider schema may have changed"
            )
            return _as_name_list(value), f"details.{key}"

    return [], None


def _resolve_description(candidate: Mapping[str, Any], details: Mapping[str, Any]) -> str:
    top = candidate.get("description")
    if isinstance(top, str) and top:
        return top
    if isinstance(top, Mapping) and top.get("value"):
        return str(top["value"])

    for key in ("description", "wiki_description"):
        nested = details.get(key)
        if isinstance(nested, Mapping) and nested.get("value"):
            return str(nested["value"])
        if isinstance(nested, str) and nested:
            return nested
    return ""


def _resolve_taxonomy(candidate: Mapping[str, Any], details: Mapping[str, Any]) -> Dict[str, str]:
    for source in (candidate.get("taxonomy"), details.get("taxonomy")):
        if isinstance(source, Mapping) and source:
            return {str(k): str(v) for k, v in source.items() if v is not None}
    return {}


def _resolve_rank(
    candidate: Mapping[str, Any], taxonomy: Mapping[str, str], rank: str
) -> str:
    value = candidate.get(rank) or taxonomy.get(rank)
    return str(value) if value else UNKNOWN


def _resolve_url(candidate: Mapping[str, Any], details: Mapping[str, Any]) -> str:
    return candidate.get("url") or details.get("url") or ""


def _resolve_confidence(value: Any, warnings: List[str]) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        warnings.append(f"confidence {value!r} is not a number")
        return None
    if not 0.0 <= value <= 1.0:
        warnings.append(f"confidence {value!r} is outside [0, 1]")
        return None
    return float(value)


def normalize_candidate(
    candidate: Mapping[str, Any], name_keys: Sequence[str] = IMAGE_NAME_KEYS
) -> Optional[PlantDetails]:
    """
    Fold one provider candidate into a PlantDetails record.

    Returns None when the candidate carries no scientific identifier.
    """
    scientific_name = _first_present(candidate, name_keys)
    if not scientific_name:
        return None
    scientific_name = str(scientific_name)

    details = _details_of(candidate)
    common_names, source = resolve_common_names(candidate)
    taxonomy = _resolve_taxonomy(candidate, details)
    warnings: List[str] = []
    confidence = _resolve_confidence(candidate.get("probability"), warnings)

    if source:
        logger.debug(f"Common names for {scientific_name} read from {source}")
    for warning in warnings:
        logger.warning(f"Data quality problem for {scientific_name}: {warning}")

    return PlantDetails(
        scientific_name=scientific_name,
        common_name=common_names[0] if common_names else scientific_name,
        all_common_names=common_names,
        confidence=confidence,
        description=_resolve_description(candidate, details),
        taxonomy=taxonomy,
        family=_resolve_rank(candidate, taxonomy, "family"),
        genus=_resolve_rank(candidate, taxonomy, "genus"),
        wiki_url=_resolve_url(candidate, details),
        common_names_source=source,
        data_quality_warnings=warnings,
    )


def extract_suggestions(data: Any) -> List[Mapping[str, Any]]:
    """Return the ranked candidate list from an identification payload."""
    for path in SUGGESTION_PATHS:
        suggestions = _dig(data, path)
        if isinstance(suggestions, list):
            return [s for s in suggestions if isinstance(s, Mapping)]
    return []


def normalize_image_response(data: Any) -> Optional[PlantDetails]:
    """
    Normalize an image identification payload.

    The first (highest ranked) candidate is authoritative.

    Returns:
        PlantDetails, or None when no candidate is present
    """
    suggestions = extract_suggestions(data)
    if not suggestions:
        return None
    return normalize_candidate(suggestions[0], IMAGE_NAME_KEYS)


def normalize_search_response(data: Any) -> List[PlantDetails]:
    """Normalize every candidate of a name-search payload, keeping order."""
    suggestions = _dig(data, ("suggestions",))
    if not isinstance(suggestions, list):
        return []

    candidates = []
    for suggestion in suggestions:
        if not isinstance(suggestion, Mapping):
            continue
        details = normalize_candidate(suggestion, SEARCH_NAME_KEYS)
        if details is not None:
            candidates.append(details)
    return candidates


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


def _failed(category: FailureCategory, advisory: Optional[str] = None) -> IdentificationOutcome:
    return IdentificationOutcome(
        status=IdentificationStatus.FAILED,
        failure=category,
        advisory=advisory or advisory_for(category),
    )


class IdentificationService:
    """
    Runs identification and search requests against the recognition
    capability and returns normalized outcomes.

    Provider failures never escape as exceptions; they come back as
    FAILED outcomes carrying a category and an advisory message.
    """

    def __init__(self, client: PlantIdClient):
        self._client = client

    def _identified(
        self,
        result: RecognitionResult,
        details: PlantDetails,
        candidates: Optional[List[PlantDetails]] = None,
    ) -> IdentificationOutcome:
        return IdentificationOutcome(
            status=IdentificationStatus.IDENTIFIED,
            details=details,
            candidates=candidates or [],
            form=project_form(details),
            growing_info=generate_growing_info(details),
            advisory=mock_advisory(result.mock_reason) if result.is_mock else None,
            is_mock=result.is_mock,
        )

    async def identify_from_image(self, image: str) -> IdentificationOutcome:
        """
        Identify a plant from a captured or uploaded image.

        Args:
            image: Image as a base64 data URI

        Returns:
            IdentificationOutcome with status IDENTIFIED, NOT_IDENTIFIED or FAILED
        """
        try:
            result = await self._client.identify(image)
        except PlantIdError as e:
            category = classify_failure(e)
            logger.warning(f"Plant identification failed ({category.value}): {e}")
            return _failed(category)

        if result.is_mock:
            logger.info(f"Received example data: {result.mock_reason}")

        if not result.success:
            return _failed(FailureCategory.GENERIC, UNSUCCESSFUL_ADVISORY)

        details = normalize_image_response(result.data or {})
        if details is None:
            logger.info("Identification returned no usable suggestions")
            return IdentificationOutcome(
                status=IdentificationStatus.NOT_IDENTIFIED,
                advisory=NOT_IDENTIFIED_ADVISORY,
                is_mock=result.is_mock,
            )

        logger.info(
            f"Identified {details.scientific_name} as '{details.common_name}' "
            f"(confidence: {details.confidence})"
        )
        return self._identified(result, details)

    async def identify_from_text(self, query: str) -> IdentificationOutcome:
        """
        Search for a plant by name.

        Args:
            query: Free-text species or common name

        Returns:
            IdentificationOutcome whose ``candidates`` lists every match and
            whose ``details`` is the first one
        """
        try:
            result = await self._client.search(query)
        except PlantIdError as e:
            category = classify_failure(e)
            logger.warning(f"Plant search for '{query}' failed ({category.value}): {e}")
            if category is FailureCategory.GENERIC:
                return _failed(category, SEARCH_FAILED_ADVISORY)
            return _failed(category)

        if not result.success:
            return _failed(FailureCategory.GENERIC, SEARCH_FAILED_ADVISORY)

        candidates = normalize_search_response(result.data)
        if not candidates:
            return IdentificationOutcome(
                status=IdentificationStatus.NOT_IDENTIFIED,
                advisory=NO_SEARCH_RESULTS_ADVISORY,
                is_mock=result.is_mock,
            )

        return self._identified(result, candidates[0], candidates)


# Module-level singleton instance
_identification_service: Optional[IdentificationService] = None


def get_identification_service() -> IdentificationService:
    """Get the singleton IdentificationService bound to the Plant.id client."""
    global _identification_service
    if _identification_service is None:
        _identification_service = IdentificationService(get_plant_id_client())
    return _identification_service
