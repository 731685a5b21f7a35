"""
Unit tests for the identification pipeline.

Covers response normalization across schema variants, failure
classification, and IdentificationService outcomes.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from app.models.identification import (
    FailureCategory,
    IdentificationStatus,
    RecognitionResult,
)
from app.services.identification import (
    NO_SEARCH_RESULTS_ADVISORY,
    NOT_IDENTIFIED_ADVISORY,
    SEARCH_FAILED_ADVISORY,
    UNSUCCESSFUL_ADVISORY,
    IdentificationService,
    advisory_for,
    classify_failure,
    normalize_candidate,
    normalize_image_response,
    normalize_search_response,
    resolve_common_names,
)
from app.services.plant_id_client import (
    PlantIdAuthError,
    PlantIdError,
    PlantIdNetworkError,
    PlantIdQuotaError,
    PlantIdRateLimitError,
    PlantIdTimeoutError,
    PlantIdUnavailableError,
)

PEACE_LILY = {
    "name": "Spathiphyllum wallisii",
    "probability": 0.87,
    "details": {
        "common_names": ["Peace Lily", "White Sails"],
        "taxonomy": {"family": "Araceae", "genus": "Spathiphyllum"},
        "description": {"value": "A tropical houseplant with white spathes."},
        "url": "https://en.wikipedia.org/wiki/Spathiphyllum_wallisii",
    },
}


def v3_payload(*suggestions):
    return {"result": {"classification": {"suggestions": list(suggestions)}}}


def make_service(identify=None, search=None):
    client = Mock()
    client.identify = AsyncMock(**identify) if identify else AsyncMock()
    client.search = AsyncMock(**search) if search else AsyncMock()
    return IdentificationService(client)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def test_peace_lily_is_normalized():
    details = normalize_image_response(v3_payload(PEACE_LILY))

    assert details.scientific_name == "Spathiphyllum wallisii"
    assert details.common_name == "Peace Lily"
    assert details.all_common_names == ["Peace Lily", "White Sails"]
    assert details.confidence == 0.87
    assert details.family == "Araceae"
    assert details.genus == "Spathiphyllum"
    assert details.description == "A tropical houseplant with white spathes."
    assert details.wiki_url.endswith("Spathiphyllum_wallisii")
    assert details.common_names_source == "details.common_names"


def test_first_suggestion_is_authoritative():
    second = {"name": "Monstera deliciosa", "probability": 0.99}

    details = normalize_image_response(v3_payload(PEACE_LILY, second))

    assert details.scientific_name == "Spathiphyllum wallisii"


@pytest.mark.parametrize(
    "payload",
    [
        {"result": {"classification": {"suggestions": [PEACE_LILY]}}},
        {"classification": {"suggestions": [PEACE_LILY]}},
        {"suggestions": [PEACE_LILY]},
    ],
)
def test_known_suggestion_locations(payload):
    assert normalize_image_response(payload).scientific_name == "Spathiphyllum wallisii"


def test_empty_suggestions_yield_nothing():
    assert normalize_image_response(v3_payload()) is None
    assert normalize_image_response({}) is None


def test_flat_common_names_take_priority():
    candidate = {
        "name": "Ficus lyrata",
        "common_names": ["Fiddle-leaf fig"],
        "details": {"common_names": ["Banjo fig"]},
    }

    names, source = resolve_common_names(candidate)

    assert names == ["Fiddle-leaf fig"]
    assert source == "common_names"


def test_other_common_names_found_by_key_scan():
    candidate = {
        "name": "Ficus lyrata",
        "details": {"other_common_names": ["Fiddle-leaf fig"]},
    }

    details = normalize_candidate(candidate)

    assert details.common_name == "Fiddle-leaf fig"
    assert details.common_names_source == "details.other_common_names"


def test_key_scan_ignores_non_list_values():
    candidate = {"name": "Ficus lyrata", "details": {"name_authority": "Warb."}}

    assert resolve_common_names(candidate) == ([], None)


def test_missing_common_names_fall_back_to_scientific_name():
    details = normalize_candidate({"name": "Ficus lyrata", "probability": 0.5})

    assert details.common_name == "Ficus lyrata"
    assert details.all_common_names == []
    assert details.family == "Unknown"
    assert details.genus == "Unknown"
    assert details.description == ""


def test_candidate_without_name_is_skipped():
    assert normalize_candidate({"probability": 0.9}) is None


def test_top_level_fields_win_over_details():
    candidate = {
        "name": "Ficus lyrata",
        "description": "Top level text",
        "family": "Moraceae",
        "details": {"description": {"value": "Nested"}, "taxonomy": {"family": "Other"}},
    }

    details = normalize_candidate(candidate)

    assert details.description == "Top level text"
    assert details.family == "Moraceae"


def test_wiki_description_is_used():
    candidate = {"name": "Ficus lyrata", "details": {"wiki_description": {"value": "Wiki text"}}}

    assert normalize_candidate(candidate).description == "Wiki text"


@pytest.mark.parametrize("value", [1.7, -0.1, "high", float("nan"), True])
def test_invalid_confidence_is_dropped_with_warning(value):
    details = normalize_candidate({"name": "Ficus lyrata", "probability": value})

    assert details.confidence is None
    assert len(details.data_quality_warnings) == 1


def test_boundary_confidence_is_kept():
    assert normalize_candidate({"name": "A b", "probability": 0}).confidence == 0.0
    assert normalize_candidate({"name": "A b", "probability": 1}).confidence == 1.0


def test_search_response_keeps_order():
    payload = {
        "suggestions": [
            {"entity_name": "Monstera deliciosa", "details": {"common_names": ["Swiss cheese plant"]}},
            {"entity_name": "Monstera adansonii"},
            {"access_token": "no-name"},
        ]
    }

    candidates = normalize_search_response(payload)

    assert [c.scientific_name for c in candidates] == ["Monstera deliciosa", "Monstera adansonii"]
    assert candidates[1].common_name == "Monstera adansonii"


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "exc,category",
    [
        (PlantIdNetworkError("down"), FailureCategory.NETWORK),
        (PlantIdAuthError("bad key"), FailureCategory.NOT_CONFIGURED),
        (PlantIdRateLimitError("slow down"), FailureCategory.RATE_LIMITED),
        (PlantIdTimeoutError("slow"), FailureCategory.TIMEOUT),
        (PlantIdQuotaError("credits"), FailureCategory.QUOTA_EXCEEDED),
        (PlantIdUnavailableError("503"), FailureCategory.UNAVAILABLE),
        (RuntimeError("Network error: connection reset"), FailureCategory.NETWORK),
        (RuntimeError("Invalid API key"), FailureCategory.NOT_CONFIGURED),
        (RuntimeError("Request timeout after 30s"), FailureCategory.TIMEOUT),
        (RuntimeError("Something else broke"), FailureCategory.GENERIC),
    ],
)
def test_classify_failure(exc, category):
    assert classify_failure(exc) == category


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


def test_identify_from_image_fills_form():
    service = make_service(
        identify={"return_value": RecognitionResult(success=True, data=v3_payload(PEACE_LILY))}
    )

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.status == IdentificationStatus.IDENTIFIED
    assert outcome.form.plant_name == "Peace Lily"
    assert outcome.form.plant_type == "Spathiphyllum wallisii"
    assert outcome.advisory is None
    assert "native_region" in outcome.growing_info


def test_identify_from_image_no_suggestions():
    service = make_service(
        identify={"return_value": RecognitionResult(success=True, data=v3_payload())}
    )

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.status == IdentificationStatus.NOT_IDENTIFIED
    assert outcome.advisory == NOT_IDENTIFIED_ADVISORY
    assert outcome.form is None


def test_identify_from_image_unsuccessful_result():
    service = make_service(identify={"return_value": RecognitionResult(success=False)})

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.status == IdentificationStatus.FAILED
    assert outcome.advisory == UNSUCCESSFUL_ADVISORY


@pytest.mark.parametrize("data", [{}, None])
def test_identify_from_image_empty_body_is_not_identified(data):
    service = make_service(identify={"return_value": RecognitionResult(success=True, data=data)})

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.status == IdentificationStatus.NOT_IDENTIFIED
    assert outcome.advisory == NOT_IDENTIFIED_ADVISORY
    assert outcome.failure is None


def test_identify_from_image_provider_error():
    service = make_service(identify={"side_effect": PlantIdRateLimitError("429")})

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.status == IdentificationStatus.FAILED
    assert outcome.failure == FailureCategory.RATE_LIMITED
    assert outcome.advisory == advisory_for(FailureCategory.RATE_LIMITED)


def test_mock_result_carries_note():
    result = RecognitionResult(
        success=True, data=v3_payload(PEACE_LILY), is_mock=True, mock_reason="no key"
    )
    service = make_service(identify={"return_value": result})

    outcome = asyncio.run(service.identify_from_image("data:image/jpeg;base64,AAAA"))

    assert outcome.is_mock is True
    assert outcome.advisory.startswith("Note: Using example data (no key)")


def test_text_search_lists_candidates():
    data = {
        "suggestions": [
            {"entity_name": "Monstera deliciosa", "details": {"common_names": ["Swiss cheese plant"]}},
            {"entity_name": "Monstera adansonii", "details": {"common_names": ["Monkey mask"]}},
        ]
    }
    service = make_service(search={"return_value": RecognitionResult(success=True, data=data)})

    outcome = asyncio.run(service.identify_from_text("monstera"))

    assert outcome.status == IdentificationStatus.IDENTIFIED
    assert len(outcome.candidates) == 2
    assert outcome.details.scientific_name == "Monstera deliciosa"
    assert outcome.form.plant_name == "Swiss cheese plant"


def test_text_search_without_common_name_marks_type_unknown():
    data = {"suggestions": [{"entity_name": "Monstera adansonii"}]}
    service = make_service(search={"return_value": RecognitionResult(success=True, data=data)})

    outcome = asyncio.run(service.identify_from_text("adansonii"))

    assert outcome.form.plant_name == "Monstera adansonii"
    assert outcome.form.plant_type == "Unknown"


def test_text_search_no_results():
    service = make_service(
        search={"return_value": RecognitionResult(success=True, data={"suggestions": []})}
    )

    outcome = asyncio.run(service.identify_from_text("ficus"))

    assert outcome.status == IdentificationStatus.NOT_IDENTIFIED
    assert outcome.advisory == NO_SEARCH_RESULTS_ADVISORY


def test_text_search_generic_error_uses_search_message():
    service = make_service(search={"side_effect": PlantIdError("HTTP 400")})

    outcome = asyncio.run(service.identify_from_text("ficus"))

    assert outcome.failure == FailureCategory.GENERIC
    assert outcome.advisory == SEARCH_FAILED_ADVISORY
