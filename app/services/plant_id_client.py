"""
Async client for the Plant.id v3 recognition API.

This module wraps the two provider calls the add-plant flow needs:
image identification and knowledge-base name search. Transport and HTTP
failures are translated into a small exception hierarchy so callers can
map them to user-facing advisories.

When no usable API key is configured the client can serve example data
instead (flagged with ``is_mock``), which keeps the rest of the flow
usable in development.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import get_settings
from app.models.identification import RecognitionResult

logger = logging.getLogger(__name__)

MIN_API_KEY_LENGTH = 20
PLACEHOLDER_API_KEYS = ("your_actual_api_key_here", "your_plant_id_api_key_here")
MOCK_REASON_NO_KEY = "Plant.id API key not configured"


class PlantIdError(Exception):
    """Base exception for Plant.id failures."""

    pass


class PlantIdNetworkError(PlantIdError):
    """Raised when Plant.id cannot be reached."""

    pass


class PlantIdAuthError(PlantIdError):
    """Raised when the API key is missing, invalid or lacks permission."""

    pass


class PlantIdRateLimitError(PlantIdError):
    """Raised on HTTP 429."""

    pass


class PlantIdTimeoutError(PlantIdError):
    """Raised when a request exceeds the configured timeout."""

    pass


class PlantIdQuotaError(PlantIdError):
    """Raised when the account's credits are exhausted (HTTP 402)."""

    pass


class PlantIdUnavailableError(PlantIdError):
    """Raised on HTTP 5xx responses."""

    pass


# Example payloads, shaped like real Plant.id v3 responses
MOCK_PLANTS: List[Dict[str, Any]] = [
    {
        "name": "Spathiphyllum wallisii",
        "probability": 0.91,
        "details": {
            "common_names": ["Peace Lily", "White Sails"],
            "url": "https://en.wikipedia.org/wiki/Spathiphyllum_wallisii",
            "description": {
                "value": "Spathiphyllum wallisii is a species of flowering plant in "
                "the family Araceae, native to tropical regions of the Americas. "
                "It is grown as a houseplant for its glossy leaves and white spathes."
            },
            "taxonomy": {
                "class": "Liliopsida",
                "order": "Alismatales",
                "family": "Araceae",
                "genus": "Spathiphyllum",
            },
        },
    },
    {
        "name": "Monstera deliciosa",
        "probability": 0.84,
        "details": {
            "common_names": ["Swiss cheese plant", "Split-leaf philodendron"],
            "url": "https://en.wikipedia.org/wiki/Monstera_deliciosa",
            "description": {
                "value": "Monstera deliciosa is a species of flowering plant native "
                "to tropical forests of southern Mexico, south to Panama."
            },
            "taxonomy": {
                "class": "Liliopsida",
                "order": "Alismatales",
                "family": "Araceae",
                "genus": "Monstera",
            },
        },
    },
    {
        "name": "Dracaena trifasciata",
        "probability": 0.77,
        "details": {
            "common_names": ["Snake plant", "Mother-in-law's tongue"],
            "url": "https://en.wikipedia.org/wiki/Dracaena_trifasciata",
            "description": {
                "value": "Dracaena trifasciata is a species of flowering plant in the "
                "family Asparagaceae, native to tropical West Africa."
            },
            "taxonomy": {
                "class": "Liliopsida",
                "order": "Asparagales",
                "family": "Asparagaceae",
                "genus": "Dracaena",
            },
        },
    },
]


def mock_identification_payload() -> Dict[str, Any]:
    """Example v3 identification response with ranked suggestions."""
    return {
        "access_token": "mock",
        "status": "COMPLETED",
        "result": {
            "is_plant": {"binary": True, "probability": 0.99},
            "classification": {"suggestions": copy.deepcopy(MOCK_PLANTS)},
        },
    }


def mock_search_payload(query: str) -> Dict[str, Any]:
    """Example name-search response filtered by ``query``."""
    needle = query.strip().lower()
    suggestions = []
    for plant in MOCK_PLANTS:
        names = [plant["name"], *plant["details"]["common_names"]]
        if any(needle in name.lower() for name in names):
            suggestions.append(
                {
                    "entity_name": plant["name"],
                    "access_token": f"mock-{plant['name'].lower().replace(' ', '-')}",
                    "details": copy.deepcopy(plant["details"]),
                }
            )
    return {"suggestions": suggestions}


def is_usable_api_key(api_key: Optional[str]) -> bool:
    """Reject empty, placeholder and obviously truncated keys."""
    if not api_key:
        return False
    if api_key in PLACEHOLDER_API_KEYS:
        return False
    return len(api_key) >= MIN_API_KEY_LENGTH


class PlantIdClient:
    """
    Thin async wrapper around the Plant.id v3 REST API.

    Example:
        >>> client = get_plant_id_client()
        >>> result = await client.identify("data:image/jpeg;base64,...")
        >>> result.data["result"]["classification"]["suggestions"][0]["name"]
        'Spathiphyllum wallisii'
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://plant.id/api/v3",
        timeout: float = 30.0,
        language: str = "en",
        details: Optional[List[str]] = None,
        search_limit: int = 5,
        mock_fallback: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._language = language
        self._details = details or ["common_names", "url", "description", "taxonomy"]
        self._search_limit = search_limit
        self._mock_fallback = mock_fallback
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return is_usable_api_key(self._api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    "Api-Key": self._api_key,
                    "Content-Type": "application/json",
                    "User-Agent": "Plant-Caretaker/1.0",
                },
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _mock_reason(self) -> Optional[str]:
        """Return why example data should be served, or raise if it must not be."""
        if self.is_configured:
            return None
        if self._mock_fallback:
            return MOCK_REASON_NO_KEY
        raise PlantIdAuthError(
            "Plant identification requires API key configuration"
        )

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Send one request and decode its JSON body.

        Raises:
            PlantIdError: Classified by transport failure or status code
        """
        client = self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Plant.id request timed out: {method} {url}")
            raise PlantIdTimeoutError(f"Plant.id request timeout after {self._timeout}s") from e
        except httpx.TransportError as e:
            logger.warning(f"Plant.id unreachable: {method} {url}: {e}")
            raise PlantIdNetworkError(f"Network error: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise PlantIdAuthError(f"Invalid API key (HTTP {status})")
        if status == 402:
            raise PlantIdQuotaError("Plant.id API quota exceeded")
        if status == 429:
            raise PlantIdRateLimitError("Too many requests to Plant.id")
        if status >= 500:
            raise PlantIdUnavailableError(
                f"Plant.id is temporarily unavailable (HTTP {status})"
            )
        if status >= 400:
            raise PlantIdError(f"Plant.id rejected the request (HTTP {status}): {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise PlantIdError("Plant.id returned a malformed JSON body") from e
        if not isinstance(body, dict):
            raise PlantIdError(f"Plant.id returned an unexpected body ({type(body).__name__})")
        return body

    def _detail_params(self) -> Dict[str, str]:
        return {"details": ",".join(self._details), "language": self._language}

    async def identify(self, image: str) -> RecognitionResult:
        """
        Identify a plant from a base64 data URI.

        Args:
            image: Captured or uploaded image as a data URI

        Returns:
            RecognitionResult whose data holds the raw v3 response
            (``result.classification.suggestions``)

        Raises:
            PlantIdError: On transport or HTTP failure
        """
        mock_reason = self._mock_reason()
        if mock_reason:
            logger.info(f"Serving example identification data ({mock_reason})")
            return RecognitionResult(
                success=True,
                data=mock_identification_payload(),
                is_mock=True,
                mock_reason=mock_reason,
            )

        logger.info(f"Sending identification request to Plant.id ({len(image)} chars of image data)")
        data = await self._request(
            "POST",
            "/identification",
            params=self._detail_params(),
            json={"images": [image], "similar_images": True},
        )
        return RecognitionResult(success=True, data=data)

    async def search(self, name: str) -> RecognitionResult:
        """
        Search the Plant.id knowledge base by plant name.

        Each matched entity is expanded with its detail record so the
        result carries ``suggestions[]`` entries shaped like
        ``{"entity_name", "access_token", "matched_in", "details"}``.

        Raises:
            PlantIdError: On transport or HTTP failure
        """
        mock_reason = self._mock_reason()
        if mock_reason:
            logger.info(f"Serving example search data for '{name}' ({mock_reason})")
            return RecognitionResult(
                success=True,
                data=mock_search_payload(name),
                is_mock=True,
                mock_reason=mock_reason,
            )

        data = await self._request(
            "GET",
            "/kb/plants/name_search",
            params={"q": name, "limit": self._search_limit, "language": self._language},
        )
        entities = (data or {}).get("entities") or []

        suggestions = []
        for entity in entities[: self._search_limit]:
            suggestion = {
                "entity_name": entity.get("entity_name"),
                "access_token": entity.get("access_token"),
                "matched_in": entity.get("matched_in"),
                "details": {},
            }
            token = entity.get("access_token")
            if token:
                suggestion["details"] = await self._request(
                    "GET", f"/kb/plants/{token}", params=self._detail_params()
                )
            suggestions.append(suggestion)

        logger.info(f"Plant.id name search '{name}' matched {len(suggestions)} plants")
        return RecognitionResult(success=True, data={"suggestions": suggestions})


# Module-level singleton instance
_plant_id_client: Optional[PlantIdClient] = None


def get_plant_id_client() -> PlantIdClient:
    """
    Get the singleton PlantIdClient configured from settings.

    Returns:
        PlantIdClient instance
    """
    global _plant_id_client
    if _plant_id_client is None:
        settings = get_settings()
        _plant_id_client = PlantIdClient(
            api_key=settings.plant_id_api_key,
            base_url=settings.plant_id_base_url,
            timeout=settings.plant_id_timeout,
            language=settings.plant_id_language,
            details=settings.plant_id_details,
            search_limit=settings.plant_id_search_limit,
            mock_fallback=settings.plant_id_mock_fallback,
        )
        if not _plant_id_client.is_configured:
            logger.warning(
                "PLANT_ID_API_KEY is missing or invalid; identification will "
                + ("use example data" if settings.plant_id_mock_fallback else "be unavailable")
            )
    return _plant_id_client


async def close_plant_id_client() -> None:
    """Close the singleton client (called on application shutdown)."""
    global _plant_id_client
    if _plant_id_client is not None:
        await _plant_id_client.aclose()
        _plant_id_client = None
