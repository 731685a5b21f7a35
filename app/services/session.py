"""
Add-plant session for Plant Caretaker.

An AddPlantSession drives one "add plant" flow: capture or upload an
image (or search by name), review the auto-filled form, optionally edit
it by hand, and submit. Its state is a single SessionPhase value:

    idle -> capturing -> identifying -> reviewing -> submitting -> done
                                                 \\-> error

Every identification or search call takes a request token. When a newer
request, a retake, a manual override or a cancellation happens while a
call is in flight, the late response is discarded instead of
overwriting newer state.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Protocol

from app.core.images import ImageValidationError, encode_data_uri, validate_image_upload
from app.models.identification import (
    FailureCategory,
    FormFields,
    IdentificationOutcome,
    IdentificationStatus,
    PlantDetails,
)
from app.models.plant import StoredPlantSummary
from app.services.identification import IdentificationService, advisory_for
from app.services.plant_store import PlantStore
from app.services.storage import PhotoStorageService
from app.services.submission import (
    SAVE_FAILED_MESSAGE,
    PlantValidationError,
    SubmissionError,
    build_plant_record,
    submit_plant,
)

logger = logging.getLogger(__name__)

CAMERA_NOT_READY_MESSAGE = "Camera not initialized. Please try again."
CAPTURE_EMPTY_MESSAGE = "Failed to capture image. Please try again."
CAPTURE_FAILED_MESSAGE = (
    "Could not capture image. Please try again or upload an image instead."
)


class Camera(Protocol):
    """Capability that yields an encoded still image."""

    def get_screenshot(self) -> Optional[str]: ...


class SessionPhase(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    IDENTIFYING = "identifying"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"
    DONE = "done"
    ERROR = "error"


_ANY_ACTIVE = frozenset(
    {
        SessionPhase.IDLE,
        SessionPhase.CAPTURING,
        SessionPhase.IDENTIFYING,
        SessionPhase.REVIEWING,
        SessionPhase.ERROR,
        SessionPhase.DONE,
    }
)

TRANSITIONS: Dict[SessionPhase, FrozenSet[SessionPhase]] = {
    SessionPhase.IDLE: _ANY_ACTIVE | {SessionPhase.SUBMITTING},
    SessionPhase.CAPTURING: frozenset(
        {SessionPhase.IDLE, SessionPhase.IDENTIFYING, SessionPhase.REVIEWING,
         SessionPhase.ERROR, SessionPhase.DONE}
    ),
    SessionPhase.IDENTIFYING: _ANY_ACTIVE - {SessionPhase.CAPTURING},
    SessionPhase.REVIEWING: _ANY_ACTIVE | {SessionPhase.SUBMITTING},
    SessionPhase.ERROR: _ANY_ACTIVE | {SessionPhase.SUBMITTING},
    SessionPhase.SUBMITTING: frozenset({SessionPhase.DONE, SessionPhase.ERROR}),
    SessionPhase.DONE: frozenset(),
}


class SessionStateError(Exception):
    """Raised when an action is not allowed in the current phase."""

    pass


class AddPlantSession:
    """
    State holder for a single add-plant flow.

    Args:
        identification: Service used for image identification and name search
        store: Plant store records are submitted to
        on_add_plant: Called with the summary after a successful save
        on_cancel: Called with no arguments when the flow is cancelled
        photo_storage: Optional photo storage for data-URI images
        max_upload_size: Largest accepted upload in bytes
    """

    def __init__(
        self,
        identification: IdentificationService,
        store: PlantStore,
        on_add_plant: Callable[[StoredPlantSummary], None],
        on_cancel: Callable[[], None],
        photo_storage: Optional[PhotoStorageService] = None,
        max_upload_size: int = 5 * 1024 * 1024,
    ):
        self._identification = identification
        self._store = store
        self._on_add_plant = on_add_plant
        self._on_cancel = on_cancel
        self._photo_storage = photo_storage
        self._max_upload_size = max_upload_size

        self.phase = SessionPhase.IDLE
        self.form = FormFields()
        self.details: Optional[PlantDetails] = None
        self.search_results: List[PlantDetails] = []
        self.captured_image: Optional[str] = None
        self.advisory: Optional[str] = None
        self.is_mock = False
        self._request_token = 0

    # ------------------------------------------------------------------
    # Phase handling
    # ------------------------------------------------------------------

    def _transition(self, target: SessionPhase) -> None:
        if target not in TRANSITIONS[self.phase]:
            raise SessionStateError(
                f"Cannot move from {self.phase.value} to {target.value}"
            )
        self.phase = target

    def _fail(self, message: str) -> None:
        self.advisory = message
        self._transition(SessionPhase.ERROR)

    def _invalidate_requests(self) -> int:
        self._request_token += 1
        return self._request_token

    def _resting_phase(self) -> SessionPhase:
        if self.details is not None or self.captured_image or self.form.plant_name:
            return SessionPhase.REVIEWING
        return SessionPhase.IDLE

    @property
    def is_busy(self) -> bool:
        return self.phase in (SessionPhase.IDENTIFYING, SessionPhase.SUBMITTING)

    # ------------------------------------------------------------------
    # Capture / input
    # ------------------------------------------------------------------

    def open_camera(self) -> None:
        self.advisory = None
        self._transition(SessionPhase.CAPTURING)

    def close_camera(self) -> None:
        self._transition(self._resting_phase())

    async def capture(self, camera: Optional[Camera]) -> Optional[IdentificationOutcome]:
        """Grab a still from the camera and identify it."""
        if camera is None:
            self._fail(CAMERA_NOT_READY_MESSAGE)
            return None

        try:
            image = camera.get_screenshot()
        except Exception as e:
            logger.error(f"Camera capture failed: {e}", exc_info=True)
            self._fail(CAPTURE_FAILED_MESSAGE)
            return None

        if not image:
            self._fail(CAPTURE_EMPTY_MESSAGE)
            return None

        return await self.identify_image(image)

    async def upload_file(
        self, content: bytes, content_type: Optional[str]
    ) -> Optional[IdentificationOutcome]:
        """
        Validate an uploaded file and identify it.

        Invalid files are rejected before any network call.
        """
        try:
            validate_image_upload(content_type, len(content), max_size=self._max_upload_size)
        except ImageValidationError as e:
            self._fail(str(e))
            return None

        return await self.identify_image(encode_data_uri(content, content_type))

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    def _begin_request(self) -> int:
        self._transition(SessionPhase.IDENTIFYING)
        self.advisory = None
        return self._invalidate_requests()

    def _is_stale(self, token: int, what: str) -> bool:
        if token != self._request_token:
            logger.info(f"Discarding stale {what} response (token {token}, current {self._request_token})")
            return True
        return False

    async def _run(self, call: Awaitable[IdentificationOutcome], what: str) -> IdentificationOutcome:
        try:
            return await call
        except Exception as e:
            logger.error(f"Unexpected {what} error: {e}", exc_info=True)
            return IdentificationOutcome(
                status=IdentificationStatus.FAILED,
                failure=FailureCategory.GENERIC,
                advisory=advisory_for(FailureCategory.GENERIC),
            )

    def _fill_form(self, outcome: IdentificationOutcome) -> None:
        if outcome.form is None:
            return
        self.form.plant_name = outcome.form.plant_name
        self.form.plant_type = outcome.form.plant_type
        if outcome.form.notes:
            self.form.notes = outcome.form.notes

    async def identify_image(self, image: str) -> IdentificationOutcome:
        """
        Identify a captured or uploaded image and auto-fill the form.

        Returns:
            The outcome; status STALE when a newer action superseded it
        """
        token = self._begin_request()
        self.captured_image = image
        outcome = await self._run(self._identification.identify_from_image(image), "identification")

        if self._is_stale(token, "identification"):
            return outcome.model_copy(update={"status": IdentificationStatus.STALE})

        self.is_mock = outcome.is_mock
        self.advisory = outcome.advisory
        if outcome.status is IdentificationStatus.IDENTIFIED:
            self.details = outcome.details
            self._fill_form(outcome)
            self._transition(SessionPhase.REVIEWING)
        elif outcome.status is IdentificationStatus.NOT_IDENTIFIED:
            self._transition(SessionPhase.REVIEWING)
        else:
            self._transition(SessionPhase.ERROR)
        return outcome

    async def search(self, query: str) -> Optional[IdentificationOutcome]:
        """
        Search by plant name and auto-fill the form from the top match.

        A blank query is ignored. With no matches the form is left
        untouched and a "no plants found" advisory is shown.
        """
        if not query or not query.strip():
            return None

        token = self._begin_request()
        outcome = await self._run(
            self._identification.identify_from_text(query.strip()), "search"
        )

        if self._is_stale(token, "search"):
            return outcome.model_copy(update={"status": IdentificationStatus.STALE})

        self.is_mock = outcome.is_mock
        self.advisory = outcome.advisory
        if outcome.status is IdentificationStatus.IDENTIFIED:
            self.search_results = list(outcome.candidates)
            self.details = outcome.details
            self._fill_form(outcome)
            self._transition(SessionPhase.REVIEWING)
        elif outcome.status is IdentificationStatus.NOT_IDENTIFIED:
            self.search_results = []
            self._transition(self._resting_phase())
        else:
            self.search_results = []
            self._transition(SessionPhase.ERROR)
        return outcome

    # ------------------------------------------------------------------
    # Manual override
    # ------------------------------------------------------------------

    def retake(self) -> None:
        """Drop the image and identification result and start over."""
        self._invalidate_requests()
        self.captured_image = None
        self.details = None
        self.search_results = []
        self.advisory = None
        self.is_mock = False
        self._transition(SessionPhase.IDLE)

    def enter_manually(
        self,
        plant_name: Optional[str] = None,
        plant_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Bypass identification and supply the fields directly."""
        self._invalidate_requests()
        self.details = None
        self.search_results = []
        self.advisory = None
        self.is_mock = False
        self.update_fields(plant_name=plant_name, plant_type=plant_type, notes=notes)
        self._transition(SessionPhase.REVIEWING)

    def update_fields(
        self,
        plant_name: Optional[str] = None,
        plant_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        if self.phase in (SessionPhase.SUBMITTING, SessionPhase.DONE):
            raise SessionStateError(f"Cannot edit the form while {self.phase.value}")
        if plant_name is not None:
            self.form.plant_name = plant_name
        if plant_type is not None:
            self.form.plant_type = plant_type
        if notes is not None:
            self.form.notes = notes

    def dismiss_advisory(self) -> None:
        self.advisory = None
        if self.phase is SessionPhase.ERROR:
            self._transition(self._resting_phase())

    # ------------------------------------------------------------------
    # Submission / cancellation
    # ------------------------------------------------------------------

    async def submit(self) -> Optional[StoredPlantSummary]:
        """
        Save the plant and hand the summary to ``on_add_plant``.

        On failure the form is preserved and an advisory is set so the
        submission can be retried.
        """
        if SessionPhase.SUBMITTING not in TRANSITIONS[self.phase]:
            raise SessionStateError(f"Cannot submit while {self.phase.value}")

        try:
            record = build_plant_record(self.form, self.details, self.captured_image)
        except PlantValidationError as e:
            self._fail(str(e))
            return None

        self._transition(SessionPhase.SUBMITTING)
        self.advisory = None
        try:
            _, summary = await asyncio.to_thread(
                submit_plant, self._store, record, self._photo_storage
            )
        except SubmissionError as e:
            self._fail(str(e))
            return None
        except Exception as e:
            logger.error(f"Unexpected save error: {e}", exc_info=True)
            self._fail(SAVE_FAILED_MESSAGE)
            return None

        self._transition(SessionPhase.DONE)
        self._on_add_plant(summary)
        return summary

    def cancel(self) -> None:
        if self.phase is SessionPhase.SUBMITTING:
            raise SessionStateError("Cannot cancel while the plant is being saved")
        self._invalidate_requests()
        self._transition(SessionPhase.DONE)
        self._on_cancel()
