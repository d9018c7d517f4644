"""
Capture-and-verify workflow for the Face ID capture client.

Sequences device, capture, packaging, submission and normalization for one
route (enrollment or authentication) and owns the workflow state:

    Idle --capture--> Capturing --frames ready--> Submitting --> Succeeded | Failed
    Succeeded | Failed --retry--> Idle

Authentication submits as soon as a burst is captured. Enrollment submits
once a burst exists and the identity form has both names; otherwise the
frames are kept and ``submit()`` sends them later.

Only one capture or submission runs at a time. Every failure ends in the
Failed state with the error recorded; nothing is retried automatically.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from core.errors import DeviceUnavailable, FaceIDError, WorkflowBusy
from core.outcome import Route, VerificationOutcome
from core.result_normalizer import ResultNormalizer, get_result_normalizer
from frontend.api_client import VerificationClient, get_verification_client
from frontend.components.burst_capture import BurstCapturer, BurstOptions, FrameSet
from frontend.components.device_manager import CaptureDevice, DeviceManager
from frontend.components.enrollment_form import IdentityForm
from frontend.components.image_packager import ImagePackager, PackagingMode, get_image_packager

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    CAPTURING = "capturing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


BUSY_STATES = (WorkflowState.INITIALIZING, WorkflowState.CAPTURING, WorkflowState.SUBMITTING)


@dataclass(frozen=True)
class WorkflowSnapshot:
    """Read-only view handed to the presentation layer."""
    workflow_state: WorkflowState
    last_outcome: Optional[VerificationOutcome] = None
    error: Optional[FaceIDError] = None
    frames_captured: int = 0
    countdown: Optional[int] = None

    @property
    def error_code(self) -> Optional[str]:
        """Machine-readable code of the failure, if the workflow failed."""
        if self.error is not None:
            return self.error.code
        if self.last_outcome is not None and not self.last_outcome.succeeded:
            return self.last_outcome.code.value
        return None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is not None:
            return self.error.message
        if self.last_outcome is not None and not self.last_outcome.succeeded:
            return self.last_outcome.message
        return None


SnapshotListener = Callable[[WorkflowSnapshot], None]


class Orchestrator:
    """
    Runs the enrollment or authentication workflow of one session.

    The DeviceManager is injected and owns the camera; the orchestrator only
    asks it for streams.

    Args:
        route: Route this workflow submits to.
        device_manager: Session camera owner.
        capturer: Burst capturer.
        packager: Image packager.
        client: Verification client.
        normalizer: Result normalizer.
        form: Identity form (required for enrollment).
        burst_options: Burst parameters; defaults depend on the route.
        packaging_mode: Frames to send (authentication always sends one).
    """

    def __init__(
        self,
        route: Route,
        device_manager: DeviceManager,
        capturer: BurstCapturer,
        packager: ImagePackager,
        client: VerificationClient,
        normalizer: ResultNormalizer,
        form: Optional[IdentityForm] = None,
        burst_options: Optional[BurstOptions] = None,
        packaging_mode: PackagingMode = PackagingMode.SINGLE_FRAME,
    ):
        if route == Route.ENROLL and form is None:
            raise ValueError("Enrollment requires an identity form")

        self.route = route
        self.device_manager = device_manager
        self.capturer = capturer
        self.packager = packager
        self.client = client
        self.normalizer = normalizer
        self.form = form

        if burst_options is None:
            if route == Route.ENROLL:
                burst_options = BurstOptions.for_enrollment()
            else:
                burst_options = BurstOptions.for_authentication()
        self.burst_options = burst_options
        self.packaging_mode = PackagingMode.SINGLE_FRAME if route == Route.AUTHENTICATE else packaging_mode

        self._state = WorkflowState.IDLE
        self._outcome: Optional[VerificationOutcome] = None
        self._error: Optional[FaceIDError] = None
        self._frames: FrameSet = FrameSet()
        self._countdown: Optional[int] = None
        self._devices: List[CaptureDevice] = []
        self._listeners: List[SnapshotListener] = []

    # ==================== Read-only state ====================

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def last_outcome(self) -> Optional[VerificationOutcome]:
        return self._outcome

    @property
    def error(self) -> Optional[FaceIDError]:
        return self._error

    @property
    def frames(self) -> FrameSet:
        return self._frames

    @property
    def devices(self) -> List[CaptureDevice]:
        return list(self._devices)

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            workflow_state=self._state,
            last_outcome=self._outcome,
            error=self._error,
            frames_captured=len(self._frames),
            countdown=self._countdown,
        )

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a callback receiving a snapshot after every change."""
        self._listeners.append(listener)

    # ==================== Commands ====================

    async def start(self) -> WorkflowSnapshot:
        """List cameras and open the first stream."""
        self._ensure_not_busy()
        self._set_state(WorkflowState.INITIALIZING)

        with self._fail_on_error("opening the camera"):
            self._devices = self.device_manager.list_devices()
            self.device_manager.acquire_stream()
            self._set_state(WorkflowState.IDLE)

        return self.snapshot()

    async def select_device(self, device_id: str) -> WorkflowSnapshot:
        """Switch the camera. On failure no camera is open."""
        self._ensure_not_busy()

        with self._fail_on_error("switching camera"):
            self.device_manager.switch_device(device_id)
            self._error = None
            self._set_state(WorkflowState.IDLE)

        return self.snapshot()

    async def capture(self) -> WorkflowSnapshot:
        """
        Capture a burst and, when ready, submit it.

        Raises:
            WorkflowBusy: If a capture or submission is already running.
        """
        self._ensure_not_busy()

        self._outcome = None
        self._error = None
        self._frames = FrameSet()
        self._set_state(WorkflowState.CAPTURING)

        stream = self.device_manager.active_stream
        if stream is None:
            self._fail(DeviceUnavailable("Camera is not ready"))
            return self.snapshot()

        frames = None
        with self._fail_on_error("capturing"):
            frames = await self.capturer.capture(stream, self.burst_options, self._on_countdown)
        if frames is None:
            return self.snapshot()

        self._countdown = None
        self._frames = frames

        if self._ready_to_submit():
            await self._submit()
        else:
            logger.info("Frames captured; waiting for first and last name before submitting")
            self._set_state(WorkflowState.IDLE)

        return self.snapshot()

    async def submit(self) -> WorkflowSnapshot:
        """
        Submit frames held back by an incomplete enrollment form.

        Only acts in Idle. Does nothing if no frames exist, the form is
        incomplete, or the last submission already finished; a finished
        workflow leaves its terminal state through ``retry()`` or ``capture()``.
        """
        self._ensure_not_busy()
        if self._state != WorkflowState.IDLE:
            logger.info(f"Submission skipped: workflow already {self._state.value}")
            return self.snapshot()
        if not self._ready_to_submit():
            logger.info("Submission skipped: frames or required fields missing")
            return self.snapshot()

        await self._submit()
        return self.snapshot()

    async def retry(self) -> WorkflowSnapshot:
        """
        Reset to Idle with a freshly opened stream.

        Safe to call repeatedly from Idle, Succeeded or Failed.
        """
        self._ensure_not_busy()

        self._outcome = None
        self._error = None
        self._frames = FrameSet()
        self._countdown = None

        device_id = self.device_manager.selected_device_id
        self.device_manager.release()
        with self._fail_on_error("reopening the camera"):
            self.device_manager.acquire_stream(device_id)
            self._set_state(WorkflowState.IDLE)

        return self.snapshot()

    def close(self) -> None:
        """Release the camera."""
        self.device_manager.release()

    # ==================== Internals ====================

    def _ready_to_submit(self) -> bool:
        if self._frames.is_empty:
            return False
        if self.route == Route.AUTHENTICATE:
            return True
        return self.form.required_fields_present and self.form.is_valid

    async def _submit(self) -> None:
        self._set_state(WorkflowState.SUBMITTING)

        outcome = None
        with self._fail_on_error(f"submitting {self.route.value}"):
            metadata = self.form.to_metadata() if self.route == Route.ENROLL else None
            payload = await self.packager.package(
                self._frames, self.route, self.packaging_mode, metadata
            )
            raw = await self.client.submit(payload, self.route)
            outcome = self.normalizer.normalize(raw, self.route)
        if outcome is None:
            return

        self._outcome = outcome
        if outcome.succeeded:
            logger.info(f"{self.route.value} succeeded: {outcome.message}")
            self._set_state(WorkflowState.SUCCEEDED)
        else:
            logger.info(f"{self.route.value} failed with {outcome.code.value}: {outcome.message}")
            self._set_state(WorkflowState.FAILED)

    @contextmanager
    def _fail_on_error(self, action: str) -> Iterator[None]:
        """
        Move the workflow to Failed on any exception raised inside the block.

        FaceIDError and other exceptions are recorded and not re-raised.
        Cancellation and interrupts are recorded and then re-raised.
        """
        try:
            yield
        except FaceIDError as e:
            self._fail(e)
        except Exception as e:
            logger.exception(f"Unexpected failure while {action}")
            self._fail(FaceIDError(str(e) or None))
        except BaseException:
            self._fail(FaceIDError(f"Cancelled while {action}"))
            raise

    def _fail(self, error: FaceIDError) -> None:
        logger.warning(f"{self.route.value} workflow failed [{error.code}]: {error.message}")
        self._error = error
        self._countdown = None
        self._set_state(WorkflowState.FAILED)

    def _ensure_not_busy(self) -> None:
        if self._state in BUSY_STATES:
            raise WorkflowBusy(f"Cannot start a new action while {self._state.value}")

    def _on_countdown(self, remaining: int) -> None:
        self._countdown = remaining
        self._notify()

    def _set_state(self, state: WorkflowState) -> None:
        if state != self._state:
            logger.debug(f"{self.route.value}: {self._state.value} -> {state.value}")
        self._state = state
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)


def build_orchestrator(
    route: Route,
    config: Optional[Dict[str, Any]] = None,
    form: Optional[IdentityForm] = None,
    device_manager: Optional[DeviceManager] = None,
) -> Orchestrator:
    """
    Assemble an orchestrator from configuration.

    Args:
        route: Workflow route.
        config: Full configuration dict. If None, loads config.yaml.
        form: Identity form for enrollment (created empty if missing).
        device_manager: Camera owner (created from config if missing).
    """
    if config is None:
        from core.config import get_config
        config = get_config()

    capture_config = config.get("capture", {})
    packaging_config = config.get("packaging", {})

    if route == Route.ENROLL:
        form = form or IdentityForm()
        burst_options = BurstOptions.for_enrollment(capture_config)
        packaging_mode = PackagingMode(packaging_config.get("enrollment_mode", "single_frame"))
    else:
        burst_options = BurstOptions.for_authentication(capture_config)
        packaging_mode = PackagingMode.SINGLE_FRAME

    return Orchestrator(
        route=route,
        device_manager=device_manager or DeviceManager(config.get("camera", {})),
        capturer=BurstCapturer(capture_config),
        packager=get_image_packager(packaging_config),
        client=get_verification_client(config.get("verification", {})),
        normalizer=get_result_normalizer(config.get("normalizer", {})),
        form=form,
        burst_options=burst_options,
        packaging_mode=packaging_mode,
    )
