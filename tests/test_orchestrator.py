"""
Tests for the capture-and-verify Orchestrator

This test suite verifies:
- End-to-end enrollment and authentication against a simulated backend
- Failure states (spoofing, timeout, camera, interrupted capture)
- Enrollment gating on the identity form
- Busy rejection, retry and device switching

Run with: pytest tests/test_orchestrator.py -v
"""

import asyncio

import httpx
import pytest

from core.errors import WorkflowBusy
from core.outcome import OutcomeCode, Route
from core.result_normalizer import ResultNormalizer
from frontend.api_client import VerificationClient
from frontend.components.burst_capture import BurstCapturer, BurstOptions
from frontend.components.device_manager import DeviceManager
from frontend.components.enrollment_form import IdentityForm
from frontend.components.image_packager import ImagePackager, PackagingMode
from frontend.orchestrator import Orchestrator, WorkflowState, build_orchestrator

VERIFICATION = {
    "base_url": "http://backend.test",
    "enroll_timeout_sec": 5.0,
    "authenticate_timeout_sec": 5.0,
}

ENROLL_OK = {
    "code": 0,
    "message": "ok",
    "anti_spoofing": {"is_real": True, "antispoof_score": 0.98, "confidence": 0.95},
}


def respond(body, status=200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, json=body)

    handler.requests = requests
    return handler


def make_orchestrator(
    route,
    device_manager,
    handler,
    sleep,
    form=None,
    verification=None,
    mode=PackagingMode.SINGLE_FRAME,
):
    client = VerificationClient(verification or VERIFICATION, transport=httpx.MockTransport(handler))
    return Orchestrator(
        route=route,
        device_manager=device_manager,
        capturer=BurstCapturer(sleep=sleep),
        packager=ImagePackager(),
        client=client,
        normalizer=ResultNormalizer({"match_threshold": 0.70}),
        form=form,
        burst_options=BurstOptions(frame_count=6, inter_frame_delay_ms=50,
                                   pre_roll_seconds=3 if route == Route.ENROLL else None),
        packaging_mode=mode,
    )


class TestEnrollment:
    """Enrollment workflow."""

    @pytest.mark.asyncio
    async def test_enrollment_succeeds(self, device_manager, no_sleep):
        handler = respond(ENROLL_OK)
        form = IdentityForm(firstName="Jane", lastName="Doe")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, handler, no_sleep, form)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.SUCCEEDED
        assert snapshot.last_outcome.code == OutcomeCode.SUCCESS
        assert snapshot.last_outcome.anti_spoofing.antispoof_score == 0.98
        assert snapshot.error is None
        assert len(handler.requests) == 1
        body = handler.requests[0].read()
        assert b'name="firstName"' in body
        assert body.count(b'name="image"') == 1

    @pytest.mark.asyncio
    async def test_countdown_reported(self, device_manager, no_sleep):
        form = IdentityForm(firstName="Jane", lastName="Doe")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, respond(ENROLL_OK), no_sleep, form)
        countdowns = []
        orchestrator.add_listener(lambda s: countdowns.append(s.countdown) if s.countdown else None)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert countdowns == [3, 2, 1]
        assert snapshot.countdown is None

    @pytest.mark.asyncio
    async def test_multi_frame_enrollment(self, device_manager, no_sleep):
        handler = respond(ENROLL_OK)
        form = IdentityForm(firstName="Jane", lastName="Doe")
        orchestrator = make_orchestrator(
            Route.ENROLL, device_manager, handler, no_sleep, form, mode=PackagingMode.MULTI_FRAME
        )

        await orchestrator.start()
        await orchestrator.capture()

        assert handler.requests[0].read().count(b'name="images"') == 6

    @pytest.mark.asyncio
    async def test_incomplete_form_holds_frames(self, device_manager, no_sleep):
        handler = respond(ENROLL_OK)
        form = IdentityForm(firstName="Jane")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, handler, no_sleep, form)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.IDLE
        assert snapshot.frames_captured == 6
        assert handler.requests == []

        # Still incomplete: nothing is sent
        await orchestrator.submit()
        assert handler.requests == []

        form.update(lastName="Doe")
        snapshot = await orchestrator.submit()

        assert snapshot.workflow_state == WorkflowState.SUCCEEDED
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_invalid_email_blocks_submission(self, device_manager, no_sleep):
        handler = respond(ENROLL_OK)
        form = IdentityForm(firstName="Jane", lastName="Doe", email="not-an-email")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, handler, no_sleep, form)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.IDLE
        assert handler.requests == []

    def test_enrollment_requires_form(self, device_manager, no_sleep):
        with pytest.raises(ValueError):
            make_orchestrator(Route.ENROLL, device_manager, respond(ENROLL_OK), no_sleep)


class TestAuthentication:
    """Authentication workflow."""

    @pytest.mark.asyncio
    async def test_authentication_succeeds(self, device_manager, no_sleep):
        handler = respond({
            "code": 0,
            "message": "Welcome",
            "match": {"id": "usr_1", "score": 0.9, "metadata": {"firstName": "Jane", "lastName": "Doe"}},
        })
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, no_sleep)
        states = []
        orchestrator.add_listener(lambda s: states.append(s.workflow_state))

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.SUCCEEDED
        assert snapshot.last_outcome.match.display_name == "Jane Doe"
        assert states == [
            WorkflowState.INITIALIZING,
            WorkflowState.IDLE,
            WorkflowState.CAPTURING,
            WorkflowState.SUBMITTING,
            WorkflowState.SUCCEEDED,
        ]

    @pytest.mark.asyncio
    async def test_spoofing_detected(self, device_manager, no_sleep):
        handler = respond({"code": 4, "message": "spoof detected"})
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, no_sleep)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.last_outcome.match is None
        assert snapshot.error_code == "SPOOFING_DETECTED"
        assert snapshot.error_message == "spoof detected"

    @pytest.mark.asyncio
    async def test_below_threshold_fails(self, device_manager, no_sleep):
        handler = respond({"code": 0, "message": "ok", "match": {"id": "u", "score": 0.69}})
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, no_sleep)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "BELOW_THRESHOLD"

    @pytest.mark.asyncio
    async def test_timeout_fails(self, device_manager, no_sleep):
        async def slow(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json={"code": 0})

        verification = dict(VERIFICATION, authenticate_timeout_sec=0.05)
        orchestrator = make_orchestrator(
            Route.AUTHENTICATE, device_manager, slow, no_sleep, verification=verification
        )

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "TIMEOUT"
        assert snapshot.last_outcome is None

    @pytest.mark.asyncio
    async def test_server_error_fails(self, device_manager, no_sleep):
        orchestrator = make_orchestrator(
            Route.AUTHENTICATE, device_manager, respond({"message": "down"}, status=503), no_sleep
        )

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.error_code == "BACKEND_REJECTED"

    @pytest.mark.asyncio
    async def test_unexpected_exception_fails(self, device_manager, no_sleep):
        def broken(request):
            raise RuntimeError("transport bug")

        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, broken, no_sleep)

        await orchestrator.start()
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "UNEXPECTED_ERROR"
        assert snapshot.error_message == "transport bug"


class TestCameraFailures:
    """Device and capture failures."""

    @pytest.mark.asyncio
    async def test_no_camera_backend(self, camera_factory, no_sleep):
        manager = DeviceManager(capture_factory=camera_factory, camera_backends=lambda: [])
        orchestrator = make_orchestrator(Route.AUTHENTICATE, manager, respond({}), no_sleep)

        snapshot = await orchestrator.start()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "DEVICE_ENUMERATION_ERROR"

    @pytest.mark.asyncio
    async def test_capture_interrupted(self, device_manager, camera_factory, no_sleep):
        handler = respond({})
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, no_sleep)
        await orchestrator.start()
        camera_factory.open_captures[0].fail_after = 2

        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "CAPTURE_INTERRUPTED"
        assert snapshot.frames_captured == 0
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_capture_without_stream(self, device_manager, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)

        snapshot = await orchestrator.capture()

        assert snapshot.error_code == "DEVICE_UNAVAILABLE"


class TestConcurrency:
    """Busy rejection."""

    @pytest.mark.asyncio
    async def test_second_capture_rejected(self, device_manager):
        release = asyncio.Event()

        async def blocking_sleep(seconds):
            await release.wait()

        handler = respond({"code": 5, "message": "no match"})
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, blocking_sleep)
        await orchestrator.start()

        task = asyncio.ensure_future(orchestrator.capture())
        await asyncio.sleep(0)
        assert orchestrator.state == WorkflowState.CAPTURING

        with pytest.raises(WorkflowBusy):
            await orchestrator.capture()
        with pytest.raises(WorkflowBusy):
            await orchestrator.retry()

        release.set()
        snapshot = await task

        assert snapshot.error_code == "NO_MATCH"
        assert len(handler.requests) == 1


    @pytest.mark.asyncio
    async def test_submit_after_success_sends_nothing(self, device_manager, no_sleep):
        handler = respond(ENROLL_OK)
        form = IdentityForm(firstName="Jane", lastName="Doe")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, handler, no_sleep, form)
        await orchestrator.start()
        await orchestrator.capture()

        snapshot = await orchestrator.submit()

        assert snapshot.workflow_state == WorkflowState.SUCCEEDED
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_submit_after_failure_sends_nothing(self, device_manager, no_sleep):
        handler = respond({"code": 4, "message": "spoof detected"})
        form = IdentityForm(firstName="Jane", lastName="Doe")
        orchestrator = make_orchestrator(Route.ENROLL, device_manager, handler, no_sleep, form)
        await orchestrator.start()
        await orchestrator.capture()

        snapshot = await orchestrator.submit()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "SPOOFING_DETECTED"
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_cancelled_submission_can_retry(self, device_manager, no_sleep):
        never = asyncio.Event()

        async def hanging(request):
            await never.wait()
            return httpx.Response(200, json={"code": 0})

        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, hanging, no_sleep)
        await orchestrator.start()

        task = asyncio.ensure_future(orchestrator.capture())
        while orchestrator.state != WorkflowState.SUBMITTING:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.state == WorkflowState.FAILED
        assert orchestrator.error.code == "UNEXPECTED_ERROR"

        snapshot = await orchestrator.retry()
        assert snapshot.workflow_state == WorkflowState.IDLE


class TestRetryAndDevices:
    """Retry and device switching."""

    @pytest.mark.asyncio
    async def test_retry_resets_to_idle(self, device_manager, camera_factory, no_sleep):
        orchestrator = make_orchestrator(
            Route.AUTHENTICATE, device_manager, respond({"code": 4, "message": "spoof"}), no_sleep
        )
        await orchestrator.start()
        await orchestrator.capture()
        stream_before = device_manager.active_stream

        snapshot = await orchestrator.retry()

        assert snapshot.workflow_state == WorkflowState.IDLE
        assert snapshot.last_outcome is None
        assert snapshot.error is None
        assert snapshot.frames_captured == 0
        assert device_manager.active_stream is not stream_before
        assert not stream_before.is_active
        assert len(camera_factory.open_captures) == 1

    @pytest.mark.asyncio
    async def test_retry_is_idempotent(self, device_manager, camera_factory, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)
        await orchestrator.start()

        first = await orchestrator.retry()
        second = await orchestrator.retry()

        assert first.workflow_state == second.workflow_state == WorkflowState.IDLE
        assert len(camera_factory.open_captures) == 1

    @pytest.mark.asyncio
    async def test_capture_after_success_clears_outcome(self, device_manager, no_sleep):
        handler = respond({"code": 0, "message": "ok", "match": {"id": "u", "score": 0.9}})
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, handler, no_sleep)
        await orchestrator.start()
        await orchestrator.capture()
        seen = []
        orchestrator.add_listener(seen.append)

        await orchestrator.capture()

        assert seen[0].workflow_state == WorkflowState.CAPTURING
        assert seen[0].last_outcome is None

    @pytest.mark.asyncio
    async def test_switch_twice_no_leaks(self, device_manager, camera_factory, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)
        await orchestrator.start()

        await orchestrator.select_device("1")
        snapshot = await orchestrator.select_device("0")

        assert snapshot.workflow_state == WorkflowState.IDLE
        assert device_manager.active_stream.device.id == "0"
        assert len(camera_factory.open_captures) == 1

    @pytest.mark.asyncio
    async def test_failed_switch_then_retry(self, device_manager, camera_factory, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)
        await orchestrator.start()

        snapshot = await orchestrator.select_device("1")
        assert snapshot.workflow_state == WorkflowState.IDLE

        camera_factory.available = {0}
        snapshot = await orchestrator.select_device("1")
        assert snapshot.error_code == "DEVICE_UNAVAILABLE"
        assert camera_factory.open_captures == []

        await orchestrator.select_device("0")
        assert orchestrator.state == WorkflowState.IDLE

    @pytest.mark.asyncio
    async def test_close_releases_camera(self, device_manager, camera_factory, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)
        await orchestrator.start()

        orchestrator.close()

        assert camera_factory.open_captures == []

    @pytest.mark.asyncio
    async def test_enumeration_denied_can_retry(self, camera_factory, no_sleep):
        denied = {"active": True}

        def guarded_factory(index):
            if denied["active"]:
                raise PermissionError("camera access denied")
            return camera_factory(index)

        manager = DeviceManager(capture_factory=guarded_factory, camera_backends=lambda: ["FAKE"])
        orchestrator = make_orchestrator(Route.AUTHENTICATE, manager, respond({}), no_sleep)

        snapshot = await orchestrator.start()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "PERMISSION_DENIED"

        denied["active"] = False
        snapshot = await orchestrator.retry()
        assert snapshot.workflow_state == WorkflowState.IDLE
        manager.release()

    @pytest.mark.asyncio
    async def test_unexpected_start_error_fails(self, camera_factory, no_sleep):
        def broken_backends():
            raise RuntimeError("backend registry crashed")

        manager = DeviceManager(capture_factory=camera_factory, camera_backends=broken_backends)
        orchestrator = make_orchestrator(Route.AUTHENTICATE, manager, respond({}), no_sleep)

        snapshot = await orchestrator.start()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_message == "backend registry crashed"

    @pytest.mark.asyncio
    async def test_unexpected_capture_error_fails(self, device_manager, no_sleep):
        orchestrator = make_orchestrator(Route.AUTHENTICATE, device_manager, respond({}), no_sleep)
        await orchestrator.start()

        async def broken_capture(stream, options, on_countdown=None):
            raise RuntimeError("encoder crashed")

        orchestrator.capturer.capture = broken_capture
        snapshot = await orchestrator.capture()

        assert snapshot.workflow_state == WorkflowState.FAILED
        assert snapshot.error_code == "UNEXPECTED_ERROR"

        snapshot = await orchestrator.retry()
        assert snapshot.workflow_state == WorkflowState.IDLE


class TestBuildOrchestrator:
    """Assembly from configuration."""

    def test_enrollment_from_config(self, device_manager):
        config = {
            "capture": {"frame_count": 4, "enrollment_pre_roll_seconds": 2},
            "packaging": {"enrollment_mode": "multi_frame"},
            "verification": VERIFICATION,
            "normalizer": {"response_schema": "coded", "match_threshold": 0.8},
        }

        orchestrator = build_orchestrator(Route.ENROLL, config, device_manager=device_manager)

        assert orchestrator.burst_options.frame_count == 4
        assert orchestrator.burst_options.pre_roll_seconds == 2
        assert orchestrator.packaging_mode == PackagingMode.MULTI_FRAME
        assert orchestrator.normalizer.match_threshold == 0.8
        assert isinstance(orchestrator.form, IdentityForm)

    def test_authentication_always_single_frame(self, device_manager):
        config = {"packaging": {"enrollment_mode": "multi_frame"}}

        orchestrator = build_orchestrator(Route.AUTHENTICATE, config, device_manager=device_manager)

        assert orchestrator.packaging_mode == PackagingMode.SINGLE_FRAME
        assert orchestrator.burst_options.pre_roll_seconds is None
