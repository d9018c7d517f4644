"""
Shared fixtures for the Face ID capture client tests.

Provides a fake camera (cv2.VideoCapture interface) so that device, capture
and workflow tests run without hardware.
"""

import os
import sys
from typing import Dict, List, Optional, Set

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FakeVideoCapture:
    """Stand-in for cv2.VideoCapture delivering synthetic BGR frames."""

    def __init__(self, index: int, opened: bool = True, width: int = 640, height: int = 480):
        self.index = index
        self._opened = opened
        self.width = width
        self.height = height
        self.released = False
        self.reads = 0
        self.fail_after: Optional[int] = None
        self.props: Dict[int, float] = {}

    def isOpened(self) -> bool:
        return self._opened and not self.released

    def read(self):
        if not self.isOpened():
            return False, None
        if self.fail_after is not None and self.reads >= self.fail_after:
            return False, None
        self.reads += 1
        frame = np.full((self.height, self.width, 3), (self.reads * 20) % 255, dtype=np.uint8)
        return True, frame

    def set(self, prop: int, value: float) -> bool:
        self.props[prop] = value
        return True

    def release(self) -> None:
        self.released = True


class FakeCameraFactory:
    """
    Opens FakeVideoCapture objects and keeps track of every one of them.

    Args:
        available: Device indices that can be opened.
        width / height: Frame size delivered by the fake devices.
    """

    def __init__(self, available: Set[int] = frozenset({0, 1}), width: int = 640, height: int = 480):
        self.available = set(available)
        self.width = width
        self.height = height
        self.opened: List[FakeVideoCapture] = []
        self.fail_after: Optional[int] = None

    def __call__(self, index: int) -> FakeVideoCapture:
        capture = FakeVideoCapture(index, index in self.available, self.width, self.height)
        capture.fail_after = self.fail_after
        self.opened.append(capture)
        return capture

    @property
    def open_captures(self) -> List[FakeVideoCapture]:
        """Captures that are open and were never released."""
        return [c for c in self.opened if c.isOpened()]


@pytest.fixture
def camera_factory():
    return FakeCameraFactory()


@pytest.fixture
def device_manager(camera_factory):
    from frontend.components.device_manager import DeviceManager

    manager = DeviceManager(
        {"max_devices": 3, "width": 640, "height": 480},
        capture_factory=camera_factory,
        camera_backends=lambda: ["FAKE"],
    )
    yield manager
    manager.release()


@pytest.fixture
def no_sleep():
    """Records requested waits instead of sleeping."""
    calls: List[float] = []

    async def sleep(seconds: float) -> None:
        calls.append(seconds)

    sleep.calls = calls
    return sleep


@pytest.fixture
def jpeg_bytes():
    """Encode an image of the given size to JPEG bytes."""
    import cv2

    def _encode(width: int, height: int) -> bytes:
        image = np.random.randint(0, 255, (height, width, 3), dtype=np.uint8)
        ok, buffer = cv2.imencode(".jpg", image)
        assert ok
        return buffer.tobytes()

    return _encode
