"""
Camera device management for the Face ID capture client.

Enumerates capture devices and owns the one live stream of a session.
Only this class opens or releases camera hardware; everything else receives
the LiveStream it hands out.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import cv2
import numpy as np

from core.errors import (
    CaptureInterrupted,
    DeviceEnumerationError,
    DeviceUnavailable,
    PermissionDenied,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureDevice:
    """A camera as listed by the platform."""
    id: str
    label: str


@dataclass
class CameraConfig:
    """Configuration for device enumeration and stream acquisition."""
    max_devices: int = 5
    width: int = 1280
    height: int = 720

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "CameraConfig":
        return cls(
            max_devices=config.get("max_devices", cls.max_devices),
            width=config.get("width", cls.width),
            height=config.get("height", cls.height),
        )


class LiveStream:
    """
    Exclusive handle on an open camera.

    Created and stopped only by DeviceManager. Once stopped, every read
    raises CaptureInterrupted.
    """

    def __init__(self, device: CaptureDevice, capture: Any):
        self.device = device
        self._capture = capture

    @property
    def is_active(self) -> bool:
        """Check if the underlying device is still open."""
        return self._capture is not None and self._capture.isOpened()

    def read_frame(self) -> np.ndarray:
        """
        Read the current frame.

        Returns:
            BGR numpy array.

        Raises:
            CaptureInterrupted: If the stream was stopped or the device
                                stopped delivering frames.
        """
        if not self.is_active:
            raise CaptureInterrupted(f"{self.device.label} is no longer streaming")

        ret, frame = self._capture.read()
        if not ret or frame is None:
            raise CaptureInterrupted(f"{self.device.label} stopped delivering frames")

        return frame

    def read_jpeg(self, quality: float = 0.92) -> bytes:
        """
        Sample the current frame into a JPEG still.

        Args:
            quality: Encoder quality between 0 and 1.

        Returns:
            JPEG bytes of the current frame.
        """
        frame = self.read_frame()
        encode_param = [int(cv2.IMWRITE_JPEG_QUALITY), int(round(quality * 100))]
        success, buffer = cv2.imencode(".jpg", frame, encode_param)
        if not success:
            raise CaptureInterrupted("Failed to encode frame")
        return buffer.tobytes()

    def stop(self) -> None:
        """Release the device. Safe to call more than once."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Stopped stream on {self.device.label}")

    def __repr__(self) -> str:
        state = "active" if self.is_active else "stopped"
        return f"LiveStream(device={self.device.id!r}, {state})"


class DeviceManager:
    """
    Enumerates cameras and owns the session's live stream.

    At most one LiveStream exists at a time: acquiring or switching always
    stops the previous stream first. A failed switch leaves no stream at all;
    the previous one is not reopened.

    Args:
        config: Camera configuration (see CameraConfig).
        capture_factory: Callable opening a device index, returning an object
                         with the cv2.VideoCapture interface.
        camera_backends: Callable listing the platform's camera backends.
                         An empty result means the platform cannot capture.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        capture_factory: Optional[Callable[[int], Any]] = None,
        camera_backends: Optional[Callable[[], List[Any]]] = None,
    ):
        self.config = CameraConfig.from_dict(config or {})
        self._capture_factory = capture_factory or cv2.VideoCapture
        self._camera_backends = camera_backends or cv2.videoio_registry.getCameraBackends
        self._check_permissions = capture_factory is None

        self._devices: Optional[List[CaptureDevice]] = None
        self._selected_id: Optional[str] = None
        self._stream: Optional[LiveStream] = None

    # ==================== Enumeration ====================

    def list_devices(self, refresh: bool = False) -> List[CaptureDevice]:
        """
        List available capture devices.

        The list is probed once and then reused; pass ``refresh=True`` to
        probe again.

        Returns:
            Devices in index order.

        Raises:
            DeviceEnumerationError: If the platform has no camera backend.
            PermissionDenied: If the platform refused access while probing.
        """
        if self._devices is not None and not refresh:
            return list(self._devices)

        try:
            backends = self._camera_backends()
        except cv2.error as e:
            raise DeviceEnumerationError(f"Camera enumeration failed: {e}") from e

        if not backends:
            raise DeviceEnumerationError()

        devices = []
        for index in range(self.config.max_devices):
            device_id = str(index)
            if self._stream is not None and self._stream.device.id == device_id:
                devices.append(self._stream.device)
                continue

            try:
                cap = self._capture_factory(index)
            except PermissionError as e:
                raise PermissionDenied() from e

            try:
                if cap.isOpened():
                    devices.append(CaptureDevice(id=device_id, label=f"Camera {index + 1}"))
            finally:
                cap.release()

        logger.info(f"Found {len(devices)} camera(s): {[d.label for d in devices]}")
        self._devices = devices
        return list(devices)

    # ==================== Stream lifecycle ====================

    def acquire_stream(self, device_id: Optional[str] = None) -> LiveStream:
        """
        Open a live stream.

        Any active stream is stopped first.

        Args:
            device_id: Device to open. Defaults to the current selection,
                       or the first listed device.

        Returns:
            The new LiveStream.

        Raises:
            PermissionDenied: If the platform refused access to the camera.
            DeviceUnavailable: If the device is unknown or could not be opened.
        """
        self.release()

        device = self._resolve_device(device_id)
        index = int(device.id)

        if self._check_permissions:
            self._ensure_permission(index)

        try:
            capture = self._capture_factory(index)
        except PermissionError as e:
            raise PermissionDenied() from e

        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            logger.warning(f"Failed to open {device.label}")
            raise DeviceUnavailable(f"Unable to open {device.label}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)

        self._stream = LiveStream(device, capture)
        self._selected_id = device.id
        logger.info(f"Opened {device.label} at {self.config.width}x{self.config.height}")
        return self._stream

    def switch_device(self, device_id: str) -> LiveStream:
        """
        Replace the active stream with one on another device.

        The previous stream is stopped before the new one is opened. If
        opening fails, no stream is active afterwards.

        Raises:
            DeviceUnavailable: If the new device could not be opened.
        """
        logger.info(f"Switching camera to device {device_id}")
        self.release()
        self._selected_id = device_id

        try:
            return self.acquire_stream(device_id)
        except PermissionDenied as e:
            raise DeviceUnavailable(f"Access to device {device_id} was denied") from e

    def release(self) -> None:
        """Stop the active stream, if any."""
        if self._stream is not None:
            self._stream.stop()
            self._stream = None

    @property
    def active_stream(self) -> Optional[LiveStream]:
        """The current stream, or None if no camera is open."""
        return self._stream

    @property
    def selected_device_id(self) -> Optional[str]:
        return self._selected_id

    def _resolve_device(self, device_id: Optional[str]) -> CaptureDevice:
        devices = self._devices if self._devices is not None else self.list_devices()
        wanted = device_id if device_id is not None else self._selected_id

        if wanted is None:
            if not devices:
                raise DeviceUnavailable("No camera found")
            return devices[0]

        for device in devices:
            if device.id == wanted:
                return device
        raise DeviceUnavailable(f"Unknown camera device: {wanted}")

    @staticmethod
    def _ensure_permission(index: int) -> None:
        # OpenCV reports a permission problem as a plain open failure on V4L2
        if not sys.platform.startswith("linux"):
            return
        node = f"/dev/video{index}"
        if os.path.exists(node) and not os.access(node, os.R_OK | os.W_OK):
            raise PermissionDenied(f"No permission to open {node}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
