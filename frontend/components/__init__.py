"""
Client components for the Face ID capture client.

The result panel lives in ``frontend.components.result_panel`` and is not
re-exported here because it depends on the orchestrator.
"""

from .device_manager import DeviceManager, CaptureDevice, LiveStream, CameraConfig
from .burst_capture import BurstCapturer, BurstOptions, CapturedFrame, FrameSet
from .image_packager import ImagePackager, PackagingMode, Payload, EncodedImage
from .enrollment_form import IdentityForm, IdentityMetadata

__all__ = [
    "DeviceManager", "CaptureDevice", "LiveStream", "CameraConfig",
    "BurstCapturer", "BurstOptions", "CapturedFrame", "FrameSet",
    "ImagePackager", "PackagingMode", "Payload", "EncodedImage",
    "IdentityForm", "IdentityMetadata",
]
