"""
Error Taxonomy

Every failure the capture-and-verify pipeline can report is one of the
exception classes below. Each class carries a machine-readable ``code`` and
each instance a human-readable ``message``, which is what the presentation
layer shows.

Device errors:
    - DeviceEnumerationError: no capture backend available on this platform
    - PermissionDenied: the platform refused camera access
    - DeviceUnavailable: the device could not be opened (or was lost)

Capture errors:
    - CaptureInterrupted: the live stream went away during a burst

Transport errors (Verification Client):
    - RequestTimeout: the request exceeded its deadline
    - NetworkUnreachable: no response was received
    - BackendRejected: a response arrived with a non-success HTTP status
    - MalformedResponse: a response arrived but is not the expected schema

Workflow errors:
    - WorkflowBusy: a capture was requested while another one is in flight
"""

from typing import Any, Dict, Optional


class FaceIDError(Exception):
    """Base class for all pipeline failures."""

    code = "UNEXPECTED_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the presentation layer."""
        return {"code": self.code, "message": self.message}


class DeviceEnumerationError(FaceIDError):
    code = "DEVICE_ENUMERATION_ERROR"
    default_message = "Camera enumeration is not supported on this platform"


class PermissionDenied(FaceIDError):
    code = "PERMISSION_DENIED"
    default_message = "Unable to access camera. Please check permissions and try again."


class DeviceUnavailable(FaceIDError):
    code = "DEVICE_UNAVAILABLE"
    default_message = "Camera is unavailable"


class CaptureInterrupted(FaceIDError):
    code = "CAPTURE_INTERRUPTED"
    default_message = "Camera stream was interrupted during capture"


class RequestTimeout(FaceIDError):
    code = "TIMEOUT"
    default_message = "The verification request timed out"


class NetworkUnreachable(FaceIDError):
    code = "NETWORK_UNREACHABLE"
    default_message = "The verification service could not be reached"


class BackendRejected(FaceIDError):
    """The backend answered with a non-success HTTP status."""

    code = "BACKEND_REJECTED"

    def __init__(self, status: int, body: Any = None, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Server error: {status}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class MalformedResponse(FaceIDError):
    code = "MALFORMED_RESPONSE"
    default_message = "The verification service returned an unreadable response"


class WorkflowBusy(FaceIDError):
    code = "WORKFLOW_BUSY"
    default_message = "A capture or submission is already in progress"
