"""
Verification Outcome Types

The normalized result of one enrollment or authentication attempt. Whatever
shape the backend answers with, the Result Normalizer turns it into a
VerificationOutcome with a code from the closed OutcomeCode taxonomy.

The backend's own integer codes are kept as two IntEnums (EnrollmentCode,
AuthenticationCode) because the two routes reuse integers 5 and 6 for
different meanings.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class Route(Enum):
    """Submission route on the verification backend."""
    ENROLL = "enroll"
    AUTHENTICATE = "authenticate"


class OutcomeCode(str, Enum):
    """Closed taxonomy of normalized outcomes."""
    SUCCESS = "SUCCESS"
    FUNCTION_ERROR = "FUNCTION_ERROR"
    NO_FACE_DETECTED = "NO_FACE_DETECTED"
    MULTIPLE_FACES_DETECTED = "MULTIPLE_FACES_DETECTED"
    SPOOFING_DETECTED = "SPOOFING_DETECTED"
    STORAGE_ERROR = "STORAGE_ERROR"
    NO_MATCH = "NO_MATCH"
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class EnrollmentCode(IntEnum):
    """Backend codes returned by the enrollment route."""
    SUCCESS = 0
    FUNCTION_ERROR = 1
    NO_FACE_DETECTED = 2
    MULTIPLE_FACES_DETECTED = 3
    SPOOFING_DETECTED = 4
    STORAGE_ERROR = 5
    UNEXPECTED_ERROR = 6


class AuthenticationCode(IntEnum):
    """Backend codes returned by the authentication route."""
    SUCCESS = 0
    FUNCTION_ERROR = 1
    NO_FACE_DETECTED = 2
    MULTIPLE_FACES_DETECTED = 3
    SPOOFING_DETECTED = 4
    NO_MATCH = 5
    BELOW_THRESHOLD = 6
    UNEXPECTED_ERROR = 7


BACKEND_CODES = {
    Route.ENROLL: EnrollmentCode,
    Route.AUTHENTICATE: AuthenticationCode,
}


@dataclass(frozen=True)
class MatchInfo:
    """
    An identity candidate returned by the backend.

    Attributes:
        identity_id: Backend identifier of the enrolled identity.
        score: Similarity score between 0.0 and 1.0.
        metadata: Identity fields stored at enrollment
                  (firstName, lastName, email, ...).
    """
    identity_id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"score must be within [0, 1], got {self.score}")

    @property
    def display_name(self) -> str:
        first = self.metadata.get("firstName", "")
        last = self.metadata.get("lastName", "")
        return f"{first} {last}".strip() or self.identity_id


@dataclass(frozen=True)
class AntiSpoofingInfo:
    """Backend liveness verdict, passed through unmodified."""
    is_real: Optional[bool] = None
    antispoof_score: Optional[float] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Normalized result of a single submission.

    Invariant: ``match`` is set if and only if ``code`` is SUCCESS on the
    authentication route. Enrollment outcomes never carry a match.

    Attributes:
        route: Which route produced this outcome.
        code: Normalized outcome code.
        message: Human-readable message for the user.
        match: Accepted identity (authentication success only).
        anti_spoofing: Liveness details when the backend reported them.
        details: Extra backend diagnostics, opaque to the client.
    """
    route: Route
    code: OutcomeCode
    message: str
    match: Optional[MatchInfo] = None
    anti_spoofing: Optional[AntiSpoofingInfo] = None
    details: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.match is not None and self.code != OutcomeCode.SUCCESS:
            raise ValueError(f"{self.code.value} outcome cannot carry a match")
        if self.route == Route.ENROLL and self.match is not None:
            raise ValueError("Enrollment outcomes never carry a match")
        if (
            self.route == Route.AUTHENTICATE
            and self.code == OutcomeCode.SUCCESS
            and self.match is None
        ):
            raise ValueError("Successful authentication requires a match")

    @property
    def succeeded(self) -> bool:
        return self.code == OutcomeCode.SUCCESS
