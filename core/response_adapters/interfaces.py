"""
Response Adapter Interfaces

This module defines the abstract interface for reading a backend response
body. The verification backend has answered in three incompatible shapes
over its lifetime; each shape gets exactly one adapter class, and the
Result Normalizer only ever talks to this interface.

An adapter is purely structural: it validates the body against its schema
and reports what the backend said (code, message, candidates, liveness).
Acceptance policy (best candidate, threshold) lives in the normalizer.

Usage:
    from core.response_adapters import get_adapter

    adapter = get_adapter("coded")
    result = adapter.parse(raw_body, Route.AUTHENTICATE)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.outcome import AntiSpoofingInfo, MatchInfo, OutcomeCode, Route
from core.schemas import AntiSpoofing, MatchCandidate, RawResponse


@dataclass
class BackendResult:
    """
    What the backend reported, before acceptance policy is applied.

    Attributes:
        code: Backend verdict mapped onto the normalized taxonomy.
        message: Backend message (may be empty).
        candidates: Identity candidates in the order the backend listed them.
        anti_spoofing: Liveness details, if any were reported.
        details: Opaque backend diagnostics.
    """
    code: OutcomeCode
    message: str = ""
    candidates: List[MatchInfo] = field(default_factory=list)
    anti_spoofing: Optional[AntiSpoofingInfo] = None
    details: Optional[Dict[str, Any]] = None


class ResponseAdapter(ABC):
    """
    Abstract base class for one backend response-shape version.

    Implementations raise pydantic.ValidationError when the body does not
    match their schema and core.errors.MalformedResponse for bodies that
    validate but still cannot be interpreted (e.g. an unknown code).
    """

    schema_name: str = ""

    @abstractmethod
    def parse(self, raw: RawResponse, route: Route) -> BackendResult:
        """
        Read a decoded JSON body.

        Args:
            raw: Decoded JSON body as returned by the Verification Client.
            route: Route the body was returned from.

        Returns:
            BackendResult describing the backend's verdict.
        """
        pass


def to_match_info(candidate: MatchCandidate) -> MatchInfo:
    """Convert a validated wire candidate into the internal type."""
    return MatchInfo(
        identity_id=candidate.id,
        score=candidate.score,
        metadata=dict(candidate.metadata),
    )


def to_anti_spoofing(model: Optional[AntiSpoofing]) -> Optional[AntiSpoofingInfo]:
    """Convert a validated liveness block, keeping values as reported."""
    if model is None:
        return None
    return AntiSpoofingInfo(
        is_real=model.is_real,
        antispoof_score=model.antispoof_score,
        confidence=model.confidence,
    )
