"""
Pydantic Schemas for Backend Responses

This module defines the response bodies the remote verification backend has
used over time. The coded form is the current contract; the single-match and
flat-list forms are kept so that older deployments can still be read.

These schemas provide:
- Type validation of untrusted JSON
- One model per response-shape version (consumed by core.response_adapters)
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Shared Schemas
# ============================================================

class AntiSpoofing(BaseModel):
    """Liveness verdict reported by the backend."""
    is_real: Optional[bool] = Field(None, description="Whether the face looks like a live person")
    antispoof_score: Optional[float] = Field(None, description="Liveness model score")
    confidence: Optional[float] = Field(None, description="Liveness model confidence")


class MatchCandidate(BaseModel):
    """An enrolled identity the backend considers similar to the probe."""
    id: str = Field(..., description="Backend identifier of the identity")
    score: float = Field(..., ge=0.0, le=1.0, description="Similarity score (0-1)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Identity fields")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Some backend versions return numeric identifiers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


# ============================================================
# Coded Schemas (current contract)
# ============================================================

class CodedEnrollmentResponse(BaseModel):
    """Enrollment response: {code, message, anti_spoofing, details}."""
    code: int = Field(..., description="EnrollmentCode value")
    message: Optional[str] = Field("", description="Human-readable status")
    anti_spoofing: Optional[AntiSpoofing] = None
    details: Optional[Dict[str, Any]] = None


class CodedAuthenticationResponse(CodedEnrollmentResponse):
    """Authentication response: adds the best match and its similarity."""
    code: int = Field(..., description="AuthenticationCode value")
    match: Optional[MatchCandidate] = None
    similarity_score: Optional[float] = None


# ============================================================
# Legacy Schemas
# ============================================================

class SingleMatchResponse(BaseModel):
    """Single-best-match response: {success, match}."""
    success: bool
    message: Optional[str] = None
    match: Optional[MatchCandidate] = None
    anti_spoofing: Optional[AntiSpoofing] = None
    # Flat liveness fields used by the same backend generation
    isReal: Optional[bool] = None
    antispoofScore: Optional[float] = None
    confidence: Optional[float] = None


class FlatMatchData(BaseModel):
    matches: List[MatchCandidate] = Field(default_factory=list)


class FlatListResponse(BaseModel):
    """Flat list response: {success, data: {matches: [...]}}."""
    success: bool
    message: Optional[str] = None
    data: Optional[FlatMatchData] = None
    anti_spoofing: Optional[AntiSpoofing] = None


class LegacyErrorItem(BaseModel):
    """Element of the legacy ``[{"error": "..."}]`` error report."""
    error: str


RawResponse = Union[Dict[str, Any], List[Any]]
