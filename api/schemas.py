"""
Pydantic Schemas for the Relay API

This module defines the response models of the relay service that sits
between the capture client and the verification backend.

Successful calls return the backend's JSON body unchanged, so only the
relay's own responses (errors, health, info) are modelled here.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


# ============================================================
# Error Envelope
# ============================================================

class RelayErrorDetails(BaseModel):
    """Machine-readable part of a relay failure."""
    errorCode: str = Field(
        ...,
        description="TIMEOUT_ERROR, NETWORK_ERROR, NOT_FOUND, UNAUTHORIZED, FORBIDDEN or INTERNAL_ERROR",
    )
    errorMessage: str = Field(..., description="Underlying error description")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO-8601 time of the failure",
    )


class RelayErrorResponse(BaseModel):
    """Body returned when the relay could not obtain a usable backend answer."""
    message: str = Field(..., description="Human-readable summary")
    details: RelayErrorDetails


# ============================================================
# System Schemas
# ============================================================

class HealthResponse(BaseModel):
    """Relay health check response."""
    status: str = Field(..., description="'healthy' if the backend answers, otherwise 'degraded'")
    backend_url: str = Field(..., description="Verification backend the relay forwards to")
    backend_reachable: bool = Field(..., description="Whether the backend health check succeeded")
    backend_status: Optional[int] = Field(None, description="HTTP status of the backend health check")


class InfoResponse(BaseModel):
    """Root endpoint response."""
    name: str
    version: str
    docs: str = "/docs"
    health: str = "/health"
