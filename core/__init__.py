"""
Core Module for the Face ID Capture Client

This package contains the pieces shared by the client and the relay:
configuration, the error taxonomy, the outcome types and the normalization
of backend responses.

Main components:
    - config: Configuration loading and management
    - errors: Exception classes with machine-readable codes
    - outcome: Normalized verification outcome and backend code tables
    - schemas: Pydantic models of the backend response shapes
    - response_adapters: One adapter per backend response shape
    - result_normalizer: Raw response -> VerificationOutcome

Usage:
    from core.config import get_config
    from core.result_normalizer import get_result_normalizer
    from core.outcome import Route, OutcomeCode
"""

from core.config import (
    get_config,
    get_section,
    get_camera_config,
    get_capture_config,
    get_packaging_config,
    get_verification_config,
    get_normalizer_config,
    get_api_config,
    get_server_config,
)

from core.errors import FaceIDError

from core.outcome import (
    Route,
    OutcomeCode,
    MatchInfo,
    AntiSpoofingInfo,
    VerificationOutcome,
)

from core.result_normalizer import ResultNormalizer, get_result_normalizer

__all__ = [
    # Configuration
    "get_config",
    "get_section",
    "get_camera_config",
    "get_capture_config",
    "get_packaging_config",
    "get_verification_config",
    "get_normalizer_config",
    "get_api_config",
    "get_server_config",
    # Errors
    "FaceIDError",
    # Outcome
    "Route",
    "OutcomeCode",
    "MatchInfo",
    "AntiSpoofingInfo",
    "VerificationOutcome",
    # Normalization
    "ResultNormalizer",
    "get_result_normalizer",
]
