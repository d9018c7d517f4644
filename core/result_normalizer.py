"""
Result Normalizer Module

Turns a raw backend body into a VerificationOutcome.

The configured response adapter reads the body; this module then applies the
acceptance policy:
1. A non-SUCCESS backend code is final; no match is reported.
2. On authentication, the highest-scoring candidate is selected.
3. If its score is below ``match_threshold`` the outcome is BELOW_THRESHOLD
   and the candidate is dropped. A score equal to the threshold is accepted.

Anti-spoofing data is passed through as reported. It never changes the code;
a spoofing verdict only arrives as the backend's SPOOFING_DETECTED code.

Usage:
    from core.result_normalizer import ResultNormalizer

    normalizer = ResultNormalizer({"response_schema": "coded", "match_threshold": 0.7})
    outcome = normalizer.normalize(body, Route.AUTHENTICATE)
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from core.errors import MalformedResponse
from core.outcome import OutcomeCode, Route, VerificationOutcome
from core.response_adapters import BackendResult, get_adapter
from core.schemas import RawResponse

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.70

DEFAULT_MESSAGES = {
    OutcomeCode.SUCCESS: "Verification succeeded",
    OutcomeCode.FUNCTION_ERROR: "The verification service failed to process the request",
    OutcomeCode.NO_FACE_DETECTED: "No face detected",
    OutcomeCode.MULTIPLE_FACES_DETECTED: "Multiple faces detected",
    OutcomeCode.SPOOFING_DETECTED: "Spoofing detected! Please use a real face.",
    OutcomeCode.STORAGE_ERROR: "The enrollment could not be stored",
    OutcomeCode.NO_MATCH: "No match found",
    OutcomeCode.BELOW_THRESHOLD: "Match score below threshold",
    OutcomeCode.UNEXPECTED_ERROR: "An unexpected error occurred",
}


class ResultNormalizer:
    """
    Maps backend responses onto the closed OutcomeCode taxonomy.

    The threshold is policy owned here. Setting it to None delegates the
    acceptance decision to the backend's own code.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the normalizer.

        Args:
            config: Configuration dictionary containing:
                - response_schema: "coded", "single_match" or "flat_list"
                  (default: "coded")
                - match_threshold: Minimum accepted score, or None
                  (default: 0.70)
        """
        config = config or {}
        self.response_schema = config.get("response_schema", "coded")
        self.match_threshold = config.get("match_threshold", DEFAULT_MATCH_THRESHOLD)

        if self.match_threshold is not None and not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError(f"match_threshold must be within [0, 1], got {self.match_threshold}")

        self.adapter = get_adapter(self.response_schema)

    def normalize(self, raw: RawResponse, route: Route) -> VerificationOutcome:
        """
        Normalize one backend body.

        Args:
            raw: Decoded JSON body.
            route: Route the body came from.

        Returns:
            VerificationOutcome honouring the match/code invariant.

        Raises:
            MalformedResponse: If the body does not fit the configured schema.
        """
        try:
            result = self.adapter.parse(raw, route)
        except ValidationError as e:
            logger.warning(f"Response does not match '{self.response_schema}' schema: {e}")
            raise MalformedResponse(
                f"Response does not match the expected {self.response_schema} schema"
            ) from e

        if route == Route.ENROLL or result.code != OutcomeCode.SUCCESS:
            return self._outcome(route, result.code, result)

        if not result.candidates:
            return self._outcome(route, OutcomeCode.NO_MATCH, result, keep_message=False)

        best = max(result.candidates, key=lambda c: c.score)

        if self.match_threshold is not None and best.score < self.match_threshold:
            logger.info(
                f"Best candidate {best.identity_id} scored {best.score:.2f}, "
                f"below threshold {self.match_threshold:.2f}"
            )
            return VerificationOutcome(
                route=route,
                code=OutcomeCode.BELOW_THRESHOLD,
                message=(
                    f"Best match score {best.score:.2f} is below "
                    f"the threshold of {self.match_threshold:.2f}"
                ),
                match=None,
                anti_spoofing=result.anti_spoofing,
                details=result.details,
            )

        return VerificationOutcome(
            route=route,
            code=OutcomeCode.SUCCESS,
            message=result.message or DEFAULT_MESSAGES[OutcomeCode.SUCCESS],
            match=best,
            anti_spoofing=result.anti_spoofing,
            details=result.details,
        )

    @staticmethod
    def _outcome(
        route: Route,
        code: OutcomeCode,
        result: BackendResult,
        keep_message: bool = True,
    ) -> VerificationOutcome:
        message = result.message if keep_message else ""
        return VerificationOutcome(
            route=route,
            code=code,
            message=message or DEFAULT_MESSAGES[code],
            match=None,
            anti_spoofing=result.anti_spoofing,
            details=result.details,
        )


def get_result_normalizer(config: Optional[Dict[str, Any]] = None) -> ResultNormalizer:
    """
    Factory function to create a ResultNormalizer.

    Args:
        config: Optional configuration dict. If None, loads from config.yaml.

    Returns:
        Configured ResultNormalizer instance.
    """
    if config is None:
        try:
            from core.config import get_normalizer_config
            config = get_normalizer_config()
        except (FileNotFoundError, KeyError):
            config = {}

    return ResultNormalizer(config)
