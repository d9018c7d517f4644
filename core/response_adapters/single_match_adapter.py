"""
Single-Match Response Adapter

Reads the older ``{success, message, match}`` bodies. This backend generation
reported liveness either as an ``anti_spoofing`` block or as flat
``isReal`` / ``antispoofScore`` / ``confidence`` fields.

Without a result code, an unsuccessful body is read as NO_MATCH for
authentication and UNEXPECTED_ERROR for enrollment.
"""

from typing import Optional

from core.errors import MalformedResponse
from core.outcome import AntiSpoofingInfo, OutcomeCode, Route
from core.response_adapters.interfaces import (
    BackendResult,
    ResponseAdapter,
    to_anti_spoofing,
    to_match_info,
)
from core.schemas import RawResponse, SingleMatchResponse


class SingleMatchResponseAdapter(ResponseAdapter):
    """Adapter for ``{success, match}`` bodies."""

    schema_name = "single_match"

    def parse(self, raw: RawResponse, route: Route) -> BackendResult:
        if not isinstance(raw, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(raw).__name__}")

        body = SingleMatchResponse.model_validate(raw)
        anti_spoofing = self._liveness(body)

        if not body.success:
            code = OutcomeCode.NO_MATCH if route == Route.AUTHENTICATE else OutcomeCode.UNEXPECTED_ERROR
            return BackendResult(
                code=code,
                message=body.message or "",
                anti_spoofing=anti_spoofing,
            )

        candidates = []
        if route == Route.AUTHENTICATE and body.match is not None:
            candidates.append(to_match_info(body.match))

        return BackendResult(
            code=OutcomeCode.SUCCESS,
            message=body.message or "",
            candidates=candidates,
            anti_spoofing=anti_spoofing,
        )

    @staticmethod
    def _liveness(body: SingleMatchResponse) -> Optional[AntiSpoofingInfo]:
        if body.anti_spoofing is not None:
            return to_anti_spoofing(body.anti_spoofing)
        if body.isReal is None and body.antispoofScore is None and body.confidence is None:
            return None
        return AntiSpoofingInfo(
            is_real=body.isReal,
            antispoof_score=body.antispoofScore,
            confidence=body.confidence,
        )
