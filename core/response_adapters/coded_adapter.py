"""
Coded Response Adapter

Reads the current backend contract:

    Enrollment:   {code, message, anti_spoofing, details}
    Authenticate: {code, message, match, similarity_score, anti_spoofing, details}

The integer ``code`` is interpreted with the route's own enum, since the two
routes disagree on what 5 and 6 mean.
"""

import logging

from core.errors import MalformedResponse
from core.outcome import BACKEND_CODES, OutcomeCode, Route
from core.response_adapters.interfaces import (
    BackendResult,
    ResponseAdapter,
    to_anti_spoofing,
    to_match_info,
)
from core.schemas import (
    CodedAuthenticationResponse,
    CodedEnrollmentResponse,
    RawResponse,
)

logger = logging.getLogger(__name__)


class CodedResponseAdapter(ResponseAdapter):
    """Adapter for ``{code, message, match, anti_spoofing}`` bodies."""

    schema_name = "coded"

    def parse(self, raw: RawResponse, route: Route) -> BackendResult:
        if not isinstance(raw, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(raw).__name__}")

        if route == Route.AUTHENTICATE:
            body = CodedAuthenticationResponse.model_validate(raw)
        else:
            body = CodedEnrollmentResponse.model_validate(raw)

        code = self._map_code(body.code, route)

        candidates = []
        if route == Route.AUTHENTICATE and body.match is not None:
            candidates.append(to_match_info(body.match))

        return BackendResult(
            code=code,
            message=body.message or "",
            candidates=candidates,
            anti_spoofing=to_anti_spoofing(body.anti_spoofing),
            details=body.details,
        )

    @staticmethod
    def _map_code(value: int, route: Route) -> OutcomeCode:
        enum_cls = BACKEND_CODES[route]
        try:
            backend_code = enum_cls(value)
        except ValueError:
            logger.warning(f"Unknown {route.value} code from backend: {value}")
            raise MalformedResponse(f"Unknown {route.value} result code: {value}")
        return OutcomeCode[backend_code.name]
