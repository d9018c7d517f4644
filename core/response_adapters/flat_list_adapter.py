"""
Flat-List Response Adapter

Reads the oldest backend bodies, ``{success, data: {matches: [...]}}``,
where every candidate above the backend's internal cut-off is listed.
The same backend reported enrollment errors as a bare JSON array
``[{"error": "..."}]``.
"""

from pydantic import TypeAdapter
from typing import List

from core.errors import MalformedResponse
from core.outcome import OutcomeCode, Route
from core.response_adapters.interfaces import (
    BackendResult,
    ResponseAdapter,
    to_anti_spoofing,
    to_match_info,
)
from core.schemas import FlatListResponse, LegacyErrorItem, RawResponse

_error_list = TypeAdapter(List[LegacyErrorItem])


class FlatListResponseAdapter(ResponseAdapter):
    """Adapter for ``{success, data.matches[]}`` bodies."""

    schema_name = "flat_list"

    def parse(self, raw: RawResponse, route: Route) -> BackendResult:
        if isinstance(raw, list):
            return self._parse_error_list(raw)
        if not isinstance(raw, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(raw).__name__}")

        body = FlatListResponse.model_validate(raw)
        anti_spoofing = to_anti_spoofing(body.anti_spoofing)

        if not body.success:
            code = OutcomeCode.NO_MATCH if route == Route.AUTHENTICATE else OutcomeCode.UNEXPECTED_ERROR
            return BackendResult(code=code, message=body.message or "", anti_spoofing=anti_spoofing)

        candidates = []
        if route == Route.AUTHENTICATE and body.data is not None:
            candidates = [to_match_info(c) for c in body.data.matches]

        return BackendResult(
            code=OutcomeCode.SUCCESS,
            message=body.message or "",
            candidates=candidates,
            anti_spoofing=anti_spoofing,
        )

    @staticmethod
    def _parse_error_list(raw: list) -> BackendResult:
        errors = _error_list.validate_python(raw)
        if not errors:
            raise MalformedResponse("Empty error list from backend")
        return BackendResult(code=OutcomeCode.UNEXPECTED_ERROR, message=errors[0].error)
