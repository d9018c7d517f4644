"""
Response Adapters for the Verification Backend

One adapter per backend response-shape version. Which one is used is a
configuration decision (``normalizer.response_schema``), never inferred from
the body.

Components:
    - interfaces: ResponseAdapter base class and BackendResult
    - coded_adapter: current ``{code, message, match, anti_spoofing}`` contract
    - single_match_adapter: older ``{success, match}`` bodies
    - flat_list_adapter: oldest ``{success, data.matches[]}`` bodies

Usage:
    from core.response_adapters import get_adapter
    adapter = get_adapter("coded")
"""

from typing import Dict, Type

from core.response_adapters.interfaces import (
    BackendResult,
    ResponseAdapter,
    to_anti_spoofing,
    to_match_info,
)
from core.response_adapters.coded_adapter import CodedResponseAdapter
from core.response_adapters.single_match_adapter import SingleMatchResponseAdapter
from core.response_adapters.flat_list_adapter import FlatListResponseAdapter

ADAPTERS: Dict[str, Type[ResponseAdapter]] = {
    CodedResponseAdapter.schema_name: CodedResponseAdapter,
    SingleMatchResponseAdapter.schema_name: SingleMatchResponseAdapter,
    FlatListResponseAdapter.schema_name: FlatListResponseAdapter,
}


def get_adapter(schema_name: str) -> ResponseAdapter:
    """
    Create the adapter for a configured response schema.

    Raises:
        ValueError: If no adapter exists for the schema name.
    """
    try:
        return ADAPTERS[schema_name]()
    except KeyError:
        raise ValueError(
            f"Unknown response schema '{schema_name}'. "
            f"Available: {sorted(ADAPTERS)}"
        ) from None


__all__ = [
    "BackendResult",
    "ResponseAdapter",
    "CodedResponseAdapter",
    "SingleMatchResponseAdapter",
    "FlatListResponseAdapter",
    "ADAPTERS",
    "get_adapter",
    "to_anti_spoofing",
    "to_match_info",
]
