"""
Conversion between plain structured data and the toolkit's dataclasses.

Requests arrive as dictionaries (typically parsed JSON) and results
leave as JSON-compatible dictionaries. Decimals are emitted as strings
so no precision is lost on the way out.
"""

import dataclasses
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from real_options.core.decision_tree import DecisionTreeRequest, TreeNode
from real_options.utils.errors import InvalidInputError
from real_options.utils.types import ValuationRequest

logger = logging.getLogger(__name__)

_REQUIRED_VALUATION_FIELDS = (
    "option_type",
    "underlying_value",
    "exercise_price",
    "volatility",
    "risk_free_rate",
    "time_to_expiry",
)

_TREE_REQUEST_KEYS = frozenset({"nodes", "discount_rate", "risk_adjustment"})
_TREE_NODE_KEYS = frozenset(
    {"id", "name", "node_type", "value", "cost", "probability", "children", "time_period"}
)


def to_jsonable(obj: Any) -> Any:
    """
    Recursively convert dataclasses, enums and Decimals to JSON-ready values.

    Examples:
        >>> to_jsonable({"value": Decimal("1.50")})
        {'value': '1.50'}
    """
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def _require_mapping(data: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidInputError(field, f"must be an object, got {type(data).__name__}")
    return data


def _reject_unknown(data: Mapping[str, Any], allowed: frozenset, prefix: str) -> None:
    unknown = sorted(str(k) for k in data if k not in allowed)
    if unknown:
        raise InvalidInputError(f"{prefix}{unknown[0]}", "unknown field")


def valuation_request_from_dict(data: Mapping[str, Any]) -> ValuationRequest:
    """
    Build a ValuationRequest from a dictionary of its field values.

    Raises:
        InvalidInputError: If a field is unknown, a required field is
            missing, or a value is not numeric
    """
    data = _require_mapping(data, "request")
    known = set(ValuationRequest.field_names())
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidInputError(unknown[0], "unknown field")

    for name in _REQUIRED_VALUATION_FIELDS:
        if data.get(name) is None:
            raise InvalidInputError(name, "is required")

    kwargs = {k: v for k, v in data.items() if v is not None}
    logger.debug("Parsed valuation request fields: %s", ", ".join(sorted(kwargs)))
    return ValuationRequest(**kwargs)


def decision_tree_request_from_dict(data: Mapping[str, Any]) -> DecisionTreeRequest:
    """
    Build a DecisionTreeRequest from ``{"nodes": [...], "discount_rate": ...}``.

    Raises:
        InvalidInputError: If the structure is malformed
    """
    data = _require_mapping(data, "request")
    _reject_unknown(data, _TREE_REQUEST_KEYS, "")
    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list):
        raise InvalidInputError("nodes", "must be a list")
    if data.get("discount_rate") is None:
        raise InvalidInputError("discount_rate", "is required")

    nodes = []
    for index, raw in enumerate(raw_nodes):
        raw = _require_mapping(raw, f"nodes[{index}]")
        _reject_unknown(raw, _TREE_NODE_KEYS, f"nodes[{index}].")
        for key in ("id", "name", "node_type"):
            if raw.get(key) is None:
                raise InvalidInputError(f"nodes[{index}].{key}", "is required")
        nodes.append(
            TreeNode(
                id=str(raw["id"]),
                name=str(raw["name"]),
                node_type=raw["node_type"],
                value=raw.get("value"),
                cost=raw.get("cost"),
                probability=raw.get("probability"),
                children=tuple(str(c) for c in raw.get("children") or ()),
                time_period=raw.get("time_period"),
            )
        )

    return DecisionTreeRequest(
        nodes=tuple(nodes),
        discount_rate=data["discount_rate"],
        risk_adjustment=data.get("risk_adjustment"),
    )
