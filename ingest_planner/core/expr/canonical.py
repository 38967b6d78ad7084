"""
Deterministic canonical JSON and SHA-256 hashing.

The canonical form is what every plan, slice and task identity is derived
from, so the rules here are part of the persisted contract:

- object keys sorted; members whose canonical value is empty
  (null, "", [], {}) are dropped;
- arrays: empties dropped, duplicates removed by (type tag, serialized form)
  keeping the first, then sorted by the same pair; an empty array is null;
- strings trimmed with internal whitespace runs collapsed to one space;
- numbers as plain decimals with trailing fractional zeros stripped;
- compact separators, non-ASCII written verbatim.

The hash is the lowercase hex SHA-256 of the canonical JSON's UTF-8 bytes.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ingest_planner.core.domain.errors import CanonicalizationError
from ingest_planner.core.domain.keys import sha256_hex
from ingest_planner.core.domain.timeutil import format_instant
from ingest_planner.core.expr.ast import And, Atom, Const, Expr, Not, Or
from ingest_planner.core.expr.codec import expr_to_json_obj

_SPACE = re.compile(r"\s+")

# Type tags order array elements of mixed kinds.
_TAG_NULL = "0"
_TAG_BOOL = "1"
_TAG_NUMBER = "2"
_TAG_STRING = "3"
_TAG_OBJECT = "4"
_TAG_ARRAY = "5"
_TAG_OTHER = "9"


@dataclass(frozen=True, slots=True)
class CanonicalResult:
    canonical: Any
    canonical_json: str
    hash: str


@dataclass(frozen=True, slots=True)
class CanonicalSnapshot:
    """An expression together with its canonical JSON and hash."""

    expr: Expr
    canonical_json: str
    hash: str


def canonicalize(value: Any) -> CanonicalResult:
    """Canonicalize an arbitrary JSON-like value (or model / expression)."""
    canonical = _canonical(_to_json_tree(value))
    canonical_json = _write(canonical)
    return CanonicalResult(canonical, canonical_json, sha256_hex(canonical_json))


def canonicalize_expr(expr: Expr) -> CanonicalSnapshot:
    if expr is None:
        raise CanonicalizationError("expression is required")
    result = canonicalize(expr_to_json_obj(expr))
    return CanonicalSnapshot(expr, result.canonical_json, result.hash)


def canonical_json(value: Any) -> str:
    return canonicalize(value).canonical_json


# ---------------------------------------------------------------------------
# Pre-normalization: host objects -> JSON tree (dict / list / str / bool /
# Decimal / None)
# ---------------------------------------------------------------------------


def _to_json_tree(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return _to_json_tree(value.model_dump(mode="json", by_alias=True))
    if isinstance(value, (And, Or, Not, Const, Atom)):
        return _to_json_tree(expr_to_json_obj(value))
    if isinstance(value, Enum):
        return _to_json_tree(value.value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise CanonicalizationError(f"Non-finite number cannot be canonicalized: {value}")
        return Decimal(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CanonicalizationError(f"Non-finite number cannot be canonicalized: {value}")
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return format_instant(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        tree = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError(f"Object keys must be strings, got {type(key).__name__}")
            tree[key] = _to_json_tree(item)
        return tree
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_tree(item) for item in value]
    raise CanonicalizationError(f"Unsupported type for canonicalization: {type(value).__name__}")


# ---------------------------------------------------------------------------
# Canonical rules
# ---------------------------------------------------------------------------


def _canonical(node: Any) -> Any:
    if node is None:
        return None
    if isinstance(node, dict):
        out = {}
        for key in sorted(node):
            child = _canonical(node[key])
            if not _is_empty(child):
                out[key] = child
        return out
    if isinstance(node, list):
        return _canonical_array(node)
    if isinstance(node, str):
        trimmed = node.strip()
        if not trimmed:
            return None
        return _SPACE.sub(" ", trimmed)
    if isinstance(node, bool):
        return node
    if isinstance(node, Decimal):
        return _strip_number(node)
    return node


def _canonical_array(items: list[Any]) -> list[Any] | None:
    seen: dict[tuple[str, str], Any] = {}
    for item in items:
        normalized = _canonical(item)
        if _is_empty(normalized):
            continue
        identity = (_type_tag(normalized), _write(normalized))
        seen.setdefault(identity, normalized)
    if not seen:
        return None
    return [seen[identity] for identity in sorted(seen)]


def _strip_number(number: Decimal) -> Decimal:
    if number.is_zero():
        return Decimal(0)
    sign, digits, exponent = number.as_tuple()
    digits = list(digits)
    while exponent < 0 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    if exponent > 0:
        digits.extend([0] * exponent)
        exponent = 0
    return Decimal((sign, tuple(digits), exponent))


def _is_empty(node: Any) -> bool:
    if node is None:
        return True
    if isinstance(node, (str, list, dict)):
        return len(node) == 0
    return False


def _type_tag(node: Any) -> str:
    if node is None:
        return _TAG_NULL
    if isinstance(node, bool):
        return _TAG_BOOL
    if isinstance(node, Decimal):
        return _TAG_NUMBER
    if isinstance(node, str):
        return _TAG_STRING
    if isinstance(node, dict):
        return _TAG_OBJECT
    if isinstance(node, list):
        return _TAG_ARRAY
    return _TAG_OTHER


# ---------------------------------------------------------------------------
# Compact writer
# ---------------------------------------------------------------------------


def _write(node: Any) -> str:
    if node is None:
        return "null"
    if node is True:
        return "true"
    if node is False:
        return "false"
    if isinstance(node, Decimal):
        return format(node, "f")
    if isinstance(node, str):
        return json.dumps(node, ensure_ascii=False)
    if isinstance(node, list):
        return "[" + ",".join(_write(item) for item in node) + "]"
    if isinstance(node, dict):
        return "{" + ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{_write(value)}" for key, value in node.items()
        ) + "}"
    raise CanonicalizationError(f"Unsupported canonical node: {type(node).__name__}")
