"""
JSON wire form of the expression tree.

    {"type": "AND", "children": [...]}
    {"type": "NOT", "child": {...}}
    {"type": "CONST", "value": true}
    {"type": "ATOM", "field": "title", "op": "TERM",
     "value": {"kind": "TERM", "text": "heart", "match": "ANY", "case": "INSENSITIVE"}}

Range bounds are strings (ISO date, ISO instant or plain decimal) and are
omitted when open-ended. Unknown keys are ignored on decode.
"""

# pylint: disable=too-many-return-statements
from __future__ import annotations

import json
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from ingest_planner.core.domain.timeutil import format_instant, parse_instant
from ingest_planner.core.expr.ast import (
    And,
    Atom,
    AtomValue,
    Boundary,
    CaseSensitivity,
    Const,
    DateRange,
    DateTimeRange,
    ExistsFlag,
    Expr,
    InValues,
    Not,
    NumberRange,
    Operator,
    Or,
    TermValue,
    TextMatch,
    TokenValue,
)


class ExprDecodeError(ValueError):
    """Raised when a JSON object is not a valid expression."""


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def expr_to_json_obj(expr: Expr) -> dict[str, Any]:
    match expr:
        case And(children=children):
            return {"type": "AND", "children": [expr_to_json_obj(c) for c in children]}
        case Or(children=children):
            return {"type": "OR", "children": [expr_to_json_obj(c) for c in children]}
        case Not(child=child):
            return {"type": "NOT", "child": expr_to_json_obj(child)}
        case Const(value=value):
            return {"type": "CONST", "value": value}
        case Atom(field=field, op=op, value=value):
            return {
                "type": "ATOM",
                "field": field,
                "op": op.value,
                "value": _value_to_json_obj(value),
            }
    raise TypeError(f"Unsupported expression node: {type(expr).__name__}")


def _value_to_json_obj(value: AtomValue) -> dict[str, Any]:
    match value:
        case TermValue():
            return {
                "kind": "TERM",
                "text": value.text,
                "match": value.match.value,
                "case": value.case.value,
            }
        case InValues():
            return {"kind": "IN", "values": list(value.values), "case": value.case.value}
        case DateRange(from_date=lo, to_date=hi):
            return _range_obj(
                "DATE",
                None if lo is None else lo.isoformat(),
                None if hi is None else hi.isoformat(),
                value,
            )
        case DateTimeRange(from_instant=lo, to_instant=hi):
            return _range_obj(
                "DATETIME",
                None if lo is None else format_instant(lo),
                None if hi is None else format_instant(hi),
                value,
            )
        case NumberRange(from_number=lo, to_number=hi):
            return _range_obj(
                "NUMBER",
                None if lo is None else format(lo, "f"),
                None if hi is None else format(hi, "f"),
                value,
            )
        case ExistsFlag(should_exist=should_exist):
            return {"kind": "EXISTS", "shouldExist": should_exist}
        case TokenValue(token_type=token_type, token_value=token_value):
            return {"kind": "TOKEN", "tokenType": token_type, "tokenValue": token_value}
    raise TypeError(f"Unsupported atom value: {type(value).__name__}")


def _range_obj(range_type: str, lo: str | None, hi: str | None, value) -> dict[str, Any]:
    obj: dict[str, Any] = {"kind": "RANGE", "rangeType": range_type}
    if lo is not None:
        obj["from"] = lo
    if hi is not None:
        obj["to"] = hi
    obj["fromBoundary"] = value.from_boundary.value
    obj["toBoundary"] = value.to_boundary.value
    return obj


def expr_to_json(expr: Expr) -> str:
    return json.dumps(expr_to_json_obj(expr), ensure_ascii=False, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def expr_from_json_obj(obj: Any) -> Expr:
    if not isinstance(obj, dict):
        raise ExprDecodeError(f"Expected an object, got {type(obj).__name__}")
    node_type = _text(obj, "type").upper()

    if node_type in ("AND", "OR"):
        raw_children = obj.get("children") or []
        if not isinstance(raw_children, list):
            raise ExprDecodeError(f"{node_type} children must be a list")
        children = tuple(expr_from_json_obj(c) for c in raw_children)
        return And(children) if node_type == "AND" else Or(children)
    if node_type == "NOT":
        if "child" not in obj:
            raise ExprDecodeError("NOT missing child")
        return Not(expr_from_json_obj(obj["child"]))
    if node_type == "CONST":
        value = obj.get("value")
        if not isinstance(value, bool):
            raise ExprDecodeError(f"CONST value must be a boolean, got {value!r}")
        return Const(value)
    if node_type == "ATOM":
        raw_value = obj.get("value")
        if not isinstance(raw_value, dict):
            raise ExprDecodeError("ATOM missing value")
        op = _enum(Operator, _text(obj, "op"))
        try:
            return Atom(_text(obj, "field"), op, _value_from_json_obj(raw_value))
        except ValueError as exc:
            raise ExprDecodeError(str(exc)) from exc
    raise ExprDecodeError(f"Unknown expression type {node_type!r}")


def _value_from_json_obj(obj: dict[str, Any]) -> AtomValue:
    kind = _text(obj, "kind").upper()
    if kind == "TERM":
        return TermValue(
            _text(obj, "text"),
            _enum(TextMatch, obj.get("match", TextMatch.PHRASE.value)),
            _enum(CaseSensitivity, obj.get("case", CaseSensitivity.INSENSITIVE.value)),
        )
    if kind == "IN":
        values = obj.get("values") or []
        return InValues(
            tuple(str(v) for v in values),
            _enum(CaseSensitivity, obj.get("case", CaseSensitivity.INSENSITIVE.value)),
        )
    if kind == "RANGE":
        return _range_from_json_obj(obj)
    if kind == "EXISTS":
        return ExistsFlag(bool(obj.get("shouldExist")))
    if kind == "TOKEN":
        return TokenValue(_text(obj, "tokenType"), _text(obj, "tokenValue"))
    raise ExprDecodeError(f"Unknown atom value kind {kind!r}")


def _range_from_json_obj(obj: dict[str, Any]):
    range_type = _text(obj, "rangeType").upper()
    lo, hi = obj.get("from"), obj.get("to")
    from_boundary = _enum(Boundary, obj.get("fromBoundary", Boundary.CLOSED.value))
    to_boundary = _enum(Boundary, obj.get("toBoundary", Boundary.CLOSED.value))
    try:
        if range_type == "DATE":
            return DateRange(
                None if lo is None else date.fromisoformat(lo),
                None if hi is None else date.fromisoformat(hi),
                from_boundary,
                to_boundary,
            )
        if range_type == "DATETIME":
            return DateTimeRange(parse_instant(lo), parse_instant(hi), from_boundary, to_boundary)
        if range_type == "NUMBER":
            return NumberRange(
                None if lo is None else Decimal(str(lo)),
                None if hi is None else Decimal(str(hi)),
                from_boundary,
                to_boundary,
            )
    except (ValueError, InvalidOperation) as exc:
        raise ExprDecodeError(f"Malformed {range_type} range bound: {exc}") from exc
    raise ExprDecodeError(f"Unknown rangeType {range_type!r}")


def _text(obj: dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if value is None or not str(value).strip():
        raise ExprDecodeError(f"Missing required key {key!r}")
    return str(value)


def _enum(enum_cls, raw: Any):
    try:
        return enum_cls(str(raw).strip().upper())
    except ValueError as exc:
        raise ExprDecodeError(f"Unknown {enum_cls.__name__} {raw!r}") from exc


def expr_from_json(text: str) -> Expr:
    return expr_from_json_obj(json.loads(text))
