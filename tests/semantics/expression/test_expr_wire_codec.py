"""
Semantic test: expression JSON wire form.

Invariant:
Expressions encode to a tagged JSON tree and decode back to an equal tree.
Malformed input is rejected with ExprDecodeError, never silently coerced.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from ingest_planner.core.expr.ast import (
    Atom,
    DateTimeRange,
    Operator,
    TermValue,
    and_,
    exists,
    in_,
    not_,
    or_,
    range_date,
    range_datetime,
    range_number,
    term,
    token,
)
from ingest_planner.core.expr.codec import (
    ExprDecodeError,
    expr_from_json,
    expr_from_json_obj,
    expr_to_json,
    expr_to_json_obj,
)


def test_datetime_range_wire_shape() -> None:
    expr = range_datetime(
        "PDAT",
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 1, tzinfo=timezone.utc),
        include_from=True,
        include_to=False,
    )

    assert expr_to_json_obj(expr) == {
        "type": "ATOM",
        "field": "PDAT",
        "op": "RANGE",
        "value": {
            "kind": "RANGE",
            "rangeType": "DATETIME",
            "from": "2024-01-01T00:00:00Z",
            "to": "2024-01-01T01:00:00Z",
            "fromBoundary": "CLOSED",
            "toBoundary": "OPEN",
        },
    }


def test_open_ended_range_omits_missing_bound() -> None:
    obj = expr_to_json_obj(range_number("citations", 10, None))

    assert "to" not in obj["value"]
    assert obj["value"]["from"] == "10"


def test_composite_expression_survives_round_trip() -> None:
    expr = and_(
        [
            term("title", "heart attack"),
            or_([in_("lang", ["eng", "ger"]), not_(exists("retracted", True))]),
            range_date("pubdate", date(2020, 1, 1), None, include_from=False),
            range_number("citations", "1.5", 100),
            token("ISSN", "0028-0836", field="journal"),
        ]
    )

    assert expr_from_json(expr_to_json(expr)) == expr


def test_decode_accepts_lowercase_codes() -> None:
    obj = {
        "type": "atom",
        "field": "title",
        "op": "term",
        "value": {"kind": "term", "text": "heart", "match": "any"},
    }

    expr = expr_from_json_obj(obj)

    assert isinstance(expr, Atom)
    assert expr.op is Operator.TERM
    assert isinstance(expr.value, TermValue)
    assert expr.value.match.value == "ANY"


def test_decode_datetime_range_normalizes_to_utc() -> None:
    obj = {
        "type": "ATOM",
        "field": "EDAT",
        "op": "RANGE",
        "value": {"kind": "RANGE", "rangeType": "DATETIME", "from": "2024-01-01T08:00:00+08:00"},
    }

    value = expr_from_json_obj(obj).value

    assert isinstance(value, DateTimeRange)
    assert value.from_instant == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert value.to_instant is None


@pytest.mark.parametrize(
    "bad",
    [
        "not-an-object",
        {"type": "XOR", "children": []},
        {"type": "NOT"},
        {"type": "ATOM", "field": "title", "op": "TERM"},
        {"type": "ATOM", "field": "title", "op": "LIKE", "value": {"kind": "TERM", "text": "x"}},
        {"type": "ATOM", "field": "title", "op": "RANGE", "value": {"kind": "TERM", "text": "x"}},
        {"type": "ATOM", "field": "d", "op": "RANGE", "value": {"kind": "RANGE", "rangeType": "GEO"}},
        {
            "type": "ATOM",
            "field": "d",
            "op": "RANGE",
            "value": {"kind": "RANGE", "rangeType": "DATE", "from": "2024-13-45"},
        },
        {"type": "AND", "children": {"type": "CONST", "value": True}},
        {"type": "CONST", "value": "false"},
        {"type": "CONST", "value": 0},
        {"type": "CONST"},
    ],
)
def test_malformed_input_is_rejected(bad) -> None:
    with pytest.raises(ExprDecodeError):
        expr_from_json_obj(bad)


def test_atom_rejects_value_kind_mismatch() -> None:
    with pytest.raises(ValueError):
        Atom("title", Operator.IN, TermValue("x"))
