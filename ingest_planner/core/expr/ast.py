"""
Query expression tree.

``Expr`` is a closed union of immutable nodes: ``And``, ``Or``, ``Not``,
``Const`` and ``Atom``. Consumers destructure nodes with ``match`` instead
of visitors. An ``Atom`` is ``field + operator + value``; the value is itself
a closed union whose allowed kinds depend on the operator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Union

from ingest_planner.core.domain.timeutil import ensure_utc


class Operator(str, Enum):
    TERM = "TERM"
    IN = "IN"
    RANGE = "RANGE"
    EXISTS = "EXISTS"
    TOKEN = "TOKEN"


class TextMatch(str, Enum):
    PHRASE = "PHRASE"
    EXACT = "EXACT"
    ANY = "ANY"
    ALL = "ALL"


class CaseSensitivity(str, Enum):
    SENSITIVE = "SENSITIVE"
    INSENSITIVE = "INSENSITIVE"

    @classmethod
    def of(cls, case_sensitive: bool) -> CaseSensitivity:
        return cls.SENSITIVE if case_sensitive else cls.INSENSITIVE


class Boundary(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


# ---------------------------------------------------------------------------
# Atom values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TermValue:
    text: str
    match: TextMatch = TextMatch.PHRASE
    case: CaseSensitivity = CaseSensitivity.INSENSITIVE


@dataclass(frozen=True, slots=True)
class InValues:
    values: tuple[str, ...]
    case: CaseSensitivity = CaseSensitivity.INSENSITIVE


@dataclass(frozen=True, slots=True)
class DateRange:
    from_date: date | None
    to_date: date | None
    from_boundary: Boundary = Boundary.CLOSED
    to_boundary: Boundary = Boundary.CLOSED


@dataclass(frozen=True, slots=True)
class DateTimeRange:
    from_instant: datetime | None
    to_instant: datetime | None
    from_boundary: Boundary = Boundary.CLOSED
    to_boundary: Boundary = Boundary.CLOSED


@dataclass(frozen=True, slots=True)
class NumberRange:
    from_number: Decimal | None
    to_number: Decimal | None
    from_boundary: Boundary = Boundary.CLOSED
    to_boundary: Boundary = Boundary.CLOSED


@dataclass(frozen=True, slots=True)
class ExistsFlag:
    should_exist: bool


@dataclass(frozen=True, slots=True)
class TokenValue:
    token_type: str
    token_value: str


AtomValue = Union[TermValue, InValues, DateRange, DateTimeRange, NumberRange, ExistsFlag, TokenValue]
RangeValue = Union[DateRange, DateTimeRange, NumberRange]

# Operator -> value kinds it accepts.
_ALLOWED_VALUES: dict[Operator, tuple[type, ...]] = {
    Operator.TERM: (TermValue,),
    Operator.IN: (InValues,),
    Operator.RANGE: (DateRange, DateTimeRange, NumberRange),
    Operator.EXISTS: (ExistsFlag,),
    Operator.TOKEN: (TokenValue,),
}


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Const:
    value: bool


@dataclass(frozen=True, slots=True)
class Not:
    child: Expr


@dataclass(frozen=True, slots=True)
class And:
    children: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Or:
    children: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Atom:
    field: str
    op: Operator
    value: AtomValue

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("atom field must be non-empty")
        if not isinstance(self.value, _ALLOWED_VALUES[self.op]):
            raise ValueError(
                f"{type(self.value).__name__} is not a valid value for operator {self.op.value}"
            )


Expr = Union[And, Or, Not, Const, Atom]

TRUE = Const(True)
FALSE = Const(False)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def const_true() -> Const:
    return TRUE


def const_false() -> Const:
    return FALSE


def and_(children: Iterable[Expr]) -> And:
    return And(tuple(children))


def or_(children: Iterable[Expr]) -> Or:
    return Or(tuple(children))


def not_(child: Expr) -> Not:
    return Not(child)


def term(
    field: str,
    value: str,
    match: TextMatch = TextMatch.PHRASE,
    case_sensitive: bool = False,
) -> Atom:
    return Atom(field, Operator.TERM, TermValue(value, match, CaseSensitivity.of(case_sensitive)))


def in_(field: str, values: Iterable[str], case_sensitive: bool = False) -> Atom:
    return Atom(field, Operator.IN, InValues(tuple(values), CaseSensitivity.of(case_sensitive)))


def _boundary(include: bool) -> Boundary:
    return Boundary.CLOSED if include else Boundary.OPEN


def range_date(
    field: str,
    from_date: date | None,
    to_date: date | None,
    include_from: bool = True,
    include_to: bool = True,
) -> Atom:
    return Atom(
        field,
        Operator.RANGE,
        DateRange(from_date, to_date, _boundary(include_from), _boundary(include_to)),
    )


def range_datetime(
    field: str,
    from_instant: datetime | None,
    to_instant: datetime | None,
    include_from: bool = True,
    include_to: bool = True,
) -> Atom:
    return Atom(
        field,
        Operator.RANGE,
        DateTimeRange(
            ensure_utc(from_instant),
            ensure_utc(to_instant),
            _boundary(include_from),
            _boundary(include_to),
        ),
    )


def range_number(
    field: str,
    from_number: Decimal | int | str | None,
    to_number: Decimal | int | str | None,
    include_from: bool = True,
    include_to: bool = True,
) -> Atom:
    return Atom(
        field,
        Operator.RANGE,
        NumberRange(
            None if from_number is None else Decimal(str(from_number)),
            None if to_number is None else Decimal(str(to_number)),
            _boundary(include_from),
            _boundary(include_to),
        ),
    )


def exists(field: str, should_exist: bool = True) -> Atom:
    return Atom(field, Operator.EXISTS, ExistsFlag(should_exist))


def token(token_type: str, token_value: str, field: str | None = None) -> Atom:
    """TOKEN atom; the field defaults to the token type."""
    return Atom(field or token_type, Operator.TOKEN, TokenValue(token_type, token_value))
