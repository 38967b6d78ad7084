"""Planner exception hierarchy and error-code catalog.

The catalog is an immutable value built once at process start and passed to
the components that raise coded errors. There is no global registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

PREFIX = "INGEST"

INVALID_PARAMETER = f"{PREFIX}_4001"
MISSING_REQUIRED_PARAMETER = f"{PREFIX}_4002"
PARAMETER_FORMAT_ERROR = f"{PREFIX}_4003"
TIME_WINDOW_INVALID = f"{PREFIX}_5002"
BACKPRESSURE_APPLIED = f"{PREFIX}_5005"
CAPABILITY_MISMATCH = f"{PREFIX}_5006"


@dataclass(frozen=True, slots=True)
class ErrorDefinition:
    code: str
    category: str  # C(lient) / B(usiness) / S(erver)
    http_status: int
    title: str


@dataclass(frozen=True, slots=True)
class ErrorCatalog:
    """Read-only lookup of error definitions keyed by code."""

    entries: Mapping[str, ErrorDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @classmethod
    def default(cls) -> ErrorCatalog:
        definitions = [
            ErrorDefinition(INVALID_PARAMETER, "C", 400, "Invalid parameter"),
            ErrorDefinition(MISSING_REQUIRED_PARAMETER, "C", 400, "Missing required parameter"),
            ErrorDefinition(PARAMETER_FORMAT_ERROR, "C", 400, "Parameter format error"),
            ErrorDefinition(TIME_WINDOW_INVALID, "B", 422, "Time window invalid"),
            ErrorDefinition(BACKPRESSURE_APPLIED, "B", 429, "Too many queued tasks"),
            ErrorDefinition(CAPABILITY_MISMATCH, "B", 422, "Source capability mismatch"),
        ]
        return cls(entries={d.code: d for d in definitions})

    def merge(self, other: ErrorCatalog | None) -> ErrorCatalog:
        """Return a new catalog with ``other`` entries overriding this one."""
        if other is None:
            return self
        merged = dict(self.entries)
        merged.update(other.entries)
        return ErrorCatalog(entries=merged)

    def lookup(self, code: str) -> ErrorDefinition:
        definition = self.entries.get(code)
        if definition is None:
            return ErrorDefinition(code, "U", 500, "Unknown error")
        return definition


class IngestPlannerError(Exception):
    """Base class for planner errors."""


class IngestConfigurationError(IngestPlannerError):
    """Raised when a trigger cannot be planned under the current configuration.

    Fatal for the current trigger; raised before any Plan is constructed.
    """

    def __init__(
        self,
        message: str,
        *,
        provenance_code: str | None = None,
        operation_code: str | None = None,
        endpoint: str | None = None,
        error: ErrorDefinition | None = None,
    ) -> None:
        super().__init__(message)
        self.provenance_code = provenance_code
        self.operation_code = operation_code
        self.endpoint = endpoint
        self.error = error

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None


class CanonicalizationError(IngestPlannerError, ValueError):
    """Raised for input that cannot be canonicalized (internal error)."""


class PlanStateError(IngestPlannerError):
    """Raised on an illegal plan status transition."""


class BindingError(IngestPlannerError):
    """Raised when a slice or task is bound twice or to an unknown slice."""


class IngestRequestError(IngestPlannerError):
    """Raised when trigger, config or settings input cannot be read.

    Carries a client error definition (``INGEST_400x``).
    """

    def __init__(self, message: str, *, error: ErrorDefinition) -> None:
        super().__init__(message)
        self.error = error

    @property
    def code(self) -> str:
        return self.error.code
