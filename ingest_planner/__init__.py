"""Public API for the ingest_planner package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Domain Types (trigger, configuration, plan records)
# ----------------------------------------------------------------------
from ingest_planner.core.domain.enums import (
    AssemblyStatus,
    OperationCode,
    PlanStatus,
    Priority,
    SliceStrategyCode,
)
from ingest_planner.core.domain.errors import (
    BindingError,
    CanonicalizationError,
    ErrorCatalog,
    IngestConfigurationError,
    IngestRequestError,
    PlanStateError,
)
from ingest_planner.core.domain.plan import Plan, PlanAssembly, Slice, Task
from ingest_planner.core.domain.types import (
    PlanIngestionRequest,
    PlannerWindow,
    ProvenanceConfigSnapshot,
    TriggerNorm,
    WindowOffsetConfig,
)

# ----------------------------------------------------------------------
# Expression and canonical JSON
# ----------------------------------------------------------------------
from ingest_planner.core.expr.canonical import canonicalize, canonicalize_expr

# ----------------------------------------------------------------------
# Planning API
# ----------------------------------------------------------------------
from ingest_planner.planning.assembler import PlanAssembler
from ingest_planner.planning.expression import PlanExpression, PlanExpressionBuilder
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.service import PlanIngestionResult, PlanIngestionService
from ingest_planner.planning.slicing.registry import SlicePlannerRegistry
from ingest_planner.planning.slicing.single_slicer import SingleSlicePlanner
from ingest_planner.planning.slicing.time_slicer import TimeSlicePlanner
from ingest_planner.planning.validator import PlannerValidator
from ingest_planner.planning.window import WindowResolver

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Orchestration
    "PlanIngestionService",
    "PlanIngestionResult",

    # Planning components
    "WindowResolver",
    "PlanExpressionBuilder",
    "PlanExpression",
    "PlannerValidator",
    "PlanAssembler",
    "SlicePlannerRegistry",
    "TimeSlicePlanner",
    "SingleSlicePlanner",
    "PlannerSettings",

    # Canonical JSON
    "canonicalize",
    "canonicalize_expr",

    # Domain
    "PlanIngestionRequest",
    "TriggerNorm",
    "ProvenanceConfigSnapshot",
    "WindowOffsetConfig",
    "PlannerWindow",
    "Plan",
    "Slice",
    "Task",
    "PlanAssembly",
    "OperationCode",
    "Priority",
    "PlanStatus",
    "AssemblyStatus",
    "SliceStrategyCode",

    # Errors
    "ErrorCatalog",
    "IngestConfigurationError",
    "IngestRequestError",
    "CanonicalizationError",
    "PlanStateError",
    "BindingError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("ingest-planner")
except PackageNotFoundError:
    __version__ = "0.0.0"
