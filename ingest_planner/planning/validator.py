"""Pre-assembly validation.

Every failure here is fatal for the current trigger and is raised before a
Plan exists, as ``IngestConfigurationError`` carrying a coded definition from
the injected ``ErrorCatalog``. Configuration smells that the planner can
work around are only logged.
"""

from __future__ import annotations

import logging

from ingest_planner.core.domain import errors
from ingest_planner.core.domain.enums import OffsetType, WindowMode
from ingest_planner.core.domain.errors import ErrorCatalog, IngestConfigurationError
from ingest_planner.core.domain.types import PlannerWindow, ProvenanceConfigSnapshot, TriggerNorm
from ingest_planner.planning.planner_config import PlannerSettings

LOGGER = logging.getLogger(__name__)


class PlannerValidator:
    def __init__(
        self,
        settings: PlannerSettings | None = None,
        catalog: ErrorCatalog | None = None,
    ) -> None:
        self._settings = settings or PlannerSettings()
        self._catalog = catalog or ErrorCatalog.default()

    def validate_before_assemble(
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
        window: PlannerWindow | None,
        queued_tasks: int,
    ) -> None:
        LOGGER.debug(
            "Validating plan assembly",
            extra={
                "provenance_code": trigger.provenance_code,
                "operation_code": trigger.operation_code.value,
                "queued_tasks": queued_tasks,
            },
        )

        self._validate_window(trigger, window)
        self._validate_backpressure(trigger, queued_tasks)
        self._validate_capabilities(trigger, snapshot)

    # ------------------------------------------------------------------
    # Window
    # ------------------------------------------------------------------

    def _validate_window(self, trigger: TriggerNorm, window: PlannerWindow | None) -> None:
        # UPDATE may run without a time window.
        if trigger.is_update():
            return

        if window is None or not window.is_bounded():
            raise self._error(
                trigger,
                errors.TIME_WINDOW_INVALID,
                f"Time window is required for {trigger.operation_code.value} operation",
            )

        if window.window_from >= window.window_to:
            raise self._error(
                trigger,
                errors.TIME_WINDOW_INVALID,
                f"Invalid window: from={window.window_from} must be before to={window.window_to}",
            )

        duration = window.duration()
        if duration > self._settings.max_window:
            raise self._error(
                trigger,
                errors.TIME_WINDOW_INVALID,
                f"Window too large: {duration} exceeds maximum {self._settings.max_window}",
            )
        if duration < self._settings.min_window:
            raise self._error(
                trigger,
                errors.TIME_WINDOW_INVALID,
                f"Window too small: {duration} below minimum {self._settings.min_window}",
            )

    # ------------------------------------------------------------------
    # Backpressure
    # ------------------------------------------------------------------

    def _validate_backpressure(self, trigger: TriggerNorm, queued_tasks: int) -> None:
        threshold = self._settings.queue_threshold
        if queued_tasks > threshold:
            raise self._error(
                trigger,
                errors.BACKPRESSURE_APPLIED,
                f"Too many queued tasks ({queued_tasks} > {threshold}), "
                "applying backpressure on plan trigger",
            )

    # ------------------------------------------------------------------
    # Source capabilities
    # ------------------------------------------------------------------

    def _validate_capabilities(
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
    ) -> None:
        if snapshot is None:
            LOGGER.warning(
                "Provenance config snapshot is missing, skipping capability validation",
                extra={"provenance_code": trigger.provenance_code},
            )
            return

        offset = snapshot.window_offset
        full_mode = offset is None or WindowMode.matches(offset.window_mode_code, WindowMode.FULL)

        if (
            not trigger.is_update()
            and full_mode
            and trigger.requested_window_from is None
        ):
            raise self._error(
                trigger,
                errors.CAPABILITY_MISMATCH,
                f"Source {trigger.provenance_code} does not support automatic incremental "
                f"{trigger.operation_code.value.lower()}; explicit window required",
            )

        if offset is not None and (
            OffsetType.matches(offset.offset_type_code, OffsetType.DATE)
            or OffsetType.matches(offset.offset_type_code, OffsetType.COMPOSITE)
        ):
            if not offset.offset_field_name and not offset.default_date_field_name:
                raise self._error(
                    trigger,
                    errors.CAPABILITY_MISMATCH,
                    f"Source {trigger.provenance_code} configured for {offset.offset_type_code} "
                    "offset but missing date field configuration",
                )

        if not trigger.is_update() and offset is not None and not full_mode:
            if offset.window_size_value is None or offset.window_size_value <= 0:
                LOGGER.warning(
                    "Window size not configured or invalid, falling back to defaults",
                    extra={"provenance_code": trigger.provenance_code},
                )
            if offset.max_window_span_seconds is not None and offset.max_window_span_seconds <= 0:
                LOGGER.warning(
                    "Invalid max window span configuration: %s",
                    offset.max_window_span_seconds,
                    extra={"provenance_code": trigger.provenance_code},
                )

    def _error(self, trigger: TriggerNorm, code: str, message: str) -> IngestConfigurationError:
        LOGGER.info(
            "Plan validation rejected trigger: %s",
            message,
            extra={"error_code": code, "provenance_code": trigger.provenance_code},
        )
        return IngestConfigurationError(
            message,
            provenance_code=trigger.provenance_code,
            operation_code=trigger.operation_code.value,
            endpoint=trigger.endpoint_name,
            error=self._catalog.lookup(code),
        )
