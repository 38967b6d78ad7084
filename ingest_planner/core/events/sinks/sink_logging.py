"""
Logging event sink.
"""
from __future__ import annotations

import logging

from ingest_planner.core.events.events import PlanningEvent, event_to_json_obj


class LoggingEventSink:
    """Logs planning events through the standard logging module."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self._logger = logger
        self._level = level

    def on_event(self, event: PlanningEvent) -> None:
        payload = event_to_json_obj(event)
        self._logger.log(
            self._level,
            "planning_event %s",
            payload["type"],
            extra={"event_type": payload["type"], "event": payload},
        )
