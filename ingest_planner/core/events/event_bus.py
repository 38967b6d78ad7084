"""
Synchronous planning event bus.

The bus only carries ``PlanningEvent`` values. Sinks run inline in
registration order and their errors propagate to the emitter. A closed bus
accepts no further events or sinks.
"""
from __future__ import annotations

import logging
from typing import Iterable, Protocol

from ingest_planner.core.events.events import PLANNING_EVENT_TYPES, PlanningEvent

LOGGER = logging.getLogger(__name__)


class PlanningEventSink(Protocol):
    def on_event(self, event: PlanningEvent) -> None:
        """Consume a planning event."""


class EventBus:
    """Dispatches planning events to registered sinks, in registration order."""

    def __init__(self, sinks: Iterable[PlanningEventSink] | None = None) -> None:
        self._sinks: list[PlanningEventSink] = list(sinks) if sinks is not None else []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: PlanningEventSink) -> None:
        if self._closed:
            raise RuntimeError("Cannot register a sink on a closed event bus")
        self._sinks.append(sink)

    def emit(self, event: PlanningEvent) -> None:
        if not isinstance(event, PLANNING_EVENT_TYPES):
            raise TypeError(f"Not a planning event: {type(event).__name__}")
        if self._closed:
            raise RuntimeError(f"Event bus is closed, dropped {type(event).__name__}")

        LOGGER.debug(
            "dispatch %s",
            type(event).__name__,
            extra={"event_type": type(event).__name__, "sink_count": len(self._sinks)},
        )
        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method. Idempotent.
        """
        if self._closed:
            return

        self._closed = True
        for sink in self._sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()


class NullEventBus(EventBus):
    """Bus without sinks, for callers that do not observe planning events."""

    def __init__(self) -> None:
        super().__init__(())
