"""
Append-only JSONL recorder sink.
"""
from __future__ import annotations

import json
from pathlib import Path

from ingest_planner.core.events.events import PlanningEvent, event_to_json_obj


class FileRecorderSink:
    """Writes each planning event as one JSON line tagged with its event type."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self._path.open("a", encoding="utf-8")
        self._closed = False

    def on_event(self, event: PlanningEvent) -> None:
        if self._closed:
            raise RuntimeError(f"FileRecorderSink for {self._path} is closed")
        record = event_to_json_obj(event)
        self._fh.write(json.dumps(record, ensure_ascii=False, sort_keys=True) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._fh.flush()
        self._fh.close()
        self._closed = True
