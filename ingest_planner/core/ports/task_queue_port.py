from __future__ import annotations

from typing import Protocol


class TaskQueuePort(Protocol):
    def count_queued_tasks(self, provenance_code: str, operation_code: str) -> int:
        """Return the number of tasks still waiting to be executed."""
