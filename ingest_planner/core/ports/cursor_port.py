from __future__ import annotations

from datetime import datetime
from typing import Protocol


class CursorReadPort(Protocol):
    """Read-only view of the per-source cursor. The planner never writes it."""

    def load_forward_watermark(self, provenance_code: str, operation_code: str) -> datetime | None:
        """Return the highest committed instant, or None before the first run."""
