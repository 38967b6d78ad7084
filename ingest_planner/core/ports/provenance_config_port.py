"""Registry-facing configuration boundary.

Implementations fetch the read-only configuration snapshot for one
(provenance, endpoint, operation) triple from the provenance registry.
"""

from __future__ import annotations

from typing import Protocol

from ingest_planner.core.domain.types import ProvenanceConfigSnapshot


class ProvenanceConfigPort(Protocol):
    def fetch_config(
        self,
        provenance_code: str,
        endpoint: str | None,
        operation_code: str,
    ) -> ProvenanceConfigSnapshot | None:
        """Return the current snapshot, or None when the registry has none."""
