"""Deterministic identity keys for plans and tasks."""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime

from ingest_planner.core.domain.timeutil import epoch_millis


def sha256_hex(text: str) -> str:
    """Return the lowercase hex SHA-256 of ``text`` encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_plan_key(
    *,
    provenance_code: str,
    operation_code: str,
    endpoint: str | None,
    window_from: datetime | None,
    window_to: datetime | None,
) -> str:
    """Return the natural key used for upsert-based plan deduplication.

    Format: ``{provenance}:{operation}[:{endpoint}][:{fromMs}-{toMs}]``.
    The endpoint is lower-cased; the window part is present only when both
    bounds are known.
    """
    parts = [provenance_code, operation_code]
    if endpoint:
        parts.append(endpoint.lower())
    key = ":".join(parts)
    if window_from is not None and window_to is not None:
        key += f":{epoch_millis(window_from)}-{epoch_millis(window_to)}"
    return key


def build_task_idempotency_key(
    *,
    provenance_code: str,
    operation_code: str,
    slice_signature_hash: str | None,
) -> str:
    """Return the task idempotency key.

    ``base64url(sha256("{provenance}|{operation}|{signature}"))`` without
    padding, so the same logical slice always maps to the same task key.
    """
    material = "|".join(
        [provenance_code, operation_code, slice_signature_hash or ""]
    ).encode("utf-8")
    digest = hashlib.sha256(material).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
