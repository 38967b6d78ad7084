from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from ingest_planner.core.domain.plan import PlanAssembly

LOGGER = logging.getLogger(__name__)

JOB_NAME = "ingest_planner"


class PrometheusMetricsClient:
    """Best-effort Pushgateway client for planner runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL of the Pushgateway, e.g.
      http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object of string labels
      used as grouping key, e.g. {"provenance": "PUBMED"}.

    Without a URL every call is a no-op. Push failures are logged and
    swallowed: metrics never fail a planning run.
    """

    def __init__(self, pushgateway_url: str | None = None) -> None:
        self._pushgateway_url = pushgateway_url or os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return bool(self._pushgateway_url)

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            return {}

        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def set_gauge(self, *, name: str, value: float, labels: dict[str, str]) -> None:
        if not self.is_enabled():
            return

        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name,
                labelnames=sorted(labels),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def record_assembly(self, assembly: PlanAssembly) -> None:
        plan = assembly.plan
        labels = {
            "provenance": plan.provenance_code,
            "operation": plan.operation_code,
            "status": assembly.status.value,
        }
        self.set_gauge(name="ingest_plan_slices", value=len(assembly.slices), labels=labels)
        self.set_gauge(name="ingest_plan_tasks", value=len(assembly.tasks), labels=labels)
        self.set_gauge(
            name="ingest_plan_ready",
            value=1.0 if assembly.is_ready() else 0.0,
            labels=labels,
        )

    def push_all(self, *, job: str = JOB_NAME) -> None:
        if not self.is_enabled():
            return

        try:
            push_to_gateway(
                gateway=self._pushgateway_url,
                job=job,
                registry=self._registry,
                grouping_key=self._grouping_key,
            )
        except OSError as exc:
            LOGGER.warning(
                "Prometheus push failed: %s",
                exc,
                extra={"job": job, "gateway": self._pushgateway_url},
            )
            return

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
