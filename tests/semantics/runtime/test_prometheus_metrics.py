"""
Semantic test: Pushgateway metrics.

Invariant:
Without a Pushgateway URL the client is a no-op. With one, an assembly is
recorded as slice/task/ready gauges labelled by provenance, operation and
status. Push failures are logged and never raised.
"""

# pylint: disable=protected-access
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ingest_planner.core.domain.types import PlannerWindow, TriggerNorm
from ingest_planner.planning.assembler import PlanAssembler
from ingest_planner.planning.expression import PlanExpressionBuilder
from ingest_planner.runtime import prometheus_metrics
from ingest_planner.runtime.prometheus_metrics import PrometheusMetricsClient

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_assembly():
    trigger = TriggerNorm(schedule_instance_id=1, provenance_code="PUBMED", operation_code="UPDATE")
    window = PlannerWindow.of(T0, T0 + timedelta(hours=1))
    return PlanAssembler().assemble(
        trigger, window, None, PlanExpressionBuilder().build(trigger, None)
    )


def test_client_without_url_is_disabled(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    client = PrometheusMetricsClient()

    client.record_assembly(make_assembly())
    client.push_all()

    assert not client.is_enabled()
    assert client._gauges == {}


def test_assembly_is_recorded_as_gauges(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON", raising=False)
    client = PrometheusMetricsClient("http://pushgateway:9091")

    client.record_assembly(make_assembly())

    labels = {"provenance": "PUBMED", "operation": "UPDATE", "status": "READY"}
    assert client._registry.get_sample_value("ingest_plan_slices", labels) == 1.0
    assert client._registry.get_sample_value("ingest_plan_tasks", labels) == 1.0
    assert client._registry.get_sample_value("ingest_plan_ready", labels) == 1.0


def test_grouping_key_is_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON", '{"env": "test", "n": 1}')
    assert PrometheusMetricsClient("http://pushgateway:9091")._grouping_key == {"env": "test"}

    monkeypatch.setenv("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON", "{broken")
    assert PrometheusMetricsClient("http://pushgateway:9091")._grouping_key == {}


def test_push_failure_is_swallowed(monkeypatch, caplog) -> None:
    def failing_push(**kwargs) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr(prometheus_metrics, "push_to_gateway", failing_push)
    client = PrometheusMetricsClient("http://pushgateway:9091")
    client.record_assembly(make_assembly())

    with caplog.at_level("WARNING"):
        client.push_all()

    assert "Prometheus push failed" in caplog.text


def test_push_sends_registry(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(prometheus_metrics, "push_to_gateway", lambda **kwargs: calls.append(kwargs))
    client = PrometheusMetricsClient("http://pushgateway:9091")

    client.push_all(job="planner-test")

    assert calls[0]["job"] == "planner-test"
    assert calls[0]["gateway"] == "http://pushgateway:9091"
    assert calls[0]["registry"] is client._registry
