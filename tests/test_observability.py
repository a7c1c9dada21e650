"""Tests for metrics rendering, JSON logging and tracing toggles."""

from __future__ import annotations

import io
import json
import logging

from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
import pytest

from bluegreen.observability.logging import JsonFormatter, configure_logging
from bluegreen.observability.metrics import Counter, Histogram, render_metrics
from bluegreen.observability.telemetry import (
    DISABLE_ENV,
    get_tracer,
    rollout_span,
    setup_tracing,
    shutdown_tracing,
)


def test_counter_renders_labels() -> None:
    counter = Counter(name="ops_total", description="ops", label_names=("kind",))
    counter.labels(kind="PatchServiceSelector").inc()
    counter.labels(kind="PatchServiceSelector").inc()
    assert counter.render() == [
        "# HELP ops_total ops",
        "# TYPE ops_total counter",
        'ops_total{kind="PatchServiceSelector"} 2.0',
    ]


def test_histogram_timer_observes_once() -> None:
    histogram = Histogram(name="sync_seconds", description="sync", label_names=("stage",))
    with histogram.labels(stage="apply").time():
        pass
    assert histogram.labels(stage="apply").count == 1
    assert 'sync_seconds_count{stage="apply"} 1' in histogram.render()


def test_json_formatter_merges_extra_fields() -> None:
    record = logging.LogRecord("bluegreen", logging.INFO, __file__, 1, "rollout.event", None, None)
    record.extra = {"rollout": "default/guestbook"}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "rollout.event"
    assert payload["rollout"] == "default/guestbook"
    assert payload["level"] == "INFO"


def test_disabled_tracing_returns_noop_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DISABLE_ENV, "1")
    with get_tracer("test").start_as_current_span("sync") as span:
        span.set_attribute("rollout", "default/guestbook")


def test_rollout_span_is_tagged_with_rollout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DISABLE_ENV, raising=False)
    exporter = InMemorySpanExporter()
    setup_tracing("bluegreen-test", exporter=exporter)
    with rollout_span("test", "rollout.sync", "default", "guestbook"):
        pass
    (span,) = exporter.get_finished_spans()
    shutdown_tracing()
    assert span.name == "rollout.sync"
    assert span.attributes["rollout.name"] == "guestbook"
    assert span.attributes["rollout.namespace"] == "default"


def test_registry_renders_every_metric() -> None:
    body = render_metrics()
    for name in (
        "bluegreen_reconcile_operations_total",
        "bluegreen_reconcile_issues_total",
        "bluegreen_sync_retries_total",
        "bluegreen_sync_duration_seconds",
    ):
        assert f"# TYPE {name}" in body


def test_configure_logging_reads_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLUEGREEN_LOG_LEVEL", "warning")
    stream = io.StringIO()
    configure_logging(stream=stream)
    log = logging.getLogger("bluegreen.test")
    log.info("rollout.reconciled")
    log.warning("service.not_found", extra={"extra": {"service": "active"}})
    lines = stream.getvalue().splitlines()
    configure_logging(logging.INFO)
    assert len(lines) == 1
    assert json.loads(lines[0])["service"] == "active"
