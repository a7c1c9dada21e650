"""Prometheus-style metrics for the sync loop, served without external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
import logging
from threading import Lock, Thread
import time
from types import TracebackType

logger = logging.getLogger(__name__)


@dataclass
class _LabeledCounter:
    value: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self.value += amount


@dataclass
class _LabeledHistogram:
    count: int = 0
    total: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def observe(self, value: float) -> None:
        with self._lock:
            self.count += 1
            self.total += value

    def time(self) -> _Timer:
        return _Timer(self)


@dataclass
class Counter:
    name: str
    description: str
    label_names: tuple[str, ...]
    values: dict[tuple[str, ...], _LabeledCounter] = field(default_factory=dict)

    def labels(self, **labels: str) -> _LabeledCounter:
        key = tuple(labels[name] for name in self.label_names)
        return self.values.setdefault(key, _LabeledCounter())

    def render(self) -> list[str]:
        lines = [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} counter"]
        for labels, counter in self.values.items():
            lines.append(f"{self.name}{{{_label_str(self.label_names, labels)}}} {counter.value}")
        return lines


@dataclass
class Histogram:
    """Count and sum per label set, exposed as a Prometheus summary."""

    name: str
    description: str
    label_names: tuple[str, ...]
    values: dict[tuple[str, ...], _LabeledHistogram] = field(default_factory=dict)

    def labels(self, **labels: str) -> _LabeledHistogram:
        key = tuple(labels[name] for name in self.label_names)
        return self.values.setdefault(key, _LabeledHistogram())

    def render(self) -> list[str]:
        lines = [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} summary"]
        for labels, histogram in self.values.items():
            label_str = _label_str(self.label_names, labels)
            lines.append(f"{self.name}_count{{{label_str}}} {histogram.count}")
            lines.append(f"{self.name}_sum{{{label_str}}} {histogram.total}")
        return lines


def _label_str(names: tuple[str, ...], values: tuple[str, ...]) -> str:
    return ",".join(f'{name}="{value}"' for name, value in zip(names, values))


RECONCILE_OPERATIONS = Counter(
    name="bluegreen_reconcile_operations_total",
    description="Operations applied to the cluster by kind",
    label_names=("kind",),
)

RECONCILE_ISSUES = Counter(
    name="bluegreen_reconcile_issues_total",
    description="Non-fatal problems found while reconciling, by reason",
    label_names=("reason",),
)

SYNC_RETRIES = Counter(
    name="bluegreen_sync_retries_total",
    description="Syncs restarted from a fresh snapshot, by error",
    label_names=("error",),
)

SYNC_DURATION = Histogram(
    name="bluegreen_sync_duration_seconds",
    description="Duration of rollout sync stages",
    label_names=("stage",),
)

REGISTRY: tuple[Counter | Histogram, ...] = (
    RECONCILE_OPERATIONS,
    RECONCILE_ISSUES,
    SYNC_RETRIES,
    SYNC_DURATION,
)


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path != "/metrics":
            self.send_response(404)
            self.end_headers()
            return
        body = render_metrics().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; version=0.0.4")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("metrics.request", extra={"extra": {"request": format % args}})


_server_thread: Thread | None = None


def start_metrics_server(port: int = 8005) -> None:
    """Serve ``/metrics`` from a daemon thread; later calls are ignored."""
    global _server_thread
    if _server_thread:
        return

    server = HTTPServer(("0.0.0.0", port), _MetricsHandler)
    _server_thread = Thread(target=server.serve_forever, name="metrics", daemon=True)
    _server_thread.start()
    logger.info("metrics.started", extra={"extra": {"port": port}})


def render_metrics() -> str:
    lines = [line for metric in REGISTRY for line in metric.render()]
    return "\n".join(lines) + "\n"


class _Timer:
    def __init__(self, histogram: _LabeledHistogram) -> None:
        self._histogram = histogram
        self._start: float | None = None

    def __enter__(self) -> _Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._start is None:
            return
        self._histogram.observe(time.perf_counter() - self._start)
