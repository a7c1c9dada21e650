"""OpenTelemetry tracing for the rollout controller."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DISABLE_ENV = "BLUEGREEN_DISABLE_TRACING"


class _NoOpSpan:
    def __enter__(self) -> _NoOpSpan:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        return None

    def set_attribute(self, key: str, value: Any) -> None:
        return None


class _NoOpTracer:
    def start_as_current_span(self, name: str) -> _NoOpSpan:
        return _NoOpSpan()


_NOOP_TRACER = _NoOpTracer()
_provider: Any | None = None


def tracing_disabled() -> bool:
    return os.getenv(DISABLE_ENV) == "1"


def setup_tracing(service_name: str, exporter: Any | None = None) -> None:
    """Install a tracer provider for ``service_name``.

    Spans go to the console unless an exporter is given; an injected exporter
    is flushed synchronously so callers can inspect spans right away.
    """
    global _provider
    if tracing_disabled():
        logger.info("Tracing disabled", extra={"extra": {"service": service_name}})
        return
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if exporter is None:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("Tracing configured", extra={"extra": {"service": service_name}})


def shutdown_tracing() -> None:
    """Flush pending spans; a no-op when tracing was never configured."""
    global _provider
    if _provider is None:
        return
    _provider.shutdown()
    _provider = None


def get_tracer(name: str) -> Any:
    """Return a tracer instance."""
    if tracing_disabled():
        return _NOOP_TRACER
    from opentelemetry import trace

    return trace.get_tracer(name)


@contextmanager
def rollout_span(tracer_name: str, span_name: str, namespace: str, rollout: str) -> Iterator[Any]:
    """Start a span tagged with the rollout it works on."""
    with get_tracer(tracer_name).start_as_current_span(span_name) as span:
        span.set_attribute("rollout.namespace", namespace)
        span.set_attribute("rollout.name", rollout)
        yield span
