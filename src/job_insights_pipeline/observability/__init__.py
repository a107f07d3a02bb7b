"""
Observability Module - OpenTelemetry tracing

USAGE:
------
# At application startup:
from job_insights_pipeline.observability import init_tracing

init_tracing()  # Exports spans if TRACING_ENABLED=true

# In code that needs tracing:
from job_insights_pipeline.observability import get_tracer

with get_tracer().start_span("indexer.index", attributes={...}) as span:
    span.set_attribute("index.upserted_count", 42)

With tracing disabled every span is a Span over nothing, so call sites never
branch on whether tracing is on.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Union

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import StatusCode

from job_insights_pipeline.observability.config import (
    TracingConfig,
    get_config,
    reset_config,
)

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "job_insights_pipeline"

_tracing_initialized = False


# ---------------------------------------------------------------------------
# SPANS
# ---------------------------------------------------------------------------


def _drop_none(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    # OTel rejects None attribute values with a warning per call
    return {key: value for key, value in (attributes or {}).items() if value is not None}


class Span:
    """
    Span handle passed to instrumented code.

    Wraps an OTel span, or nothing when tracing is off. Optional values such
    as a missing token count are dropped instead of being sent as None.
    """

    __slots__ = ("_span",)

    def __init__(self, span: Any = None):
        self._span = span

    @property
    def recording(self) -> bool:
        return self._span is not None

    def set_attribute(self, key: str, value: Any) -> None:
        if self._span is None or value is None:
            return
        self._span.set_attribute(key, value)

    def set_status(self, status: str, description: str | None = None) -> None:
        """Set "ok" or "error"; OTel only keeps a description on errors."""
        if self._span is None:
            return
        if status == "ok":
            self._span.set_status(StatusCode.OK)
        else:
            self._span.set_status(StatusCode.ERROR, description)

    def record_exception(self, exception: BaseException) -> None:
        if self._span is not None:
            self._span.record_exception(exception)


# ---------------------------------------------------------------------------
# TRACERS
# ---------------------------------------------------------------------------


class NoOpTracer:
    """Tracer used while tracing is disabled; nothing reaches the OTel API."""

    @contextmanager
    def start_span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[Span]:
        yield Span()


class OTelTracer:
    """Starts spans on an OTel tracer as the current span."""

    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[Span]:
        with self._tracer.start_as_current_span(name, attributes=_drop_none(attributes)) as span:
            yield Span(span)


Tracer = Union[NoOpTracer, OTelTracer]

_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Process-wide tracer; an OTelTracer only when tracing is enabled."""
    global _tracer
    if _tracer is None:
        if get_config().enabled:
            _tracer = OTelTracer(trace.get_tracer(INSTRUMENTATION_NAME))
        else:
            _tracer = NoOpTracer()
    return _tracer


def reset_tracer() -> None:
    """Forget the cached tracer (tests, and after provider changes)."""
    global _tracer
    _tracer = None


# ---------------------------------------------------------------------------
# PROVIDER SETUP
# ---------------------------------------------------------------------------


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Initialize OpenTelemetry tracing.

    This should be called once at application startup.

    Args:
        config: Optional config (uses env vars if not provided)

    Returns:
        True if tracing was initialized, False if disabled or failed
    """
    global _tracing_initialized
    if _tracing_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    try:
        if config.collector_endpoint:
            exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
            logger.info("Exporting spans to %s", config.collector_endpoint)
        else:
            exporter = ConsoleSpanExporter()
            logger.info("Exporting spans to console")

        provider = TracerProvider(
            resource=Resource.create({"service.name": config.service_name})
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        reset_tracer()
        _tracing_initialized = True
        return True

    except Exception as e:
        logger.error("Failed to initialize tracing: %s", e)
        return False


def shutdown_tracing() -> None:
    """Flush pending spans and reset tracer state."""
    global _tracing_initialized

    if not _tracing_initialized:
        return

    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()

    reset_tracer()
    reset_config()
    _tracing_initialized = False


__all__ = [
    "init_tracing",
    "shutdown_tracing",
    "TracingConfig",
    "get_config",
    "reset_config",
    "Span",
    "Tracer",
    "NoOpTracer",
    "OTelTracer",
    "get_tracer",
    "reset_tracer",
]
