"""OpenTelemetry tracing integration for egot-core.

Provides distributed tracing with support for stdout, OTLP, and noop exporters.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import NoOpTracer, Span, Tracer

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class TelemetryConfig:
    """Configuration for the egot-core tracing subsystem."""

    service_name: str = "egot-core"
    enabled: bool = True
    exporter: str = "none"  # "stdout" | "otlp" | "none"
    otlp_endpoint: str = "http://localhost:4317"


# ---------------------------------------------------------------------------
# EgotTracer
# ---------------------------------------------------------------------------


class EgotTracer:
    """Central tracer for egot-core.

    Wraps OpenTelemetry ``TracerProvider`` setup and provides helpers for
    creating spans and recording events.
    """

    def __init__(self, config: TelemetryConfig | None = None) -> None:
        self._config = config or TelemetryConfig()
        self._provider: TracerProvider | None = None
        self._tracer: Tracer = NoOpTracer()

    def init(self) -> None:
        """Set up the OTel TracerProvider based on config."""
        cfg = self._config
        if not cfg.enabled or cfg.exporter == "none":
            return

        resource = Resource.create({"service.name": cfg.service_name})
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor

        if cfg.exporter == "stdout":
            from opentelemetry.sdk.trace.export import ConsoleSpanExporter

            exporter: Any = ConsoleSpanExporter()
        elif cfg.exporter == "otlp":
            # Needs the ``otlp`` extra.
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            exporter = OTLPSpanExporter(endpoint=cfg.otlp_endpoint, insecure=True)
        else:
            msg = f"Unknown trace exporter: {cfg.exporter!r}"
            raise ValueError(msg)

        provider = TracerProvider(resource=resource)
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        self._provider = provider
        self._tracer = provider.get_tracer(cfg.service_name)

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[Span, None, None]:
        """Create a span as a context manager."""
        with self._tracer.start_as_current_span(name) as s:
            if attributes:
                for k, v in attributes.items():
                    s.set_attribute(k, v)
            yield s

    def record_event(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """Record a named event on the current active span (if any)."""
        current_span = trace.get_current_span()
        if current_span.is_recording():
            current_span.add_event(name, dict(attributes) if attributes else {})

    def shutdown(self) -> None:
        """Flush pending spans and shut down the provider. Safe to call multiple times."""
        if self._provider is not None:
            self._provider.shutdown()
            self._provider = None


# ---------------------------------------------------------------------------
# Module-level default (lazily initialised)
# ---------------------------------------------------------------------------

_DEFAULT_TRACER: EgotTracer | None = None


def get_tracer() -> EgotTracer:
    global _DEFAULT_TRACER  # noqa: PLW0603
    if _DEFAULT_TRACER is None:
        _DEFAULT_TRACER = EgotTracer()
    return _DEFAULT_TRACER


def configure_tracing(config: TelemetryConfig) -> EgotTracer:
    """Replace the default tracer with one built from *config*."""
    global _DEFAULT_TRACER  # noqa: PLW0603
    if _DEFAULT_TRACER is not None:
        _DEFAULT_TRACER.shutdown()
    _DEFAULT_TRACER = EgotTracer(config)
    _DEFAULT_TRACER.init()
    return _DEFAULT_TRACER


# ---------------------------------------------------------------------------
# Convenience context managers
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def trace_turn(session_id: str, mode: str) -> Generator[Span, None, None]:
    with get_tracer().span("session/turn", {"session.id": session_id, "session.mode": mode}) as s:
        yield s


@contextlib.contextmanager
def trace_tool_call(tool_name: str, call_id: str) -> Generator[Span, None, None]:
    with get_tracer().span("executor/apply", {"tool.name": tool_name, "tool.call_id": call_id}) as s:
        yield s


@contextlib.contextmanager
def trace_checkpoint(action: str, checkpoint_id: str) -> Generator[Span, None, None]:
    with get_tracer().span(
        f"checkpoint/{action}", {"checkpoint.id": checkpoint_id}
    ) as s:
        yield s


@contextlib.contextmanager
def trace_summarize(version: int) -> Generator[Span, None, None]:
    with get_tracer().span("compactor/summarize", {"artifact.version": version}) as s:
        yield s
