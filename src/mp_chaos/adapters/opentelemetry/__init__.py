"""OpenTelemetry adapter – replay simulated traces through an OTel tracer provider."""
from mp_chaos.adapters.opentelemetry.exporter import OtelSpanExporter

__all__ = ["OtelSpanExporter"]
