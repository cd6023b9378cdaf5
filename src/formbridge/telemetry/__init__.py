"""Operational telemetry: fire-and-forget structured events."""

from formbridge.telemetry.sinks import LogTelemetrySink, NullTelemetrySink, TelemetrySink

__all__ = ["LogTelemetrySink", "NullTelemetrySink", "TelemetrySink"]
