# src/formbridge/telemetry/sinks.py
"""Telemetry sinks.

A sink accepts (event, payload, level) and must never raise into the caller:
telemetry is fire-and-forget. Sampling applies to info events only, so
warnings and errors are always kept.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import structlog

from formbridge.contracts.enums import TelemetryLevel
from formbridge.core.config import TelemetrySettings


@runtime_checkable
class TelemetrySink(Protocol):
    def emit(self, event: str, payload: Mapping[str, Any], level: TelemetryLevel = TelemetryLevel.INFO) -> None:
        """Record one telemetry event."""
        ...


class NullTelemetrySink:
    """Discards everything."""

    def emit(self, event: str, payload: Mapping[str, Any], level: TelemetryLevel = TelemetryLevel.INFO) -> None:
        pass


class LogTelemetrySink:
    """Writes each event as one structured log line on the telemetry logger.

    Args:
        enabled: When False, emit() is a no-op
        sample_rate: Fraction of info events kept, 0.0 to 1.0
        rng: Source of uniform [0, 1) numbers, injectable for tests
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        sample_rate: float = 1.0,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._enabled = enabled
        self._sample_rate = sample_rate
        self._rng = rng
        self._logger = structlog.get_logger("formbridge.telemetry")

    @classmethod
    def from_settings(cls, settings: TelemetrySettings) -> LogTelemetrySink:
        return cls(enabled=settings.enabled, sample_rate=settings.sample_rate)

    def should_sample(self) -> bool:
        if self._sample_rate >= 1.0:
            return True
        if self._sample_rate <= 0.0:
            return False
        return self._rng() < self._sample_rate

    def emit(self, event: str, payload: Mapping[str, Any], level: TelemetryLevel = TelemetryLevel.INFO) -> None:
        if not self._enabled:
            return
        if level == TelemetryLevel.INFO and not self.should_sample():
            return
        fields = {str(k): v for k, v in payload.items() if k != "event"}
        if level == TelemetryLevel.ERROR:
            self._logger.error(event, **fields)
        elif level == TelemetryLevel.WARN:
            self._logger.warning(event, **fields)
        else:
            self._logger.info(event, **fields)
