"""Tests for telemetry sinks."""

from __future__ import annotations

from structlog.testing import capture_logs

from formbridge.contracts.enums import TelemetryLevel
from formbridge.core.config import TelemetrySettings
from formbridge.telemetry import LogTelemetrySink, NullTelemetrySink, TelemetrySink


class TestLogTelemetrySink:
    def test_info_event_logged_with_payload(self) -> None:
        sink = LogTelemetrySink()

        with capture_logs() as logs:
            sink.emit("linked_search.success", {"field": "seller", "count": 3})

        assert logs == [{"event": "linked_search.success", "field": "seller", "count": 3, "log_level": "info"}]

    def test_levels_map_to_log_levels(self) -> None:
        sink = LogTelemetrySink()

        with capture_logs() as logs:
            sink.emit("linked_search.rate_limited", {}, TelemetryLevel.WARN)
            sink.emit("submit.error", {}, TelemetryLevel.ERROR)

        assert [entry["log_level"] for entry in logs] == ["warning", "error"]

    def test_payload_cannot_override_event_name(self) -> None:
        sink = LogTelemetrySink()

        with capture_logs() as logs:
            sink.emit("submit.success", {"event": "spoofed"})

        assert logs[0]["event"] == "submit.success"

    def test_disabled_sink_is_silent(self) -> None:
        sink = LogTelemetrySink.from_settings(TelemetrySettings(enabled=False))

        with capture_logs() as logs:
            sink.emit("submit.error", {}, TelemetryLevel.ERROR)

        assert logs == []

    def test_sampling_drops_info_only(self) -> None:
        sink = LogTelemetrySink(sample_rate=0.5, rng=lambda: 0.9)

        with capture_logs() as logs:
            sink.emit("linked_search.success", {})
            sink.emit("linked_search.error", {}, TelemetryLevel.ERROR)

        assert [entry["event"] for entry in logs] == ["linked_search.error"]

    def test_should_sample(self) -> None:
        assert LogTelemetrySink(sample_rate=0.5, rng=lambda: 0.2).should_sample()
        assert not LogTelemetrySink(sample_rate=0.5, rng=lambda: 0.5).should_sample()
        assert LogTelemetrySink(sample_rate=1.0, rng=lambda: 0.99).should_sample()
        assert not LogTelemetrySink(sample_rate=0.0, rng=lambda: 0.0).should_sample()


def test_sinks_satisfy_protocol() -> None:
    assert isinstance(NullTelemetrySink(), TelemetrySink)
    assert isinstance(LogTelemetrySink(), TelemetrySink)
    NullTelemetrySink().emit("anything", {"x": 1}, TelemetryLevel.ERROR)
