"""
Telemetry helper tests

Without a configured provider the OpenTelemetry API hands out no-op
instruments and spans; the helpers must still work.
"""

from unittest.mock import MagicMock, patch

from wirerpc.telemetry import metrics
from wirerpc.telemetry.metrics import (
    ERRORS,
    MESSAGES_WRITTEN,
    READ_LATENCY,
    count_error,
    count_message,
    get_counter,
    get_histogram,
    increment_counter,
    record_latency,
    record_read_latency,
)
from wirerpc.telemetry.tracer import create_span


def test_instruments_are_cached():
    assert get_counter("test.counter", "test") is get_counter("test.counter", "test")
    assert get_histogram("test.latency", "test") is get_histogram("test.latency", "test")


def test_client_instruments_use_registered_description():
    meter = MagicMock()
    with patch.dict(metrics._counters, clear=True), \
            patch("wirerpc.telemetry.metrics.metrics.get_meter", return_value=meter):
        get_counter(ERRORS, "ignored", unit="1")
    meter.create_counter.assert_called_once_with(
        name=ERRORS, description="Client failures, by error type", unit="{error}")


def test_client_helpers_record_attributes():
    counter = MagicMock()
    histogram = MagicMock()
    with patch("wirerpc.telemetry.metrics.get_counter", return_value=counter) as get_counter_mock, \
            patch("wirerpc.telemetry.metrics.get_histogram", return_value=histogram) as get_histogram_mock:
        count_message("request", written=True)
        get_counter_mock.assert_called_with(MESSAGES_WRITTEN)
        counter.add.assert_called_with(1, {"kind": "request"})

        count_error("timeout", method="echo")
        get_counter_mock.assert_called_with(ERRORS)
        counter.add.assert_called_with(1, {"method": "echo", "type": "timeout"})

        record_read_latency(0.0)
        get_histogram_mock.assert_called_with(READ_LATENCY)
        assert histogram.record.call_args[0][0] > 0


def test_recording_without_provider():
    increment_counter("test.messages", 2, {"kind": "request"})
    record_latency("test.read.latency", 1.5)
    count_message("notification")
    count_error("EncodeError")


def test_span_context_manager():
    with create_span("test.span", {"rpc.method": "ping"}) as span:
        span.set_attribute("wirerpc.message.kind", "request")
