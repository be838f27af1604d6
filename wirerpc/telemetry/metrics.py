"""
OpenTelemetry Metrics Collection

Counters and latency histograms recorded by the client and dispatcher,
plus generic helpers for application metrics.
Instruments are no-ops until setup_metrics (or the host application)
installs a MeterProvider.
"""

import logging
import time
from typing import Any, Dict, Optional

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader
)
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

logger = logging.getLogger(__name__)

METER_NAME = "wirerpc"

# Global metric instruments, keyed by name
_counters = {}
_histograms = {}


def setup_metrics(service_name: str,
                  otlp_endpoint: str = "localhost:4317",
                  export_interval_ms: int = 5000,
                  console: bool = False):
    """Configure OpenTelemetry metrics collection

    Args:
        service_name: Service name
        otlp_endpoint: OTLP receiver address
        export_interval_ms: Metrics export interval in milliseconds
        console: Also print metrics to stdout (development debugging)
    """
    readers = [
        PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=otlp_endpoint),
            export_interval_millis=export_interval_ms
        )
    ]
    if console:
        readers.append(
            PeriodicExportingMetricReader(
                ConsoleMetricExporter(),
                export_interval_millis=export_interval_ms
            )
        )

    provider = MeterProvider(metric_readers=readers)
    metrics.set_meter_provider(provider)
    meter = metrics.get_meter(service_name)

    logger.info(f"OpenTelemetry metrics configured, service name: {service_name}, OTLP endpoint: {otlp_endpoint}")

    return meter


# Instruments recorded by the client and dispatcher
MESSAGES_READ = "rpc.client.messages.read"
MESSAGES_WRITTEN = "rpc.client.messages.written"
ERRORS = "rpc.client.errors"
READ_LATENCY = "rpc.client.read.latency"

# name -> (description, unit)
_CLIENT_INSTRUMENTS = {
    MESSAGES_READ: ("Messages read and decoded, by kind", "{message}"),
    MESSAGES_WRITTEN: ("Messages encoded and written, by kind", "{message}"),
    ERRORS: ("Client failures, by error type", "{error}"),
    READ_LATENCY: ("Time blocked waiting for an incoming frame", "ms"),
}


def get_counter(name: str, description: Optional[str] = None, unit: str = "1"):
    """Get or create counter

    Client instruments always use their registered description and unit.
    """
    if name not in _counters:
        description, unit = _CLIENT_INSTRUMENTS.get(name, (description or f"Counter for {name}", unit))
        _counters[name] = metrics.get_meter(METER_NAME).create_counter(
            name=name,
            description=description,
            unit=unit
        )

    return _counters[name]


def get_histogram(name: str, description: Optional[str] = None, unit: str = "ms"):
    """Get or create histogram, see get_counter"""
    if name not in _histograms:
        description, unit = _CLIENT_INSTRUMENTS.get(name, (description or f"Latency histogram for {name}", unit))
        _histograms[name] = metrics.get_meter(METER_NAME).create_histogram(
            name=name,
            description=description,
            unit=unit
        )

    return _histograms[name]


def count_message(kind: str, written: bool = False):
    """Count one message read off, or written to, the connection

    Args:
        kind: "request", "response" or "notification"
        written: True for outgoing messages
    """
    get_counter(MESSAGES_WRITTEN if written else MESSAGES_READ).add(1, {"kind": kind})


def count_error(error_type: str, **attributes: Any):
    """Count one client failure; extra attributes such as method are attached"""
    attributes["type"] = error_type
    get_counter(ERRORS).add(1, attributes)


def record_read_latency(started: float):
    """Record the wait since `started`, a time.monotonic() reading"""
    get_histogram(READ_LATENCY).record((time.monotonic() - started) * 1000)


def increment_counter(name: str, amount: int = 1, attributes: Dict[str, Any] = None):
    """Increment an application counter

    Args:
        name: Counter name
        amount: Amount to increment
        attributes: Attribute labels
    """
    get_counter(name).add(amount, attributes or {})


def record_latency(name: str, value_ms: float, attributes: Dict[str, Any] = None):
    """Record an application latency in milliseconds"""
    get_histogram(name).record(value_ms, attributes or {})
