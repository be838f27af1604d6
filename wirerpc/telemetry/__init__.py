"""
OpenTelemetry Integration Module

- tracer: span creation around client operations
- metrics: message and error counters, read latency
"""

from .metrics import setup_metrics, increment_counter, record_latency
from .tracer import setup_tracer, create_span

__all__ = [
    "setup_tracer",
    "setup_metrics",
    "create_span",
    "increment_counter",
    "record_latency",
]
