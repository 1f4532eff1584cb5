"""
Observability module - Logging, Metrics, and Tracing.
"""

from hanar.observability.logging import get_logger, log_context, setup_logging
from hanar.observability.metrics import metrics
from hanar.observability.tracing import setup_tracing

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
