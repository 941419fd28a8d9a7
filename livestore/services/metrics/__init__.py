"""
Metrics Service - Event Counting and Publication

Responsibilities:
- Count classified errors and driver connection pool events
- Drain the counts atomically every interval
- Persist each drained batch as a metrics record (best effort)
"""

from .classifier import classify_error
from .counter import EventCounter
from .publisher import MetricsPublisher, MetricsRecord, MongoMetricsSink

__all__ = [
    "classify_error",
    "EventCounter",
    "MetricsPublisher",
    "MetricsRecord",
    "MongoMetricsSink",
]
