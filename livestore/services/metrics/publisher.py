"""
Metrics Publisher

Every interval: drain the EventCounter, stamp the counts with time,
environment and host, and write the record to the metrics sink.

Publication is best-effort telemetry. A failed or slow write is logged and
counted, and the record is dropped; it is never retried and the drain is
never rolled back.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from bson import ObjectId

from livestore.common.exceptions import PublishError
from livestore.common.logging_setup import get_service_logger
from livestore.common.scheduler import ScheduledLoop

from .counter import METRICS_PUBLISH_FAILED, EventCounter

logger = get_service_logger("metrics.publisher")


@dataclass(frozen=True)
class MetricsRecord:
    """One publication cycle's worth of event counts"""
    environment: str
    host: str
    event_counts: dict[str, int]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: ObjectId = field(default_factory=ObjectId)

    def to_document(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "timestamp": self.timestamp,
            "environment": self.environment,
            "host": self.host,
            "eventCounts": dict(self.event_counts),
        }


@runtime_checkable
class MetricsSink(Protocol):
    """Destination for metrics records"""

    async def write(self, document: dict[str, Any]) -> None:
        ...


class MongoMetricsSink:
    """Writes metrics records into a collection"""

    def __init__(self, collection):
        self.collection = collection

    async def write(self, document: dict[str, Any]) -> None:
        await self.collection.insert_one(document)


class MetricsPublisher:
    """
    Periodically drains the EventCounter into the metrics sink.

    Runs on its own ScheduledLoop, independent of the config refresher.
    """

    def __init__(
        self,
        counter: EventCounter,
        sink: MetricsSink,
        environment: str,
        host: str,
        interval_seconds: float = 60.0,
        publish_timeout: float = 10.0,
    ):
        self.counter = counter
        self.sink = sink
        self.environment = environment
        self.host = host
        self.publish_timeout = publish_timeout

        self.loop = ScheduledLoop(interval_seconds, self.publish_once, name="metrics-publish")

        self._published_count = 0
        self._failed_count = 0
        self._last_published_at: datetime | None = None

    def build_record(self) -> MetricsRecord:
        """Drain the counter into a new record"""
        return MetricsRecord(
            environment=self.environment,
            host=self.host,
            event_counts=self.counter.snapshot_and_reset(),
        )

    async def publish_once(self) -> bool:
        """
        Run one publication cycle.

        Returns:
            True if the record was written
        """
        record = self.build_record()

        try:
            await self._write(record)
        except PublishError as e:
            self._failed_count += 1
            self.counter.increment(METRICS_PUBLISH_FAILED)
            logger.error(
                f"Error storing metrics: {e.message}",
                extra={"record_id": str(record.id), "dropped_counts": record.event_counts},
            )
            return False

        self._published_count += 1
        self._last_published_at = record.timestamp
        logger.debug(
            f"Metrics stored ({sum(record.event_counts.values())} events)",
            extra={"record_id": str(record.id), "event_counts": record.event_counts},
        )
        return True

    async def _write(self, record: MetricsRecord) -> None:
        """Write with a bounded timeout, normalising failures to PublishError"""
        try:
            await asyncio.wait_for(
                self.sink.write(record.to_document()),
                timeout=self.publish_timeout,
            )
        except asyncio.TimeoutError:
            raise PublishError(f"write timed out after {self.publish_timeout}s")
        except Exception as e:
            raise PublishError(str(e)) from e

    def get_stats(self) -> dict:
        return {
            "published_count": self._published_count,
            "failed_count": self._failed_count,
            "last_published_at": (
                self._last_published_at.isoformat() if self._last_published_at else None
            ),
        }
