"""Tests for the metrics publisher."""

import asyncio
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from livestore.services.metrics.counter import METRICS_PUBLISH_FAILED, EventCounter
from livestore.services.metrics.publisher import (
    MetricsPublisher,
    MetricsRecord,
    MetricsSink,
    MongoMetricsSink,
)
from tests.fakes import FakeCollection

pytestmark = pytest.mark.unit


def make_publisher(counter: EventCounter, collection: FakeCollection, **kwargs) -> MetricsPublisher:
    return MetricsPublisher(
        counter,
        MongoMetricsSink(collection),
        environment="staging",
        host="db-bench-01",
        **kwargs,
    )


class TestMetricsRecord:
    """Tests for the stored document shape."""

    def test_document_fields(self) -> None:
        record = MetricsRecord("prod", "host-a", {"PoolCleared": 2})

        doc = record.to_document()

        assert set(doc) == {"_id", "timestamp", "environment", "host", "eventCounts"}
        assert isinstance(doc["_id"], ObjectId)
        assert doc["environment"] == "prod"
        assert doc["host"] == "host-a"
        assert doc["eventCounts"] == {"PoolCleared": 2}

    def test_timestamp_is_utc(self) -> None:
        record = MetricsRecord("prod", "host-a", {})

        assert record.timestamp.tzinfo == timezone.utc

    def test_each_record_gets_fresh_id(self) -> None:
        first = MetricsRecord("prod", "host-a", {})
        second = MetricsRecord("prod", "host-a", {})

        assert first.id != second.id

    def test_mongo_sink_satisfies_protocol(self) -> None:
        assert isinstance(MongoMetricsSink(FakeCollection()), MetricsSink)


class TestPublishOnce:
    """Tests for a single publication cycle."""

    @pytest.mark.asyncio
    async def test_drains_counter_into_sink(self) -> None:
        counter = EventCounter()
        counter.increment("ConnectionCreated", 3)
        counter.increment("context deadline exceeded")
        collection = FakeCollection()
        publisher = make_publisher(counter, collection)

        assert await publisher.publish_once() is True

        assert len(collection.docs) == 1
        doc = collection.docs[0]
        assert doc["eventCounts"] == {"ConnectionCreated": 3, "context deadline exceeded": 1}
        assert doc["environment"] == "staging"
        assert doc["host"] == "db-bench-01"
        assert isinstance(doc["timestamp"], datetime)
        assert counter.peek() == {}

    @pytest.mark.asyncio
    async def test_empty_counts_still_publish(self) -> None:
        collection = FakeCollection()
        publisher = make_publisher(EventCounter(), collection)

        await publisher.publish_once()

        assert collection.docs[0]["eventCounts"] == {}

    @pytest.mark.asyncio
    async def test_failed_write_drops_record_and_counts_failure(self) -> None:
        counter = EventCounter()
        counter.increment("PoolCleared")
        collection = FakeCollection()
        collection.fail_next(RuntimeError("not primary"))
        publisher = make_publisher(counter, collection)

        assert await publisher.publish_once() is False

        assert collection.docs == []
        # Dropped counts are not restored
        assert counter.peek() == {METRICS_PUBLISH_FAILED: 1}
        assert publisher.get_stats()["failed_count"] == 1

    @pytest.mark.asyncio
    async def test_failure_count_is_published_next_cycle(self) -> None:
        counter = EventCounter()
        collection = FakeCollection()
        collection.fail_next(RuntimeError("not primary"))
        publisher = make_publisher(counter, collection)

        await publisher.publish_once()
        await publisher.publish_once()

        assert collection.docs[0]["eventCounts"] == {METRICS_PUBLISH_FAILED: 1}

    @pytest.mark.asyncio
    async def test_slow_write_times_out(self) -> None:
        counter = EventCounter()
        collection = FakeCollection()
        collection.delay = 0.5
        publisher = make_publisher(counter, collection, publish_timeout=0.05)

        assert await publisher.publish_once() is False

        assert counter.get(METRICS_PUBLISH_FAILED) == 1

    @pytest.mark.asyncio
    async def test_increments_during_failed_write_are_kept(self) -> None:
        counter = EventCounter()
        collection = FakeCollection()
        collection.delay = 0.05
        collection.fail_next(RuntimeError("boom"))
        publisher = make_publisher(counter, collection)

        task = asyncio.create_task(publisher.publish_once())
        await asyncio.sleep(0.01)
        counter.increment("ConnectionClosed")
        await task

        assert counter.peek() == {"ConnectionClosed": 1, METRICS_PUBLISH_FAILED: 1}

    @pytest.mark.asyncio
    async def test_stats_after_success(self) -> None:
        publisher = make_publisher(EventCounter(), FakeCollection())

        await publisher.publish_once()

        stats = publisher.get_stats()
        assert stats["published_count"] == 1
        assert stats["failed_count"] == 0
        assert stats["last_published_at"] is not None


class TestPublisherLoop:
    """The publisher runs on its own named loop."""

    def test_loop_uses_interval(self) -> None:
        publisher = make_publisher(EventCounter(), FakeCollection(), interval_seconds=15.0)

        assert publisher.loop.name == "metrics-publish"
        assert publisher.loop.interval == 15.0

    @pytest.mark.asyncio
    async def test_loop_publishes_periodically(self) -> None:
        collection = FakeCollection()
        publisher = make_publisher(EventCounter(), collection, interval_seconds=0.02)

        await publisher.loop.start()
        await asyncio.sleep(0.15)
        await publisher.loop.stop()

        assert len(collection.docs) >= 2
