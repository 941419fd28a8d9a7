"""
Document Repository

The remote store operations behind the HTTP surface:
- upsert a random document
- count documents matching an `x` value (scan capped)
- sample-and-group aggregate (row count capped)

Each method is one attempt; retries and deadlines belong to
RetryingOperation.
"""

import contextlib
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import pymongo

from livestore.common.logging_setup import get_service_logger

logger = get_service_logger("store.documents")

X_MIN = 1
X_MAX = 500_000
DEFAULT_SCAN_CAP = 1000


def random_x() -> int:
    return random.randint(X_MIN, X_MAX)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Document:
    """A stored document"""
    id: str = field(default_factory=_new_id)
    key: str = field(default_factory=_new_id)
    value: str = ""
    x: int = field(default_factory=random_x)

    def to_mongo(self) -> dict[str, Any]:
        return {"_id": self.id, "key": self.key, "value": self.value, "x": self.x}


def sample_group_pipeline(sample_size: int) -> list[dict[str, Any]]:
    """$sample then one $group with id/key bounds and the mean x"""
    return [
        {"$sample": {"size": sample_size}},
        {
            "$group": {
                "_id": 1,
                "minid": {"$min": "$_id"},
                "maxid": {"$max": "$_id"},
                "minkey": {"$min": "$key"},
                "maxkey": {"$max": "$key"},
                "xavg": {"$avg": "$x"},
            }
        },
    ]


async def count_capped(cursor: AsyncIterator[Any], cap: int) -> int:
    """Count cursor results, stopping once cap is reached"""
    count = 0
    if cap <= 0:
        return count
    async for _ in cursor:
        count += 1
        if count >= cap:
            break
    return count


def _driver_timeout(timeout_ms: int | None):
    """pymongo client-side operation timeout, when configured"""
    if timeout_ms:
        return pymongo.timeout(timeout_ms / 1000)
    return contextlib.nullcontext()


class DocumentRepository:
    """Operations on the documents collection"""

    def __init__(self, collection):
        self.collection = collection

    async def upsert(self, document: Document) -> str:
        """
        Upsert a document keyed by its `key` field.

        Returns:
            The document key
        """
        fields = document.to_mongo()
        doc_id = fields.pop("_id")
        await self.collection.update_one(
            {"key": document.key},
            {"$set": fields, "$setOnInsert": {"_id": doc_id}},
            upsert=True,
        )
        return document.key

    async def count_matching(
        self,
        x: int,
        cap: int = DEFAULT_SCAN_CAP,
        max_time_ms: int | None = None,
        driver_timeout_ms: int | None = None,
    ) -> int:
        """
        Count documents with the given x, scanning at most cap results.

        Args:
            x: Value to match
            cap: Stop counting after this many results
            max_time_ms: Server-side time limit for the query
            driver_timeout_ms: Client-side operation timeout
        """
        kwargs: dict[str, Any] = {}
        if max_time_ms:
            kwargs["max_time_ms"] = max_time_ms

        with _driver_timeout(driver_timeout_ms):
            cursor = self.collection.find({"x": x}, {"_id": 1}, **kwargs)
            try:
                return await count_capped(cursor, cap)
            finally:
                await cursor.close()

    async def sample_group(
        self,
        sample_size: int,
        cap: int = DEFAULT_SCAN_CAP,
        max_time_ms: int | None = None,
        driver_timeout_ms: int | None = None,
    ) -> int:
        """
        Run the sample-and-group pipeline.

        Returns:
            Number of result rows (at most cap)
        """
        kwargs: dict[str, Any] = {}
        if max_time_ms:
            kwargs["maxTimeMS"] = max_time_ms

        with _driver_timeout(driver_timeout_ms):
            cursor = await self.collection.aggregate(sample_group_pipeline(sample_size), **kwargs)
            try:
                return await count_capped(cursor, cap)
            finally:
                await cursor.close()

    async def create_indexes(self) -> list[str]:
        """Create the x and key indexes"""
        names = await self.collection.create_indexes([
            pymongo.IndexModel([("x", pymongo.ASCENDING)]),
            pymongo.IndexModel([("key", pymongo.ASCENDING)]),
        ])
        logger.info(f"Indexes ready: {', '.join(names)}")
        return names
