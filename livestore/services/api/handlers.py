"""
HTTP Handlers

Thin request handlers: read the active config, run the store operation
through RetryingOperation, turn the outcome into a response.

Routes:
    GET /        liveness text
    GET /upsert  201 with the new key, or 500 with the error text
    GET /find    count of documents matching x (?x=N, random otherwise)
    GET /agg     row count of the sample-and-group aggregate
    GET /health  JSON status for operators
"""

from datetime import datetime, timezone
from typing import Callable

from aiohttp import web

from livestore.common.config import OperationKind, snapshot_to_document
from livestore.services.config.store import ConfigStore
from livestore.services.metrics.counter import EventCounter
from livestore.services.store.documents import Document, DocumentRepository, random_x
from livestore.services.store.retry import RetryingOperation, RetryOutcome

# Largest integers a BSON query value can hold
BSON_INT64_MIN = -(2**63)
BSON_INT64_MAX = 2**63 - 1


def _error_response(outcome: RetryOutcome) -> web.Response:
    return web.Response(text=f"{outcome.error}\n", status=500)


class ApiHandlers:
    """Request handlers bound to the shared service components"""

    def __init__(
        self,
        config_store: ConfigStore,
        counter: EventCounter,
        retrying: RetryingOperation,
        repository: DocumentRepository,
        status_provider: Callable[[], dict] | None = None,
    ):
        self.config_store = config_store
        self.counter = counter
        self.retrying = retrying
        self.repository = repository
        self.status_provider = status_provider
        self._start_time = datetime.now(timezone.utc)

    async def health_check(self, request: web.Request) -> web.Response:
        return web.Response(text=f"All good here at {datetime.now(timezone.utc)}\n")

    async def upsert(self, request: web.Request) -> web.Response:
        document = Document()

        outcome = await self.retrying.run(
            OperationKind.UPSERT,
            lambda: self.repository.upsert(document),
            name="upsert",
        )
        if not outcome.ok:
            return _error_response(outcome)

        return web.Response(text=f"Created _id: {outcome.value}\n", status=201)

    async def find(self, request: web.Request) -> web.Response:
        raw_x = request.query.get("x")
        if raw_x is None:
            x = random_x()
        else:
            try:
                x = int(raw_x)
            except ValueError:
                return web.Response(text=f"Invalid x: {raw_x!r}\n", status=400)
            if not BSON_INT64_MIN <= x <= BSON_INT64_MAX:
                return web.Response(text=f"Invalid x: {raw_x!r} is out of range\n", status=400)

        snapshot = self.config_store.read()
        outcome = await self.retrying.run(
            OperationKind.FIND,
            lambda: self.repository.count_matching(
                x,
                cap=snapshot.find_result_cap,
                max_time_ms=snapshot.find_max_time_ms,
                driver_timeout_ms=snapshot.find_driver_timeout_ms,
            ),
            name="find",
        )
        if not outcome.ok:
            return _error_response(outcome)

        return web.Response(text=f"Number of documents found: {outcome.value}\n")

    async def aggregate(self, request: web.Request) -> web.Response:
        snapshot = self.config_store.read()
        outcome = await self.retrying.run(
            OperationKind.AGGREGATE,
            lambda: self.repository.sample_group(
                snapshot.agg_sample_size,
                max_time_ms=snapshot.agg_max_time_ms,
                driver_timeout_ms=snapshot.agg_driver_timeout_ms,
            ),
            name="agg",
        )
        if not outcome.ok:
            return _error_response(outcome)

        return web.Response(text=f"Aggregation returned: {outcome.value}\n")

    async def health(self, request: web.Request) -> web.Response:
        """Operator status: active config, pending counts, loop stats"""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        config = None
        if self.config_store.is_loaded:
            config = snapshot_to_document(self.config_store.read())

        body = {
            "status": "healthy" if config is not None else "starting",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "config": config,
            "config_generation": self.config_store.generation,
            "pending_event_counts": self.counter.peek(),
        }
        if self.status_provider is not None:
            body.update(self.status_provider())

        return web.json_response(body)


def create_app(handlers: ApiHandlers) -> web.Application:
    """Build the aiohttp application with all routes"""
    app = web.Application()
    app.router.add_get("/", handlers.health_check)
    app.router.add_get("/upsert", handlers.upsert)
    app.router.add_get("/find", handlers.find)
    app.router.add_get("/agg", handlers.aggregate)
    app.router.add_get("/health", handlers.health)
    return app
