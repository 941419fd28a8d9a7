"""
Livestore Service - Process Lifecycle

Start-up order:
1. Connect to the document store (listeners attached)
2. Load the first config snapshot (fatal without a fallback)
3. Ensure document indexes
4. Open the HTTP listener
5. Start the background loops (config refresh, metrics publish)

Any failure before the listener is up closes whatever was already
started and re-raises; no partial service is left running.
"""

import asyncio
import signal
from datetime import datetime, timezone

from aiohttp import web
from pymongo.errors import PyMongoError

from livestore.common.config import ConfigSnapshot, ServiceSettings
from livestore.common.environment import get_host_name, read_environment_name
from livestore.common.exceptions import ServiceError, StoreError
from livestore.common.logging_setup import get_service_logger
from livestore.common.scheduler import SchedulerGroup
from livestore.services.config import ConfigRefresher, ConfigStore, MongoConfigSource
from livestore.services.metrics import EventCounter, MetricsPublisher, MongoMetricsSink
from livestore.services.metrics.listeners import build_listeners
from livestore.services.store import DocumentRepository, RetryingOperation, StoreClient

from .handlers import ApiHandlers, create_app

logger = get_service_logger("api")


class LivestoreService:
    """
    Owns every shared component and wires them together.

    ConfigStore and EventCounter are created here and handed to each
    component that needs them.
    """

    def __init__(self, settings: ServiceSettings, store_client=None):
        self.settings = settings

        self.counter = EventCounter()
        self.config_store = ConfigStore()
        self.schedulers = SchedulerGroup()

        # Injected client (tests) or a real one built in setup()
        self.store_client = store_client
        self._owns_client = store_client is None

        self.refresher: ConfigRefresher | None = None
        self.publisher: MetricsPublisher | None = None
        self.repository: DocumentRepository | None = None
        self.app: web.Application | None = None

        self.environment = "unknown"
        self.host = get_host_name()

        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._start_time = datetime.now(timezone.utc)

    async def start(self) -> None:
        """Start the service and block until a shutdown signal"""
        await self.setup()
        self._setup_signal_handlers()
        await self._shutdown_event.wait()

    async def setup(self) -> None:
        """Bring every component up; on failure tear down and re-raise"""
        logger.info("Starting Livestore Service")
        try:
            await self._setup()
        except BaseException:
            logger.critical("Start-up failed, shutting down")
            await self.stop()
            raise

        self._running = True
        logger.info(
            f"Livestore Service started on {self.settings.http.host}:{self.settings.http.port}",
            extra={"environment": self.environment, "host": self.host},
        )

    async def _setup(self) -> None:
        if self.store_client is None:
            self.store_client = StoreClient(
                self.settings.store,
                event_listeners=build_listeners(self.counter),
            )
        await self.store_client.connect()

        fallback = ConfigSnapshot() if self.settings.config.use_default_on_boot else None
        self.refresher = ConfigRefresher(
            self.config_store,
            MongoConfigSource(self.store_client.config),
            self.counter,
            fetch_timeout=self.settings.config.fetch_timeout_s,
            fallback=fallback,
        )
        await self.refresher.bootstrap()

        self.repository = DocumentRepository(self.store_client.documents)
        try:
            await self.repository.create_indexes()
        except PyMongoError as e:
            raise StoreError(f"Index creation failed: {e}", operation="create_indexes") from e

        self.environment = read_environment_name(self.settings.metrics.metadata_path)
        self.publisher = MetricsPublisher(
            self.counter,
            MongoMetricsSink(self.store_client.metrics),
            environment=self.environment,
            host=self.host,
            interval_seconds=self.settings.metrics.interval_s,
            publish_timeout=self.settings.metrics.publish_timeout_s,
        )

        handlers = ApiHandlers(
            self.config_store,
            self.counter,
            RetryingOperation(self.config_store, self.counter, self.settings.max_attempts),
            self.repository,
            status_provider=self.get_status,
        )
        self.app = create_app(handlers)
        await self._start_http_server()

        self.schedulers.add(self.refresher.build_loop())
        self.schedulers.add(self.publisher.loop)
        await self.schedulers.start_all()

    async def stop(self) -> None:
        """Stop loops, flush metrics once, close listener and store"""
        logger.info("Stopping Livestore Service")
        was_running = self._running
        self._running = False

        await self.schedulers.stop_all()

        # Last best-effort publication of whatever was counted since the last tick
        if was_running and self.publisher is not None:
            await self.publisher.publish_once()

        await self._stop_http_server()

        if self.store_client is not None and self._owns_client:
            await self.store_client.close()

        logger.info("Livestore Service stopped")

    async def _start_http_server(self) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.settings.http.host, self.settings.http.port)
        try:
            await self._site.start()
        except OSError as e:
            raise ServiceError(
                f"Cannot listen on {self.settings.http.host}:{self.settings.http.port}: {e}",
                service_name="api",
                recoverable=False,
            ) from e

        logger.info(f"Server listening on port {self.settings.http.port}")

    async def _stop_http_server(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: self.request_shutdown())

    def request_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    def get_status(self) -> dict:
        """Extra fields for the /health endpoint"""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
        return {
            "service": "livestore",
            "running": self._running,
            "service_uptime": int(uptime),
            "environment": self.environment,
            "host": self.host,
            "refresher": self.refresher.get_stats() if self.refresher else None,
            "publisher": self.publisher.get_stats() if self.publisher else None,
            "schedulers": self.schedulers.get_stats(),
        }
