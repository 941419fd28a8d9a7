"""
Store Client

Owns the pymongo AsyncMongoClient: connection, monitoring listeners,
collection handles, shutdown.
"""

import asyncio

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from livestore.common.config import StoreSettings
from livestore.common.exceptions import ConfigError, StoreError
from livestore.common.logging_setup import get_service_logger

logger = get_service_logger("store.client")


class StoreClient:
    """Connection to the remote document store"""

    def __init__(self, settings: StoreSettings, event_listeners: list | None = None):
        if not settings.connection_string:
            raise ConfigError(
                "MONGODB_CONNECTION_STRING environment variable is not set",
                recoverable=False,
            )

        self.settings = settings
        self._client = AsyncMongoClient(
            settings.connection_string,
            event_listeners=event_listeners or [],
            serverSelectionTimeoutMS=int(settings.connect_timeout_s * 1000),
        )
        self._db = self._client[settings.database]

    @property
    def documents(self):
        return self._db[self.settings.documents_collection]

    @property
    def config(self):
        return self._db[self.settings.config_collection]

    @property
    def metrics(self):
        return self._db[self.settings.metrics_collection]

    async def connect(self) -> None:
        """
        Verify the store is reachable.

        Raises:
            StoreError: Ping failed within the connect timeout
        """
        try:
            await asyncio.wait_for(
                self._client.admin.command("ping"),
                timeout=self.settings.connect_timeout_s,
            )
        except asyncio.TimeoutError:
            raise StoreError(
                f"Store not reachable within {self.settings.connect_timeout_s}s",
                operation="connect",
            )
        except PyMongoError as e:
            raise StoreError(f"Store connection failed: {e}", operation="connect") from e

        logger.info(
            f"Connected to store (database: {self.settings.database})",
            extra={"database": self.settings.database},
        )

    async def close(self) -> None:
        await self._client.close()
        logger.info("Store connection closed")
