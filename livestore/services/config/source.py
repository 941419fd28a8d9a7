"""
Configuration Source

Reads the runtime config document from the config collection and turns
it into a ConfigSnapshot. Creates the default document on first boot.
"""

from typing import Any, Protocol, runtime_checkable

from livestore.common.config import (
    ConfigSnapshot,
    default_config_document,
    load_config_snapshot,
)
from livestore.common.exceptions import ConfigError
from livestore.common.logging_setup import get_service_logger

from .validator import ConfigValidator

logger = get_service_logger("config.source")


@runtime_checkable
class ConfigSource(Protocol):
    """Where config snapshots come from"""

    async def ensure_default(self) -> bool:
        ...

    async def fetch(self) -> ConfigSnapshot:
        ...


class MongoConfigSource:
    """
    Config document stored in a collection.

    The collection holds a single document; the first one found wins.
    """

    def __init__(self, collection, validator: ConfigValidator | None = None):
        self.collection = collection
        self.validator = validator or ConfigValidator()

    async def ensure_default(self) -> bool:
        """
        Insert the default config document if the collection is empty.

        Returns:
            True if a default document was created
        """
        count = await self.collection.count_documents({})
        if count > 0:
            return False

        await self.collection.insert_one(default_config_document())
        logger.info("Created default config document", extra=default_config_document())
        return True

    async def fetch(self) -> ConfigSnapshot:
        """
        Fetch and validate the config document.

        Raises:
            ConfigError: Document missing or invalid
            pymongo errors: Store unreachable (propagated as-is)
        """
        document: dict[str, Any] | None = await self.collection.find_one({})
        if document is None:
            raise ConfigError("No config document found")

        is_valid, errors = self.validator.validate(document)
        if not is_valid:
            raise ConfigError(f"Invalid config document: {'; '.join(errors)}")

        return load_config_snapshot(document)
