"""
Configuration Dataclasses

Two kinds of configuration live here:
- ConfigSnapshot: the hot-reloadable runtime tunables, read from the
  config collection and replaced wholesale by the Config Refresher
- ServiceSettings: static process settings loaded once at start-up from
  an optional YAML file and environment variables
"""

import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError


class OperationKind(str, Enum):
    """Remote store operation kinds, each with its own timeout"""
    UPSERT = "upsert"
    FIND = "find"
    AGGREGATE = "aggregate"
    DEFAULT = "default"


# Config document field names (as stored in the config collection)
UPSERT_TIMEOUT_FIELD = "upsertContextTimeout"
FIND_TIMEOUT_FIELD = "findContextTimeout"
AGG_TIMEOUT_FIELD = "aggContextTimeout"
DEFAULT_TIMEOUT_FIELD = "defaultContextTimeout"
UPDATE_INTERVAL_FIELD = "updateInterval"

DEFAULT_CONTEXT_TIMEOUT_MS = 500
DEFAULT_UPDATE_INTERVAL_MS = 60_000
DEFAULT_AGG_SAMPLE_SIZE = 100_000
DEFAULT_FIND_RESULT_CAP = 1000


@dataclass(frozen=True)
class ConfigSnapshot:
    """Immutable runtime configuration (all durations in milliseconds)"""
    upsert_timeout_ms: int = DEFAULT_CONTEXT_TIMEOUT_MS
    find_timeout_ms: int = DEFAULT_CONTEXT_TIMEOUT_MS
    agg_timeout_ms: int = DEFAULT_CONTEXT_TIMEOUT_MS
    default_timeout_ms: int = DEFAULT_CONTEXT_TIMEOUT_MS
    update_interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS

    # Optional tunables
    agg_sample_size: int = DEFAULT_AGG_SAMPLE_SIZE
    find_result_cap: int = DEFAULT_FIND_RESULT_CAP
    find_max_time_ms: int | None = None       # server-side maxTimeMS for find
    find_driver_timeout_ms: int | None = None  # driver timeoutMS for find
    agg_max_time_ms: int | None = None        # server-side maxTimeMS for aggregate
    agg_driver_timeout_ms: int | None = None   # driver timeoutMS for aggregate

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value is not None and value < 0:
                raise ConfigError(f"{name} must be non-negative, got {value}")

    def timeout_for(self, kind: OperationKind) -> int:
        """Get the per-attempt timeout (ms) for an operation kind"""
        return {
            OperationKind.UPSERT: self.upsert_timeout_ms,
            OperationKind.FIND: self.find_timeout_ms,
            OperationKind.AGGREGATE: self.agg_timeout_ms,
        }.get(kind, self.default_timeout_ms)

    @property
    def update_interval_s(self) -> float:
        return self.update_interval_ms / 1000


# Document field -> snapshot attribute, for the optional tunables
_OPTIONAL_FIELDS = {
    "aggInQuerySize": "agg_sample_size",
    "findResultCap": "find_result_cap",
    "findMaxTimeMs": "find_max_time_ms",
    "findTimeoutMs": "find_driver_timeout_ms",
    "aggMaxTimeMs": "agg_max_time_ms",
    "aggTimeoutMs": "agg_driver_timeout_ms",
}


def default_config_document() -> dict[str, int]:
    """Config document inserted when the config collection is empty"""
    return {
        UPSERT_TIMEOUT_FIELD: DEFAULT_CONTEXT_TIMEOUT_MS,
        FIND_TIMEOUT_FIELD: DEFAULT_CONTEXT_TIMEOUT_MS,
        AGG_TIMEOUT_FIELD: DEFAULT_CONTEXT_TIMEOUT_MS,
        DEFAULT_TIMEOUT_FIELD: DEFAULT_CONTEXT_TIMEOUT_MS,
        UPDATE_INTERVAL_FIELD: DEFAULT_UPDATE_INTERVAL_MS,
    }


def load_config_snapshot(data: dict) -> ConfigSnapshot:
    """
    Build a ConfigSnapshot from a config document.

    The document must already have passed ConfigValidator; a missing
    updateInterval falls back to the default.
    """
    kwargs: dict[str, Any] = {
        "upsert_timeout_ms": int(data[UPSERT_TIMEOUT_FIELD]),
        "find_timeout_ms": int(data[FIND_TIMEOUT_FIELD]),
        "agg_timeout_ms": int(data[AGG_TIMEOUT_FIELD]),
        "default_timeout_ms": int(data[DEFAULT_TIMEOUT_FIELD]),
        "update_interval_ms": int(data.get(UPDATE_INTERVAL_FIELD, DEFAULT_UPDATE_INTERVAL_MS)),
    }
    for doc_field, attr in _OPTIONAL_FIELDS.items():
        if data.get(doc_field) is not None:
            kwargs[attr] = int(data[doc_field])

    return ConfigSnapshot(**kwargs)


def snapshot_to_document(snapshot: ConfigSnapshot) -> dict[str, int]:
    """Render a snapshot back into config document field names"""
    doc = {
        UPSERT_TIMEOUT_FIELD: snapshot.upsert_timeout_ms,
        FIND_TIMEOUT_FIELD: snapshot.find_timeout_ms,
        AGG_TIMEOUT_FIELD: snapshot.agg_timeout_ms,
        DEFAULT_TIMEOUT_FIELD: snapshot.default_timeout_ms,
        UPDATE_INTERVAL_FIELD: snapshot.update_interval_ms,
    }
    for doc_field, attr in _OPTIONAL_FIELDS.items():
        value = getattr(snapshot, attr)
        if value is not None:
            doc[doc_field] = value
    return doc


@dataclass
class StoreSettings:
    """Remote document store connection settings"""
    connection_string: str = ""
    database: str = "testdb"
    documents_collection: str = "documents"
    config_collection: str = "config"
    metrics_collection: str = "metrics"
    connect_timeout_s: float = 10.0


@dataclass
class HttpSettings:
    """HTTP listener settings"""
    host: str = "0.0.0.0"
    port: int = 5000


@dataclass
class ConfigPlaneSettings:
    """Config refresh settings (not hot-reloadable)"""
    fetch_timeout_s: float = 10.0
    use_default_on_boot: bool = False


@dataclass
class MetricsSettings:
    """Metrics publication settings"""
    interval_s: float = 60.0
    publish_timeout_s: float = 10.0
    metadata_path: str = "/var/lib/cfn-init/data/metadata.json"


@dataclass
class ServiceSettings:
    """Static service settings"""
    store: StoreSettings = field(default_factory=StoreSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    config: ConfigPlaneSettings = field(default_factory=ConfigPlaneSettings)
    metrics: MetricsSettings = field(default_factory=MetricsSettings)
    max_attempts: int = 2

    def validate(self) -> list[str]:
        """Return a list of problems; empty when the settings are usable"""
        errors = []
        if not self.store.connection_string:
            errors.append("MONGODB_CONNECTION_STRING environment variable is not set")
        if self.max_attempts < 1:
            errors.append(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not 0 < self.http.port < 65536:
            errors.append(f"Invalid HTTP port: {self.http.port}")
        if self.metrics.interval_s <= 0:
            errors.append("metrics.interval_s must be positive")
        return errors

    def to_dict(self, redact: bool = True) -> dict:
        data = asdict(self)
        if redact and data["store"]["connection_string"]:
            data["store"]["connection_string"] = "***"
        return data


def load_settings(data: dict) -> ServiceSettings:
    """Load ServiceSettings from dictionary (e.g., from YAML file)"""
    store_data = data.get("store") or {}
    http_data = data.get("http") or {}
    config_data = data.get("config") or {}
    metrics_data = data.get("metrics") or {}

    return ServiceSettings(
        store=StoreSettings(
            connection_string=store_data.get("connection_string", ""),
            database=store_data.get("database", "testdb"),
            documents_collection=store_data.get("documents_collection", "documents"),
            config_collection=store_data.get("config_collection", "config"),
            metrics_collection=store_data.get("metrics_collection", "metrics"),
            connect_timeout_s=store_data.get("connect_timeout_s", 10.0),
        ),
        http=HttpSettings(
            host=http_data.get("host", "0.0.0.0"),
            port=http_data.get("port", 5000),
        ),
        config=ConfigPlaneSettings(
            fetch_timeout_s=config_data.get("fetch_timeout_s", 10.0),
            use_default_on_boot=config_data.get("use_default_on_boot", False),
        ),
        metrics=MetricsSettings(
            interval_s=metrics_data.get("interval_s", 60.0),
            publish_timeout_s=metrics_data.get("publish_timeout_s", 10.0),
            metadata_path=metrics_data.get(
                "metadata_path", "/var/lib/cfn-init/data/metadata.json"
            ),
        ),
        max_attempts=data.get("max_attempts", 2),
    )


def load_settings_file(path: str | Path | None = None) -> ServiceSettings:
    """
    Load settings from an optional YAML file, then apply env overrides.

    Args:
        path: YAML settings file; None means defaults + environment only

    Returns:
        ServiceSettings instance

    Raises:
        ConfigError: The file exists but cannot be parsed
    """
    data: dict = {}
    if path is not None:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Settings file not found: {path}", recoverable=False)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing settings file {path}: {e}", recoverable=False)

        if not isinstance(data, dict):
            raise ConfigError(
                f"Settings file {path} must contain a mapping, got {type(data).__name__}",
                recoverable=False,
            )

    settings = load_settings(data)

    # Environment wins over the file
    conn_string = os.environ.get("MONGODB_CONNECTION_STRING")
    if conn_string:
        settings.store.connection_string = conn_string
    if os.environ.get("LIVESTORE_PORT"):
        settings.http.port = int(os.environ["LIVESTORE_PORT"])
    if os.environ.get("LIVESTORE_METADATA_PATH"):
        settings.metrics.metadata_path = os.environ["LIVESTORE_METADATA_PATH"]

    return settings
