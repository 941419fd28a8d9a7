"""
Common Utilities

Shared modules used across all services:
- config.py - Config snapshot and service settings dataclasses
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- scheduler.py - Periodic background loops
- environment.py - Environment/host identity
"""

from .config import (
    OperationKind,
    ConfigSnapshot,
    ServiceSettings,
    StoreSettings,
    HttpSettings,
    ConfigPlaneSettings,
    MetricsSettings,
    default_config_document,
    load_config_snapshot,
    snapshot_to_document,
    load_settings,
    load_settings_file,
)
from .exceptions import (
    LivestoreError,
    ConfigError,
    StoreError,
    DeadlineExceededError,
    PublishError,
    ServiceError,
)
from .logging_setup import (
    setup_logging,
    setup_logging_from_env,
    get_service_logger,
)
from .scheduler import ScheduledLoop, SchedulerGroup
from .environment import read_environment_name, get_host_name

__all__ = [
    # Config
    "OperationKind",
    "ConfigSnapshot",
    "ServiceSettings",
    "StoreSettings",
    "HttpSettings",
    "ConfigPlaneSettings",
    "MetricsSettings",
    "default_config_document",
    "load_config_snapshot",
    "snapshot_to_document",
    "load_settings",
    "load_settings_file",
    # Exceptions
    "LivestoreError",
    "ConfigError",
    "StoreError",
    "DeadlineExceededError",
    "PublishError",
    "ServiceError",
    # Logging
    "setup_logging",
    "setup_logging_from_env",
    "get_service_logger",
    # Scheduling
    "ScheduledLoop",
    "SchedulerGroup",
    # Identity
    "read_environment_name",
    "get_host_name",
]
