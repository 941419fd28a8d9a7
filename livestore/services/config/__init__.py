"""
Config Service - Live Configuration Plane

Responsibilities:
- Hold the active runtime config snapshot (ConfigStore)
- Load it at start-up, creating the default document on first boot
- Refresh it periodically without blocking readers
"""

from .refresher import ConfigRefresher, RefreshState
from .source import ConfigSource, MongoConfigSource
from .store import ConfigStore
from .validator import ConfigValidator

__all__ = [
    "ConfigRefresher",
    "RefreshState",
    "ConfigSource",
    "MongoConfigSource",
    "ConfigStore",
    "ConfigValidator",
]
