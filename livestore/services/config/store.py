"""
Config Store

Holds the single active ConfigSnapshot. Reads are served from memory and
never wait on a fetch; the refresher swaps in a whole new snapshot.
"""

import threading
from datetime import datetime, timezone

from livestore.common.config import ConfigSnapshot
from livestore.common.exceptions import ConfigError


class ConfigStore:
    """
    Active configuration holder.

    One lock guards the snapshot reference. Snapshots are frozen, so a
    caller that read before a replace keeps a consistent value for the rest
    of its operation.
    """

    def __init__(self, initial: ConfigSnapshot | None = None):
        self._lock = threading.Lock()
        self._snapshot: ConfigSnapshot | None = None
        self._generation = 0
        self._replaced_at: datetime | None = None
        if initial is not None:
            self.replace(initial)

    def read(self) -> ConfigSnapshot:
        """
        Get the active snapshot.

        Raises:
            ConfigError: No snapshot has been installed yet
        """
        with self._lock:
            snapshot = self._snapshot
        if snapshot is None:
            raise ConfigError("No configuration loaded")
        return snapshot

    def replace(self, snapshot: ConfigSnapshot) -> int:
        """
        Install a new active snapshot.

        Returns:
            Generation number of the installed snapshot
        """
        with self._lock:
            self._snapshot = snapshot
            self._generation += 1
            self._replaced_at = datetime.now(timezone.utc)
            return self._generation

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._snapshot is not None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def replaced_at(self) -> datetime | None:
        with self._lock:
            return self._replaced_at
