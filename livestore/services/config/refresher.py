"""
Config Refresher

Keeps the ConfigStore current:
- bootstrap(): synchronous first load before any request is served
- refresh_once(): one fetch-and-apply cycle, run on a ScheduledLoop

Each fetch is bounded by a fixed timeout that is deliberately not part of
the hot-reloadable config, so a bad config can never stop the refresher
from fetching a corrected one.

A failed refresh is logged and counted and the previous snapshot stays
active; it is never fatal. Only a failed bootstrap with no local fallback
aborts start-up.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum

from livestore.common.config import ConfigSnapshot
from livestore.common.exceptions import ConfigError
from livestore.common.logging_setup import get_service_logger
from livestore.common.scheduler import ScheduledLoop
from livestore.services.metrics.counter import CONFIG_REFRESH_FAILED, EventCounter

from .source import ConfigSource
from .store import ConfigStore

logger = get_service_logger("config.refresher")

# Bootstrap/administrative fetch timeout (seconds)
DEFAULT_FETCH_TIMEOUT_S = 10.0


class RefreshState(str, Enum):
    """Refresher state machine"""
    IDLE = "idle"
    FETCHING = "fetching"
    APPLIED = "applied"
    FETCH_FAILED = "fetch_failed"


class ConfigRefresher:
    """
    Periodically replaces the ConfigStore snapshot from the ConfigSource.

    The refresh period is the snapshot's update interval. When a refresh
    installs a snapshot with a different interval, the loop is retuned and
    the new period applies from the following tick.
    """

    def __init__(
        self,
        store: ConfigStore,
        source: ConfigSource,
        counter: EventCounter,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_S,
        fallback: ConfigSnapshot | None = None,
    ):
        self.store = store
        self.source = source
        self.counter = counter
        self.fetch_timeout = fetch_timeout
        self.fallback = fallback

        self.loop: ScheduledLoop | None = None

        self._state = RefreshState.IDLE
        self._last_outcome: RefreshState | None = None
        self._last_success_at: datetime | None = None
        self._last_error: str | None = None
        self._consecutive_failures = 0

    @property
    def state(self) -> RefreshState:
        return self._state

    async def bootstrap(self) -> ConfigSnapshot:
        """
        Load the first snapshot before the service accepts requests.

        Ensures the config document exists, then fetches it. Falls back to
        the local default snapshot if one was configured.

        Returns:
            The installed snapshot

        Raises:
            ConfigError: Fetch failed and no fallback exists (not recoverable)
        """
        self._state = RefreshState.FETCHING
        try:
            snapshot = await asyncio.wait_for(self._bootstrap_fetch(), timeout=self.fetch_timeout)
        except Exception as e:
            self._record_failure(e)
            if self.fallback is None:
                raise ConfigError(
                    f"Initial config load failed and no default is configured: {e}",
                    recoverable=False,
                ) from e

            logger.warning(f"Initial config load failed, using local default config: {e}")
            self.store.replace(self.fallback)
            return self.fallback

        self._apply(snapshot)
        logger.info(
            "Initial config loaded",
            extra={"update_interval_ms": snapshot.update_interval_ms},
        )
        return snapshot

    async def _bootstrap_fetch(self) -> ConfigSnapshot:
        await self.source.ensure_default()
        return await self.source.fetch()

    async def refresh_once(self) -> bool:
        """
        Run one refresh cycle.

        Returns:
            True if a new snapshot was applied
        """
        self._state = RefreshState.FETCHING
        try:
            snapshot = await asyncio.wait_for(self.source.fetch(), timeout=self.fetch_timeout)
        except Exception as e:
            self._record_failure(e)
            logger.error(
                f"Error refreshing config: {e}",
                extra={"consecutive_failures": self._consecutive_failures},
            )
            return False

        self._apply(snapshot)
        return True

    def _apply(self, snapshot: ConfigSnapshot) -> None:
        generation = self.store.replace(snapshot)
        self._state = RefreshState.IDLE
        self._last_outcome = RefreshState.APPLIED
        self._last_success_at = datetime.now(timezone.utc)
        self._last_error = None
        self._consecutive_failures = 0

        # Retune the running loop; the sleep in progress keeps its period
        if self.loop is not None:
            self.loop.set_interval(snapshot.update_interval_s)

        logger.debug(f"Config applied (generation {generation})")

    def _record_failure(self, error: BaseException) -> None:
        self._state = RefreshState.IDLE
        self._last_outcome = RefreshState.FETCH_FAILED
        self._last_error = str(error) or type(error).__name__
        self._consecutive_failures += 1
        self.counter.increment(CONFIG_REFRESH_FAILED)

    def build_loop(self) -> ScheduledLoop:
        """Create the periodic refresh loop (after bootstrap)"""
        interval = self.store.read().update_interval_s
        self.loop = ScheduledLoop(interval, self.refresh_once, name="config-refresh")
        return self.loop

    def get_stats(self) -> dict:
        return {
            "state": self._state.value,
            "last_outcome": self._last_outcome.value if self._last_outcome else None,
            "last_success_at": (
                self._last_success_at.isoformat() if self._last_success_at else None
            ),
            "last_error": self._last_error,
            "consecutive_failures": self._consecutive_failures,
        }
