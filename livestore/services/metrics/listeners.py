"""
Driver Monitoring Listeners

pymongo event listeners that feed the EventCounter and the logs:
- Connection pool lifecycle (created, closed, cleared) is counted
- Server heartbeat failures and topology/server changes are logged

pymongo invokes these from its own background threads; handlers must be
quick and must not raise.
"""

from pymongo import monitoring

from livestore.common.logging_setup import get_service_logger

from .counter import EventCounter

logger = get_service_logger("metrics.driver")

CONNECTION_CREATED = "ConnectionCreated"
CONNECTION_CLOSED = "ConnectionClosed"
POOL_CLEARED = "PoolCleared"


class PoolEventListener(monitoring.ConnectionPoolListener):
    """Counts connection pool lifecycle events"""

    def __init__(self, counter: EventCounter):
        self.counter = counter

    def connection_created(self, event: monitoring.ConnectionCreatedEvent) -> None:
        self.counter.increment(CONNECTION_CREATED)
        logger.debug(
            f"Connection created: {event.address} #{event.connection_id}",
            extra={"address": str(event.address)},
        )

    def connection_closed(self, event: monitoring.ConnectionClosedEvent) -> None:
        self.counter.increment(CONNECTION_CLOSED)
        logger.debug(
            f"Connection closed: {event.address} #{event.connection_id} ({event.reason})",
            extra={"address": str(event.address), "reason": event.reason},
        )

    def pool_cleared(self, event: monitoring.PoolClearedEvent) -> None:
        self.counter.increment(POOL_CLEARED)
        logger.warning(
            f"Connection pool cleared: {event.address}",
            extra={"address": str(event.address)},
        )

    def pool_created(self, event: monitoring.PoolCreatedEvent) -> None:
        pass

    def pool_ready(self, event: monitoring.PoolReadyEvent) -> None:
        pass

    def pool_closed(self, event: monitoring.PoolClosedEvent) -> None:
        pass

    def connection_ready(self, event: monitoring.ConnectionReadyEvent) -> None:
        pass

    def connection_check_out_started(
        self, event: monitoring.ConnectionCheckOutStartedEvent
    ) -> None:
        pass

    def connection_check_out_failed(
        self, event: monitoring.ConnectionCheckOutFailedEvent
    ) -> None:
        pass

    def connection_checked_out(self, event: monitoring.ConnectionCheckedOutEvent) -> None:
        pass

    def connection_checked_in(self, event: monitoring.ConnectionCheckedInEvent) -> None:
        pass


class ServerHeartbeatLogger(monitoring.ServerHeartbeatListener):
    """Logs failed server heartbeats"""

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        pass

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        logger.warning(
            f"Server heartbeat failed: {event.connection_id}: {event.reply}",
            extra={"address": str(event.connection_id)},
        )


class TopologyLogger(monitoring.TopologyListener):
    """Logs topology description changes"""

    def opened(self, event: monitoring.TopologyOpenedEvent) -> None:
        logger.debug(f"Topology opened: {event.topology_id}")

    def description_changed(self, event: monitoring.TopologyDescriptionChangedEvent) -> None:
        previous = event.previous_description.topology_type_name
        new = event.new_description.topology_type_name
        logger.info(
            f"Topology description changed: {previous} -> {new}",
            extra={"previous": previous, "new": new},
        )

    def closed(self, event: monitoring.TopologyClosedEvent) -> None:
        logger.debug(f"Topology closed: {event.topology_id}")


class ServerLogger(monitoring.ServerListener):
    """Logs per-server description changes"""

    def opened(self, event: monitoring.ServerOpeningEvent) -> None:
        pass

    def description_changed(self, event: monitoring.ServerDescriptionChangedEvent) -> None:
        previous = event.previous_description.server_type_name
        new = event.new_description.server_type_name
        if previous != new:
            logger.info(
                f"Server description changed: {event.server_address} {previous} -> {new}",
                extra={"address": str(event.server_address)},
            )

    def closed(self, event: monitoring.ServerClosedEvent) -> None:
        pass


def build_listeners(counter: EventCounter) -> list:
    """All listeners to register on the store client"""
    return [
        PoolEventListener(counter),
        ServerHeartbeatLogger(),
        TopologyLogger(),
        ServerLogger(),
    ]
