"""
API Service - HTTP Surface and Lifecycle

Responsibilities:
- Serve the liveness, upsert, find, aggregate and health routes
- Wire the config, metrics and store services together
- Graceful start-up and shutdown
"""

from .handlers import ApiHandlers, create_app
from .service import LivestoreService

__all__ = ["ApiHandlers", "create_app", "LivestoreService"]
