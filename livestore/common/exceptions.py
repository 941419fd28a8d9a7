"""
Custom Exception Classes for Livestore

Hierarchical exception structure for error handling across services.
"""


class LivestoreError(Exception):
    """Base exception for all livestore errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(LivestoreError):
    """Configuration-related errors (settings, config document, bootstrap)"""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(f"Config Error: {message}", recoverable)


class StoreError(LivestoreError):
    """Remote document store errors"""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message, recoverable=True)


class DeadlineExceededError(StoreError):
    """An attempt ran past its configured deadline"""

    MESSAGE = "context deadline exceeded"

    def __init__(self, operation: str | None = None, timeout_ms: int | None = None):
        self.timeout_ms = timeout_ms
        super().__init__(self.MESSAGE, operation)


class PublishError(LivestoreError):
    """Metrics publication errors"""

    def __init__(self, message: str):
        super().__init__(f"Publish Error: {message}", recoverable=True)


class ServiceError(LivestoreError):
    """Service lifecycle errors"""

    def __init__(self, message: str, service_name: str, recoverable: bool = True):
        self.service_name = service_name
        super().__init__(f"Service [{service_name}]: {message}", recoverable)
