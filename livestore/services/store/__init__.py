"""
Store Service - Remote Document Operations

Responsibilities:
- Connect to the document store with monitoring listeners attached
- Upsert / find / aggregate operations
- Retry with per-attempt deadlines taken from the live config
"""

from .client import StoreClient
from .documents import Document, DocumentRepository
from .retry import AttemptFailure, RetryingOperation, RetryOutcome

__all__ = [
    "StoreClient",
    "Document",
    "DocumentRepository",
    "AttemptFailure",
    "RetryingOperation",
    "RetryOutcome",
]
