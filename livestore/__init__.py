"""
Livestore Service

Document store load service with a live configuration plane:
- Config Service - periodic refresh of runtime tunables from the store
- Metrics Service - event counting and periodic publication
- Store Service - remote document operations with per-attempt deadlines
- API Service - HTTP surface and process lifecycle
"""

__version__ = "1.0.0"
