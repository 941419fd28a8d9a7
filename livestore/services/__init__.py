"""
Livestore Services

- config  - live configuration plane (store, source, refresher)
- metrics - event counting, driver listeners, periodic publication
- store   - document store client, operations, retries
- api     - HTTP handlers and service lifecycle
"""
