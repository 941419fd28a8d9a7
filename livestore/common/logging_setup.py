"""
Logging

Every module logs through get_service_logger("<component>"), a child of
the "livestore" logger. setup_logging() installs one stdout handler on
that parent, emitting either one JSON object per line (production) or
plain text (local runs).

Structured fields go through `extra=` and end up as top-level JSON keys.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

ROOT_LOGGER = "livestore"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(service)s] %(message)s"

# Attributes of a bare LogRecord; anything beyond these came from extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "service"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, extra fields included"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", record.name),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Stamps the component name on every record, keeping call-site extra fields"""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT, defaults={"service": "-"})
    return JsonFormatter()


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Install the stdout handler on the "livestore" logger.

    Safe to call more than once; earlier handlers are replaced.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO)
        log_format: "json" or "text"
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(log_format.lower()))

    root = logging.getLogger(ROOT_LOGGER)
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False
    return root


def setup_logging_from_env() -> logging.Logger:
    """setup_logging() driven by LIVESTORE_LOG_LEVEL and LIVESTORE_LOG_FORMAT"""
    return setup_logging(
        os.environ.get("LIVESTORE_LOG_LEVEL", "INFO"),
        os.environ.get("LIVESTORE_LOG_FORMAT", "json"),
    )


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """Logger for one component, e.g. get_service_logger("config.refresher")"""
    return ServiceLoggerAdapter(
        logging.getLogger(f"{ROOT_LOGGER}.{service_name}"),
        {"service": service_name},
    )
