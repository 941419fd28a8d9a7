"""
Environment Identity

Labels stamped on every metrics record: the deployment environment name,
read from the instance metadata file, and the host name.
"""

import json
import socket
from pathlib import Path
from typing import Any

from .logging_setup import get_service_logger

logger = get_service_logger("environment")

UNKNOWN = "unknown"
ENVIRONMENT_NAME_KEY = "environment_name"


def _find_key(data: Any, key: str) -> Any:
    """Depth-first search for the first occurrence of key in nested JSON"""
    if isinstance(data, dict):
        if key in data:
            return data[key]
        for value in data.values():
            found = _find_key(value, key)
            if found is not None:
                return found
    elif isinstance(data, list):
        for item in data:
            found = _find_key(item, key)
            if found is not None:
                return found
    return None


def _scan_lines(text: str) -> str | None:
    """Line scan for `"environment_name": "value"` in non-JSON content"""
    for line in text.splitlines():
        if ENVIRONMENT_NAME_KEY not in line:
            continue
        _, sep, rest = line.partition(":")
        if sep:
            return rest.strip().rstrip(",").strip().strip('"')
    return None


def read_environment_name(metadata_path: str | Path) -> str:
    """
    Read the environment name from the instance metadata file.

    Never raises: any problem yields "unknown".

    Args:
        metadata_path: Path to the metadata JSON file

    Returns:
        Environment name, or "unknown"
    """
    try:
        text = Path(metadata_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read metadata file {metadata_path}: {e}")
        return UNKNOWN

    try:
        name = _find_key(json.loads(text), ENVIRONMENT_NAME_KEY)
    except json.JSONDecodeError:
        name = _scan_lines(text)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Cannot parse metadata file {metadata_path}: {type(e).__name__}")
        return UNKNOWN

    if not name or not isinstance(name, str):
        logger.warning(f"No {ENVIRONMENT_NAME_KEY} in {metadata_path}")
        return UNKNOWN

    return name


def get_host_name() -> str:
    """Host label for metrics records"""
    try:
        return socket.gethostname() or UNKNOWN
    except OSError:
        return UNKNOWN
