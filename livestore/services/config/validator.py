"""
Configuration Validator

Validates a config document before it is turned into a snapshot, so a
snapshot is either built whole or not at all.
"""

from typing import Any

from livestore.common.config import (
    AGG_TIMEOUT_FIELD,
    DEFAULT_TIMEOUT_FIELD,
    FIND_TIMEOUT_FIELD,
    UPDATE_INTERVAL_FIELD,
    UPSERT_TIMEOUT_FIELD,
)
from livestore.common.logging_setup import get_service_logger

logger = get_service_logger("config.validator")

REQUIRED_DURATION_FIELDS = (
    UPSERT_TIMEOUT_FIELD,
    FIND_TIMEOUT_FIELD,
    AGG_TIMEOUT_FIELD,
    DEFAULT_TIMEOUT_FIELD,
)

OPTIONAL_INT_FIELDS = (
    UPDATE_INTERVAL_FIELD,
    "aggInQuerySize",
    "findResultCap",
    "findMaxTimeMs",
    "findTimeoutMs",
    "aggMaxTimeMs",
    "aggTimeoutMs",
)

# Fields that must be strictly positive when present
POSITIVE_FIELDS = (UPDATE_INTERVAL_FIELD, "aggInQuerySize", "findResultCap")


def _is_int(value: Any) -> bool:
    # bool is an int subclass; a stored true/false is not a duration
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


class ConfigValidator:
    """Validates config documents"""

    def validate(self, config: dict[str, Any]) -> tuple[bool, list[str]]:
        """
        Validate a config document.

        Args:
            config: Config document as stored

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors: list[str] = []

        for name in REQUIRED_DURATION_FIELDS:
            if config.get(name) is None:
                errors.append(f"Missing {name}")
            else:
                errors.extend(self._check_int(config, name))

        for name in OPTIONAL_INT_FIELDS:
            if config.get(name) is not None:
                errors.extend(self._check_int(config, name))

        for name in POSITIVE_FIELDS:
            value = config.get(name)
            if _is_int(value) and value == 0:
                errors.append(f"{name} must be greater than 0")

        is_valid = len(errors) == 0

        if not is_valid:
            logger.warning(
                f"Config validation failed: {len(errors)} errors",
                extra={"errors": errors},
            )
        else:
            logger.debug("Config validation passed")

        return is_valid, errors

    def _check_int(self, config: dict[str, Any], name: str) -> list[str]:
        value = config[name]
        if not _is_int(value):
            return [f"{name} must be an integer number of milliseconds, got {value!r}"]
        if value < 0:
            return [f"{name} must be non-negative, got {value}"]
        return []
