"""
Error Classification

Maps a failure onto an event category. Categories are checked in order
and the first one with a matching pattern wins; anything unmatched lands
in UNKNOWN_CATEGORY.
"""

DEADLINE_CATEGORY = "context deadline exceeded"
CONNECTION_CATEGORY = "connection"
UNKNOWN_CATEGORY = "unknown"

# Ordered (category, patterns). Patterns are matched case-insensitively
# against "<ExceptionClass>: <message>".
ERROR_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (DEADLINE_CATEGORY, ("context deadline exceeded",)),
    (CONNECTION_CATEGORY, (
        "connection refused",
        "connection reset",
        "connection closed",
        "no servers found",
        "server selection timed out",
        "autoreconnect",
    )),
)


def describe_error(error: BaseException | str) -> str:
    """Text the classification patterns are matched against"""
    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {error}"
    return str(error)


def classify_error(
    error: BaseException | str,
    categories: tuple[tuple[str, tuple[str, ...]], ...] = ERROR_CATEGORIES,
) -> str:
    """
    Classify an error into an event category.

    Args:
        error: Exception (or bare message) to classify
        categories: Ordered (category, patterns) list; first match wins

    Returns:
        Category name, or UNKNOWN_CATEGORY when nothing matches
    """
    text = describe_error(error).lower()
    for category, patterns in categories:
        if any(pattern.lower() in text for pattern in patterns):
            return category
    return UNKNOWN_CATEGORY
