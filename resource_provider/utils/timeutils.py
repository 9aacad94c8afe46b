"""Timestamp conversion for epoch-millisecond API fields."""

import logging
import math
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
UTC_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


def format_epoch_millis(value: Any, fmt: str = RFC3339_FORMAT) -> str:
    """
    Convert milliseconds since the epoch to a fixed-format UTC string.

    Sub-second precision is dropped. A zero, missing or unparseable
    value yields an empty string.

    Args:
        value: Milliseconds since the epoch (int, float or numeric string)
        fmt: strftime format for the result

    Returns:
        Formatted timestamp, or "" when there is nothing to format
    """
    if value is None or isinstance(value, bool):
        return ""

    try:
        millis = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Cannot interpret {value!r} as an epoch-millisecond timestamp")
        return ""

    if millis == 0:
        return ""
    if not math.isfinite(millis):
        logger.warning(f"Timestamp {value!r} is not a finite number")
        return ""

    seconds = int(millis) // 1000
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(fmt)
    except (OverflowError, OSError, ValueError):
        logger.warning(f"Timestamp {value!r} is out of range")
        return ""
