# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tolerant field lookup over decoded JSON responses.

Every lookup names a default that is returned when the path is absent.
A path that resolves to ``null`` is treated exactly like a missing path,
so partial or evolving API responses never produce a hard failure.
"""

import logging
from typing import Any, TypeVar

import jmespath
from jmespath.exceptions import JMESPathError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def path_search(expression: str, data: Any, default: Any = None) -> Any:
    """
    Look up a JMESPath expression in a JSON-like tree.

    Args:
        expression: JMESPath expression (e.g. "secret.create_time")
        data: Decoded JSON document (dict, list or scalar)
        default: Value returned when the path is absent or null

    Returns:
        The value found, or ``default``
    """
    if data is None:
        return default

    try:
        result = jmespath.search(expression, data)
    except JMESPathError as e:
        logger.warning(f"Invalid lookup expression '{expression}': {e}")
        return default

    if result is None:
        return default
    return result


def search_as(expression: str, data: Any, expected_type: type[T], default: T | None = None) -> T | None:
    """
    Typed variant of :func:`path_search`.

    A value of the wrong type is reported and replaced by ``default``
    instead of raising. ``bool`` is not accepted where a number is
    expected, while ``int`` is accepted for ``float``.

    Args:
        expression: JMESPath expression
        data: Decoded JSON document
        expected_type: Python type the value must have
        default: Value returned when absent, null or mistyped

    Returns:
        The typed value, or ``default``
    """
    value = path_search(expression, data, None)
    if value is None:
        return default

    if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)

    if isinstance(value, bool) and expected_type is not bool:
        logger.warning(f"Field '{expression}' is a bool, expected {expected_type.__name__}")
        return default

    if not isinstance(value, expected_type):
        logger.warning(
            f"Field '{expression}' has type {type(value).__name__}, "
            f"expected {expected_type.__name__}"
        )
        return default

    return value
