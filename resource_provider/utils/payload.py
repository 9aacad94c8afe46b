# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Request body helpers used by resource kinds to build wire payloads.

Declarative configuration models a singleton nested block as a list
holding one mapping. These helpers flatten such blocks and drop empty
optional values so the remote side applies its own defaults.
"""

import hashlib
from typing import Any, Iterable, Mapping


def is_empty(value: Any) -> bool:
    """True for None, empty strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple, dict)) and len(value) == 0:
        return True
    return False


def value_ignore_empty(value: Any) -> Any:
    """Return None for an empty value, the value itself otherwise."""
    return None if is_empty(value) else value


def remove_nil(value: Any) -> Any:
    """
    Recursively drop None values, empty strings and containers left empty.

    Lists keep their order; list items that become empty are dropped.
    Booleans and zero are kept.
    """
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            cleaned = remove_nil(item)
            if not is_empty(cleaned):
                result[key] = cleaned
        return result

    if isinstance(value, (list, tuple)):
        result_list = []
        for item in value:
            cleaned = remove_nil(item)
            if not is_empty(cleaned):
                result_list.append(cleaned)
        return result_list

    return value


def build_body(fields: Mapping[str, Any], required: Iterable[str] = ()) -> dict[str, Any]:
    """
    Build a request body, omitting empty optional fields.

    Fields listed in ``required`` are always present, even when empty,
    so the remote API reports the omission instead of silently
    defaulting.

    Args:
        fields: Candidate body fields
        required: Names of fields that must always be sent

    Returns:
        Payload dictionary
    """
    required_set = set(required)
    body = {}
    for key, value in fields.items():
        cleaned = remove_nil(value)
        if key in required_set or not is_empty(cleaned):
            body[key] = cleaned
    return body


def expand_singleton_block(raw: Any) -> dict[str, Any] | None:
    """
    Flatten a singleton nested block into a plain mapping.

    Accepts the list-of-one-map representation, a bare mapping, or
    nothing. Returns None when the block is absent.
    """
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (list, tuple)):
        if not raw or raw[0] is None:
            return None
        first = raw[0]
        if isinstance(first, Mapping):
            return dict(first)
    raise TypeError(f"expected a nested block, got {type(raw).__name__}")


def expand_tags(tags: Mapping[str, Any] | None) -> list[dict[str, str]]:
    """Convert a tag mapping to the ``[{"key": ..., "value": ...}]`` wire list."""
    if not tags:
        return []
    return [
        {"key": key, "value": "" if value is None else str(value)}
        for key, value in sorted(tags.items())
    ]


def flatten_tags(tag_list: list[dict[str, Any]] | None) -> dict[str, str]:
    """
    Convert a wire tag list to a mapping.

    Accepts both lowercase (``key``/``value``) and capitalised
    (``Key``/``Value``) entries. Entries without a key are skipped.
    """
    if not tag_list:
        return {}

    result = {}
    for tag in tag_list:
        if not isinstance(tag, Mapping):
            continue
        key = tag.get("key") or tag.get("Key", "")
        value = tag.get("value")
        if value is None:
            value = tag.get("Value", "")
        if key:
            result[key] = "" if value is None else str(value)
    return result


def hash_and_hex_encode(value: str | None) -> str:
    """Hash a sensitive value so only its digest is kept in state."""
    if not value:
        return ""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
