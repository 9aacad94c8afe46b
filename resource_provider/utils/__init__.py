"""Utility modules for the resource provider."""

from .path_search import path_search, search_as
from .payload import (
    build_body,
    expand_singleton_block,
    expand_tags,
    flatten_tags,
    hash_and_hex_encode,
    remove_nil,
    value_ignore_empty,
)
from .timeutils import RFC3339_FORMAT, UTC_DISPLAY_FORMAT, format_epoch_millis

__all__ = [
    "path_search",
    "search_as",
    "build_body",
    "expand_singleton_block",
    "expand_tags",
    "flatten_tags",
    "hash_and_hex_encode",
    "remove_nil",
    "value_ignore_empty",
    "RFC3339_FORMAT",
    "UTC_DISPLAY_FORMAT",
    "format_epoch_millis",
]
