# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Minimal add/remove reconciliation of resource tag sets."""

import logging
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..clients.tags import TagClient

logger = logging.getLogger(__name__)


class TagDiff(BaseModel):
    """Tags to detach and tags to attach to converge on a new tag set."""

    model_config = ConfigDict(frozen=True)

    removals: dict[str, str] = Field(
        default_factory=dict, description="Old entries to detach, with their old values"
    )
    additions: dict[str, str] = Field(
        default_factory=dict, description="New entries to attach, with their new values"
    )

    @property
    def is_empty(self) -> bool:
        return not self.removals and not self.additions


def diff_tags(
    old: Optional[Mapping[str, str]], new: Optional[Mapping[str, str]]
) -> TagDiff:
    """
    Compute the tag changes between two tag sets.

    A key whose value changed appears in both halves: removed with the
    old value and added with the new one.

    Args:
        old: Previously declared tags
        new: Newly declared tags

    Returns:
        TagDiff with removals and additions
    """
    old = old or {}
    new = new or {}
    removals = {k: v for k, v in old.items() if k not in new or new[k] != v}
    additions = {k: v for k, v in new.items() if k not in old or old[k] != v}
    return TagDiff(removals=removals, additions=additions)


class TagReconciler:
    """Applies a tag diff through a resource's tag side-channel."""

    def reconcile(
        self,
        tag_client: TagClient,
        old: Optional[Mapping[str, str]],
        new: Optional[Mapping[str, str]],
    ) -> TagDiff:
        """
        Converge the remote tags from ``old`` to ``new``.

        Removals are sent before additions so a changed value never
        exists twice on the remote object. Each half is one batch call
        and an empty half issues no call. Errors propagate.

        Returns:
            The diff that was applied
        """
        diff = diff_tags(old, new)
        if diff.is_empty:
            logger.debug(f"No tag changes for {tag_client.base_path}")
            return diff

        logger.info(
            f"Reconciling tags on {tag_client.base_path}: "
            f"removing {sorted(diff.removals)}, adding {sorted(diff.additions)}"
        )
        tag_client.delete_tags(diff.removals)
        tag_client.create_tags(diff.additions)
        return diff
