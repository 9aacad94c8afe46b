# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Resource state, change set and plan data models."""

from enum import Enum
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from ..utils.payload import is_empty, remove_nil

# Attribute name -> value, as declared by the caller / read back from the API
DesiredState = dict[str, Any]
ObservedState = dict[str, Any]


def normalize_value(value: Any) -> Any:
    """Canonical form used for comparisons: empty values become None."""
    cleaned = remove_nil(value)
    return None if is_empty(cleaned) else cleaned


class FieldChange(BaseModel):
    """One attribute whose declared value changed."""

    model_config = ConfigDict(frozen=True)

    field: str
    old_value: Any = None
    new_value: Any = None


class ChangeSet(BaseModel):
    """
    Attribute-level difference between two desired states.

    Computed once per operation and passed by value. Empty values
    (None, "", [], {}) are equal to an absent attribute.
    """

    model_config = ConfigDict(frozen=True)

    changes: tuple[FieldChange, ...] = Field(default_factory=tuple)

    @classmethod
    def compute(
        cls,
        old: Mapping[str, Any] | None,
        new: Mapping[str, Any] | None,
        fields: Iterable[str] | None = None,
    ) -> "ChangeSet":
        """
        Diff two attribute mappings.

        Args:
            old: Previous desired state
            new: New desired state
            fields: Restrict the diff to these attributes (default: all keys)

        Returns:
            ChangeSet with one entry per changed attribute, sorted by name
        """
        old = old or {}
        new = new or {}
        names = sorted(set(fields) if fields is not None else set(old) | set(new))

        changes = []
        for name in names:
            old_value = old.get(name)
            new_value = new.get(name)
            if normalize_value(old_value) != normalize_value(new_value):
                changes.append(FieldChange(field=name, old_value=old_value, new_value=new_value))
        return cls(changes=tuple(changes))

    @property
    def changed_fields(self) -> list[str]:
        return [c.field for c in self.changes]

    def has_change(self, *fields: str) -> bool:
        """True if any of the given attributes changed."""
        changed = set(self.changed_fields)
        return any(f in changed for f in fields)

    def get_change(self, field: str) -> tuple[Any, Any]:
        """
        Old and new value of a changed attribute.

        Raises:
            KeyError: If the attribute did not change
        """
        for change in self.changes:
            if change.field == field:
                return change.old_value, change.new_value
        raise KeyError(field)

    def without(self, fields: Iterable[str]) -> "ChangeSet":
        """Copy of this change set with the given attributes removed."""
        excluded = set(fields)
        return ChangeSet(changes=tuple(c for c in self.changes if c.field not in excluded))

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)


class LifecycleStatus(str, Enum):
    """Where a resource instance is in its lifecycle."""

    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    UPDATING = "updating"
    DELETING = "deleting"
    IMPORTING = "importing"


class ResourceState(BaseModel):
    """State of one managed resource instance after an operation."""

    resource_type: str = Field(..., description="Resource type name")
    id: str = Field("", description="Remote handle; empty when absent")
    status: LifecycleStatus = Field(LifecycleStatus.ABSENT, description="Lifecycle status")
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Declared values merged with observed values"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Best-effort side effects that failed"
    )

    @property
    def exists(self) -> bool:
        return self.status != LifecycleStatus.ABSENT and bool(self.id)


class PlanAction(str, Enum):
    """What reconciling a desired state requires."""

    NO_OP = "no-op"
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


class PlanResult(BaseModel):
    """Outcome of planning one resource instance."""

    action: PlanAction
    changed_fields: list[str] = Field(default_factory=list)
    replace_fields: list[str] = Field(
        default_factory=list, description="Force-new attributes that triggered replacement"
    )
