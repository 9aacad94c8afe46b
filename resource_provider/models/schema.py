# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Resource schema descriptors.

A descriptor is defined once per resource kind and shared by every
instance of that kind. It records each attribute's type, whether it is
required, optional or computed, whether changing it forces replacement,
and the validation rules applied to declared values.
"""

import re
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import SchemaValidationError


class AttributeType(str, Enum):
    """Value types an attribute can hold."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"
    BLOCK = "block"


def _matches_type(value: Any, attr_type: AttributeType) -> bool:
    if attr_type == AttributeType.STRING:
        return isinstance(value, str)
    if attr_type == AttributeType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if attr_type == AttributeType.FLOAT:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if attr_type == AttributeType.BOOL:
        return isinstance(value, bool)
    if attr_type == AttributeType.LIST:
        return isinstance(value, (list, tuple))
    if attr_type in (AttributeType.MAP, AttributeType.BLOCK):
        return isinstance(value, Mapping)
    return False


class Attribute(BaseModel):
    """Definition of one resource attribute."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Attribute name as used in configuration")
    type: AttributeType = Field(..., description="Value type")
    required: bool = Field(False, description="Must be set in configuration")
    optional: bool = Field(False, description="May be set in configuration")
    computed: bool = Field(False, description="Filled in from the remote side")
    force_new: bool = Field(False, description="Changing it requires destroy and recreate")
    sensitive: bool = Field(False, description="Value must never be echoed")
    description: str = Field("", description="Human readable description")
    allowed_values: Optional[tuple[Any, ...]] = Field(None, description="Enumerated legal values")
    validation_regex: Optional[str] = Field(None, description="Pattern string values must match")
    elem_type: Optional[AttributeType] = Field(
        None, description="Element type for list and map attributes"
    )
    block: Optional[tuple["Attribute", ...]] = Field(
        None, description="Nested attributes of a block attribute"
    )
    max_items: Optional[int] = Field(None, ge=1, description="Maximum number of block items")

    @model_validator(mode="after")
    def check_flags(self) -> "Attribute":
        if not (self.required or self.optional or self.computed):
            raise ValueError(f"attribute {self.name} must be required, optional or computed")
        if self.required and (self.optional or self.computed):
            raise ValueError(f"required attribute {self.name} cannot be optional or computed")
        if self.type == AttributeType.BLOCK and not self.block:
            raise ValueError(f"block attribute {self.name} needs nested attributes")
        if self.block and self.type != AttributeType.BLOCK:
            raise ValueError(f"attribute {self.name} has nested attributes but is not a block")
        return self

    @property
    def computed_only(self) -> bool:
        """Set by the remote side only; configuration may not set it."""
        return self.computed and not self.optional and not self.required

    @property
    def updatable(self) -> bool:
        """Can be changed in place."""
        return not self.force_new and not self.computed_only

    def check(self, value: Any, path: str | None = None) -> list[str]:
        """
        Validate one value against this attribute.

        Args:
            value: Value to check (None means unset)
            path: Dotted location used in messages

        Returns:
            List of problems, empty when the value is valid
        """
        where = path or self.name
        if value is None:
            return []

        if self.type == AttributeType.BLOCK:
            return self._check_block(value, where)

        if not _matches_type(value, self.type):
            return [f"{where}: expected {self.type.value}, got {type(value).__name__}"]

        errors = []
        if self.elem_type is not None:
            items = value.values() if isinstance(value, Mapping) else value
            for item in items:
                if not _matches_type(item, self.elem_type):
                    errors.append(
                        f"{where}: element {item!r} is not {self.elem_type.value}"
                    )

        if self.allowed_values is not None and value not in self.allowed_values:
            allowed = ", ".join(str(v) for v in self.allowed_values)
            errors.append(f"{where}: {value!r} is not one of [{allowed}]")

        if self.validation_regex and isinstance(value, str):
            if not re.fullmatch(self.validation_regex, value):
                errors.append(f"{where}: {value!r} does not match {self.validation_regex}")

        return errors

    def _check_block(self, value: Any, where: str) -> list[str]:
        if isinstance(value, Mapping):
            items = [value]
        elif isinstance(value, (list, tuple)):
            items = list(value)
        else:
            return [f"{where}: expected a block, got {type(value).__name__}"]

        errors = []
        if self.max_items is not None and len(items) > self.max_items:
            errors.append(f"{where}: at most {self.max_items} item(s) allowed, got {len(items)}")

        nested = {a.name: a for a in self.block or ()}
        for index, item in enumerate(items):
            item_path = f"{where}[{index}]"
            if not isinstance(item, Mapping):
                errors.append(f"{item_path}: expected a mapping, got {type(item).__name__}")
                continue
            for key in item:
                if key not in nested:
                    errors.append(f"{item_path}: unknown attribute {key}")
            for name, attr in nested.items():
                sub_value = item.get(name)
                if attr.required and sub_value in (None, ""):
                    errors.append(f"{item_path}.{name}: required attribute is missing")
                    continue
                errors.extend(attr.check(sub_value, f"{item_path}.{name}"))
        return errors


Attribute.model_rebuild()


class ResourceDescriptor(BaseModel):
    """Static description of one resource kind."""

    model_config = ConfigDict(frozen=True)

    type_name: str = Field(..., description="Resource type name")
    description: str = Field("", description="What the resource represents")
    attributes: tuple[Attribute, ...] = Field(..., description="Top-level attributes")

    @model_validator(mode="after")
    def check_unique_names(self) -> "ResourceDescriptor":
        names = self.attribute_names
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"duplicate attributes in {self.type_name}: {sorted(duplicates)}")
        return self

    def attribute(self, name: str) -> Attribute | None:
        """Look up an attribute definition by name."""
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    @property
    def attribute_names(self) -> list[str]:
        return [a.name for a in self.attributes]

    @property
    def force_new_fields(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.force_new)

    @property
    def computed_only_fields(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.computed_only)

    @property
    def sensitive_fields(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.sensitive)

    @property
    def updatable_fields(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.updatable)

    @property
    def configurable_fields(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if not a.computed_only)

    def check_value(self, name: str, value: Any) -> list[str]:
        """Validate one attribute value; unknown names are reported."""
        attr = self.attribute(name)
        if attr is None:
            return [f"{name}: unknown attribute"]
        return attr.check(value)

    def validate_config(self, desired: Mapping[str, Any]) -> None:
        """
        Validate a desired state against the descriptor.

        Every problem is collected before raising.

        Args:
            desired: Declared attribute values

        Raises:
            SchemaValidationError: If any attribute is unknown, missing,
                mistyped, out of range, or computed-only but set
        """
        errors = []
        for name, value in desired.items():
            attr = self.attribute(name)
            if attr is None:
                errors.append(f"{name}: unknown attribute")
                continue
            if attr.computed_only and value not in (None, "", [], {}):
                errors.append(f"{name}: attribute is computed and cannot be set")
                continue
            errors.extend(attr.check(value))

        for attr in self.attributes:
            if attr.required and desired.get(attr.name) in (None, "", []):
                errors.append(f"{attr.name}: required attribute is missing")

        if errors:
            raise SchemaValidationError(self.type_name, errors)
