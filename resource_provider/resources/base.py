# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Base class and shared plumbing for resource kinds.

A resource kind supplies the parts of the lifecycle that depend on its
remote API: how to build the create payload, how to fetch and flatten
the remote representation, which sub-calls apply which attribute
changes, and how deletion and import identifiers work. Sequencing,
tag reconciliation and not-found absorption live in
``services.lifecycle``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..clients.http_client import RemoteClient
from ..clients.jobs import JobPoller
from ..clients.tags import TagApiStyle
from ..exceptions import (
    InvalidIdentifierFormatError,
    MissingIdentifierError,
    PartialFieldSetError,
    RemoteAPIError,
)
from ..models.schema import ResourceDescriptor
from ..models.state import ChangeSet, DesiredState
from ..utils.path_search import search_as

logger = logging.getLogger(__name__)

DEFAULT_NOT_FOUND_STATUSES = (404,)
COMPOSITE_ID_DELIMITER = "/"


@dataclass
class OperationContext:
    """Everything a handler hook needs for one remote operation."""

    client: RemoteClient
    region: str = ""
    enterprise_project_id: Optional[str] = None
    resource_id: str = ""
    desired: DesiredState = field(default_factory=dict)
    changes: ChangeSet = field(default_factory=ChangeSet)
    poller: Optional[JobPoller] = None

    def wait_for_job(self, job_id: Optional[str]) -> None:
        """Block on an asynchronous job; no-op when the call returned none."""
        if not job_id:
            return
        if self.poller is None:
            raise RuntimeError(f"job {job_id} returned but no job poller is configured")
        self.poller.wait(job_id)


@dataclass(frozen=True)
class UpdateGroup:
    """
    Attributes applied together by one remote call.

    ``apply`` runs once when any attribute in ``fields`` changed.
    """

    name: str
    fields: tuple[str, ...]
    apply: Callable[[OperationContext], None]


class ObservedStateBuilder:
    """
    Collects observed attribute values, checking each against the descriptor.

    Failures are gathered instead of raised so one Read reports every
    attribute that could not be set; :meth:`build` raises them together
    as a :class:`PartialFieldSetError`.
    """

    def __init__(self, descriptor: ResourceDescriptor):
        self.descriptor = descriptor
        self.values: dict[str, Any] = {}
        self.errors: list[Exception] = []

    def set(self, name: str, value: Any) -> None:
        """Record one attribute value."""
        problems = self.descriptor.check_value(name, value)
        if problems:
            self.errors.append(ValueError("; ".join(problems)))
            return
        self.values[name] = value

    def set_from(self, name: str, getter: Callable[[], Any]) -> None:
        """Record an attribute whose value needs a further remote call."""
        try:
            value = getter()
        except (RemoteAPIError, ValueError, TypeError, KeyError) as e:
            self.errors.append(ValueError(f"{name}: {e}"))
            return
        self.set(name, value)

    def add_error(self, error: Exception) -> None:
        self.errors.append(error)

    def build(self) -> dict[str, Any]:
        """
        Return the collected values.

        Raises:
            PartialFieldSetError: If any attribute failed
        """
        if self.errors:
            raise PartialFieldSetError(self.descriptor.type_name, self.errors)
        return dict(self.values)


def parse_composite_id(
    raw_id: str,
    parts: tuple[str, str] = ("id", "name"),
    delimiter: str = COMPOSITE_ID_DELIMITER,
) -> dict[str, str]:
    """
    Split a ``<first>/<second>`` identifier.

    Args:
        raw_id: Identifier supplied by the caller
        parts: Names of the two segments
        delimiter: Segment separator

    Returns:
        Mapping of segment name to value

    Raises:
        InvalidIdentifierFormatError: Unless there are exactly two non-empty segments
    """
    segments = (raw_id or "").split(delimiter)
    if len(segments) != 2 or not all(segments):
        raise InvalidIdentifierFormatError(
            f"invalid identifier {raw_id!r}: format must be "
            f"<{parts[0]}>{delimiter}<{parts[1]}>"
        )
    return dict(zip(parts, segments))


def require_identifier(response: dict[str, Any], path: str, type_name: str) -> str:
    """
    Extract the new handle from a create response.

    Raises:
        MissingIdentifierError: If the path is absent or empty
    """
    value = search_as(path, response, str)
    if not value:
        raise MissingIdentifierError(
            f"error creating {type_name}: {path} is not found in API response"
        )
    return value


class ResourceHandler(ABC):
    """Remote-API specific hooks for one resource kind."""

    descriptor: ResourceDescriptor
    # Catalog name used to derive the endpoint
    service: str
    # Structured error codes meaning "already gone"
    not_found_codes: tuple[str, ...] = ()
    not_found_statuses: tuple[int, ...] = DEFAULT_NOT_FOUND_STATUSES
    # None when the kind has no tag side-channel
    tag_style: Optional[TagApiStyle] = None
    # Tags travel in the create body and come back in the fetch body
    tags_in_body: bool = False
    # Kind issues asynchronous jobs that must be polled
    uses_jobs: bool = False

    @property
    def type_name(self) -> str:
        return self.descriptor.type_name

    def is_not_found(self, error: RemoteAPIError) -> bool:
        """
        Whether a remote error means the object no longer exists.

        A designated error code counts whatever the HTTP status class;
        a plain 404 counts as well.
        """
        if any(error.has_error_code(code) for code in self.not_found_codes):
            return True
        return error.status_code in self.not_found_statuses

    def tag_path(self, resource_id: str) -> Optional[str]:
        """Base path of the tag side-channel for one object."""
        return None

    def remote_id(self, resource_id: str) -> str:
        """Identifier the remote API knows the object by."""
        return resource_id

    @abstractmethod
    def create(self, ctx: OperationContext) -> str:
        """
        Issue the create call(s) and return the new handle.

        Raises:
            MissingIdentifierError: If the response lacks the identifier
        """

    @abstractmethod
    def fetch(self, ctx: OperationContext) -> dict[str, Any]:
        """
        Return the raw remote representation.

        Raises:
            ResourceNotFoundError: If the object is gone
            RemoteAPIError: On any other failure
        """

    @abstractmethod
    def flatten(
        self, ctx: OperationContext, raw: dict[str, Any], state: ObservedStateBuilder
    ) -> None:
        """Map the raw representation onto observed attributes."""

    def update_groups(self) -> list[UpdateGroup]:
        """In-place update calls, in dispatch order."""
        return []

    def replace_fields(self, changes: ChangeSet) -> list[str]:
        """
        Nested attributes whose change forces replacement.

        Covers parts of a block that is otherwise updated in place, such
        as one key of a singleton block. Top-level force-new attributes
        come from the descriptor and are not repeated here.
        """
        return []

    @abstractmethod
    def delete(self, ctx: OperationContext) -> None:
        """Issue the delete call(s); errors propagate to the orchestrator."""

    def parse_import_id(self, raw_id: str) -> tuple[str, dict[str, Any]]:
        """
        Resolve an import identifier into a handle and identifying attributes.

        The default accepts a bare remote ID.

        Raises:
            InvalidIdentifierFormatError: If the identifier is malformed
        """
        handle = (raw_id or "").strip()
        if not handle or COMPOSITE_ID_DELIMITER in handle:
            raise InvalidIdentifierFormatError(
                f"invalid identifier {raw_id!r} for {self.type_name}: expected a bare ID"
            )
        return handle, {}
