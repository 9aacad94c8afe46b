# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Lifecycle orchestrator: drives one resource instance through its states.

    Absent -> Creating -> Present -> Updating -> Present -> Deleting -> Absent
                          ^
              Importing --+

Each operation runs to completion on the calling thread and issues its
remote calls strictly one after another. A failure part way through an
update leaves the remote object with a prefix of the intended changes;
only a later Read shows where it stopped.
"""

import logging
import time
from typing import Any, Callable, Mapping, Optional, TypeVar

from ..clients.client_factory import ServiceClientFactory
from ..clients.http_client import RemoteClient
from ..clients.jobs import JobPoller
from ..clients.tags import TagClient
from ..exceptions import (
    JobFailedError,
    JobTimeoutError,
    ProviderError,
    RemoteAPIError,
    ReplacementRequiredError,
    ResourceNotFoundError,
)
from ..models.audit import AuditStatus
from ..models.state import (
    ChangeSet,
    DesiredState,
    LifecycleStatus,
    PlanAction,
    PlanResult,
    ResourceState,
)
from ..resources.base import ObservedStateBuilder, OperationContext, ResourceHandler
from ..utils.correlation import get_correlation_id, get_correlation_id_for_logging
from ..utils.error_sanitization import redact_attributes, redact_sensitive_info
from ..utils.payload import is_empty
from .audit_service import AuditService
from .tag_reconciler import TagReconciler

logger = logging.getLogger(__name__)

T = TypeVar("T")

TAGS_ATTRIBUTE = "tags"
REGION_ATTRIBUTE = "region"


class ResourceLifecycle:
    """
    Create, read, update, delete and import for one resource kind.

    The handler supplies the remote-API specific hooks; this class owns
    the sequencing, the tag side-channel, not-found absorption and the
    audit trail.
    """

    def __init__(
        self,
        handler: ResourceHandler,
        client_factory: ServiceClientFactory,
        audit_service: Optional[AuditService] = None,
        tag_reconciler: Optional[TagReconciler] = None,
        job_poller_factory: Optional[Callable[[RemoteClient], JobPoller]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            handler: Resource kind hooks
            client_factory: Source of per-service, per-region clients
            audit_service: Records every operation when provided
            tag_reconciler: Applies tag diffs (default TagReconciler)
            job_poller_factory: Builds a poller for a client; defaults to
                a JobPoller with its default interval and timeout
        """
        self.handler = handler
        self.client_factory = client_factory
        self.audit_service = audit_service
        self.tag_reconciler = tag_reconciler or TagReconciler()
        self.job_poller_factory = job_poller_factory or (lambda client: JobPoller(client))

    @property
    def type_name(self) -> str:
        return self.handler.type_name

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def plan(
        self,
        old: Optional[DesiredState],
        new: Optional[DesiredState],
        resource_id: str = "",
    ) -> PlanResult:
        """
        Decide what converging on ``new`` requires.

        Args:
            old: Previously applied desired state
            new: Newly declared desired state; None means the resource is removed
            resource_id: Current handle, empty when the resource does not exist

        Returns:
            PlanResult naming the action and the attributes involved
        """
        if new is None:
            if resource_id:
                return PlanResult(action=PlanAction.DELETE)
            return PlanResult(action=PlanAction.NO_OP)

        self.handler.descriptor.validate_config(new)
        if not resource_id:
            return PlanResult(action=PlanAction.CREATE, changed_fields=sorted(new))

        changes = self._changes(old, new)
        if not changes:
            return PlanResult(action=PlanAction.NO_OP)

        replace_fields = self._replace_fields(changes)
        action = PlanAction.REPLACE if replace_fields else PlanAction.UPDATE
        return PlanResult(
            action=action,
            changed_fields=changes.changed_fields,
            replace_fields=replace_fields,
        )

    def create(self, desired: DesiredState) -> ResourceState:
        """
        Create the remote object, attach its tags, then read it back.

        Tag attachment here is best effort: a failure is logged and
        recorded in ``ResourceState.warnings``, never raised.

        Args:
            desired: Declared attribute values

        Returns:
            Present state with a non-empty handle

        Raises:
            SchemaValidationError: If the desired state is invalid
            MissingIdentifierError: If the create response had no identifier
            ResourceNotFoundError: If the new object cannot be read back

        Any error raised after the remote object exists carries its handle
        in ``resource_id`` so the caller can still track and delete it.
        """
        return self._audited("create", "", desired, lambda: self._create(desired))

    def read(
        self, resource_id: str, attributes: Optional[DesiredState] = None
    ) -> ResourceState:
        """
        Read the remote object into observed state.

        Args:
            resource_id: Handle returned by create or import
            attributes: Last known attributes (region, declared values)

        Returns:
            Present state, or an absent state when the object is gone

        Raises:
            PartialFieldSetError: If some attributes could not be set
            RemoteAPIError: On any remote failure other than not-found
        """
        return self._audited(
            "read", resource_id, attributes, lambda: self._read(resource_id, attributes or {})
        )

    def update(
        self,
        resource_id: str,
        old: Optional[DesiredState],
        new: DesiredState,
    ) -> ResourceState:
        """
        Apply the in-place changes between two desired states, then read back.

        One remote call is issued per changed attribute group, in the
        handler's order, followed by tag removals and tag additions.
        Tag failures here are fatal.

        Raises:
            SchemaValidationError: If the new desired state is invalid
            ReplacementRequiredError: If a force-new attribute changed
        """
        return self._audited(
            "update", resource_id, new, lambda: self._update(resource_id, old or {}, new)
        )

    def delete(
        self, resource_id: str, attributes: Optional[DesiredState] = None
    ) -> ResourceState:
        """
        Delete the remote object. An object that is already gone counts as deleted.

        Returns:
            Absent state
        """
        return self._audited(
            "delete",
            resource_id,
            attributes,
            lambda: self._delete(resource_id, attributes or {}),
        )

    def import_state(self, raw_id: str) -> ResourceState:
        """
        Resolve an import identifier into a handle.

        Only the identifying attributes are populated; a Read fills in
        the rest.

        Raises:
            InvalidIdentifierFormatError: If the identifier is malformed
        """
        return self._audited("import", raw_id, {"id": raw_id}, lambda: self._import(raw_id))

    # ------------------------------------------------------------------
    # Implementation
    # ------------------------------------------------------------------

    def _create(self, desired: DesiredState) -> ResourceState:
        self.handler.descriptor.validate_config(desired)
        ctx = self._context(desired)
        try:
            return self._create_and_read(ctx, desired)
        except ProviderError as e:
            # ctx.resource_id is set once the object is allocated
            if ctx.resource_id:
                self._mark_left_behind(e, ctx.resource_id, LifecycleStatus.CREATING)
            raise

    def _create_and_read(self, ctx: OperationContext, desired: DesiredState) -> ResourceState:
        logger.info(f"Creating {self.type_name}", extra=get_correlation_id_for_logging())
        resource_id = self.handler.create(ctx)
        ctx.resource_id = resource_id
        logger.info(
            f"Created {self.type_name} {resource_id}", extra=get_correlation_id_for_logging()
        )

        warnings = []
        tags = desired.get(TAGS_ATTRIBUTE)
        tag_client = self._tag_client(ctx)
        if tags and tag_client is not None:
            try:
                tag_client.create_tags(tags)
            except ProviderError as e:
                message = f"failed to attach tags to {self.type_name} {resource_id}: {e}"
                logger.warning(message, extra=get_correlation_id_for_logging())
                warnings.append(redact_sensitive_info(message))

        state = self._read(resource_id, desired)
        if not state.exists:
            raise ResourceNotFoundError(
                f"{self.type_name} {resource_id} was created but cannot be read back",
                resource_id=resource_id,
            )
        return state.model_copy(update={"warnings": warnings + state.warnings})

    def _read(self, resource_id: str, attributes: Mapping[str, Any]) -> ResourceState:
        ctx = self._context(attributes, resource_id)

        try:
            raw = self.handler.fetch(ctx)
        except ResourceNotFoundError:
            return self._absent(resource_id)
        except RemoteAPIError as e:
            if self.handler.is_not_found(e):
                return self._absent(resource_id)
            raise

        state = ObservedStateBuilder(self.handler.descriptor)
        if self.handler.descriptor.attribute(REGION_ATTRIBUTE) is not None:
            state.set(REGION_ATTRIBUTE, ctx.region)
        self.handler.flatten(ctx, raw, state)

        warnings = []
        tag_client = self._tag_client(ctx)
        if tag_client is not None:
            try:
                state.set(TAGS_ATTRIBUTE, tag_client.get_tags())
            except RemoteAPIError as e:
                message = f"failed to query tags of {self.type_name} {resource_id}: {e}"
                logger.warning(message, extra=get_correlation_id_for_logging())
                warnings.append(redact_sensitive_info(message))

        observed = state.build()
        # a path the API left out keeps the declared value
        merged = dict(attributes)
        merged.update({k: v for k, v in observed.items() if v is not None})
        return ResourceState(
            resource_type=self.type_name,
            id=resource_id,
            status=LifecycleStatus.PRESENT,
            attributes=merged,
            warnings=warnings,
        )

    def _update(
        self, resource_id: str, old: Mapping[str, Any], new: DesiredState
    ) -> ResourceState:
        self.handler.descriptor.validate_config(new)
        changes = self._changes(old, new)

        replace_fields = self._replace_fields(changes)
        if replace_fields:
            raise ReplacementRequiredError(self.type_name, replace_fields)

        if not changes:
            logger.info(f"No changes for {self.type_name} {resource_id}")
            return self._read(resource_id, new)

        ctx = self._context(new, resource_id, changes)
        logger.info(
            f"Updating {self.type_name} {resource_id}: {changes.changed_fields}",
            extra=get_correlation_id_for_logging(),
        )

        handled = {TAGS_ATTRIBUTE}
        applied = 0
        for group in self.handler.update_groups():
            handled.update(group.fields)
            if changes.has_change(*group.fields):
                logger.debug(f"Applying update group {group.name} to {resource_id}")
                try:
                    group.apply(ctx)
                except ProviderError as e:
                    if applied or isinstance(e, (JobFailedError, JobTimeoutError)):
                        self._mark_left_behind(e, resource_id, LifecycleStatus.UPDATING)
                    raise
                applied += 1

        unhandled = [f for f in changes.changed_fields if f not in handled]
        if unhandled:
            logger.warning(f"{self.type_name} has no update call for {unhandled}; ignoring")

        if changes.has_change(TAGS_ATTRIBUTE):
            tag_client = self._tag_client(ctx, for_update=True)
            if tag_client is not None:
                old_tags, new_tags = changes.get_change(TAGS_ATTRIBUTE)
                self.tag_reconciler.reconcile(tag_client, old_tags, new_tags)

        return self._read(resource_id, new)

    def _delete(self, resource_id: str, attributes: Mapping[str, Any]) -> ResourceState:
        ctx = self._context(attributes, resource_id)
        logger.info(
            f"Deleting {self.type_name} {resource_id}", extra=get_correlation_id_for_logging()
        )
        try:
            self.handler.delete(ctx)
        except (JobFailedError, JobTimeoutError) as e:
            # the delete was accepted; the object may be half torn down
            self._mark_left_behind(e, resource_id, LifecycleStatus.DELETING)
            raise
        except ResourceNotFoundError:
            logger.info(f"{self.type_name} {resource_id} already deleted")
        except RemoteAPIError as e:
            if not self.handler.is_not_found(e):
                raise
            logger.info(f"{self.type_name} {resource_id} already deleted")
        return self._absent(resource_id)

    def _import(self, raw_id: str) -> ResourceState:
        handle, identifying = self.handler.parse_import_id(raw_id)
        logger.info(f"Importing {self.type_name} {handle}")
        return ResourceState(
            resource_type=self.type_name,
            id=handle,
            status=LifecycleStatus.IMPORTING,
            attributes=identifying,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _region(self, attributes: Mapping[str, Any]) -> str:
        return attributes.get(REGION_ATTRIBUTE) or self.client_factory.default_region

    def _context(
        self,
        attributes: Mapping[str, Any],
        resource_id: str = "",
        changes: Optional[ChangeSet] = None,
    ) -> OperationContext:
        region = self._region(attributes)
        client = self.client_factory.get_client(self.handler.service, region)
        return OperationContext(
            client=client,
            region=region,
            enterprise_project_id=self.client_factory.default_enterprise_project_id,
            resource_id=resource_id,
            desired=dict(attributes),
            changes=changes or ChangeSet(),
            poller=self.job_poller_factory(client) if self.handler.uses_jobs else None,
        )

    def _tag_client(
        self, ctx: OperationContext, for_update: bool = False
    ) -> Optional[TagClient]:
        """Tag side-channel client; None when tags travel in the resource body."""
        if self.handler.tag_style is None:
            return None
        if self.handler.tags_in_body and not for_update:
            return None
        path = self.handler.tag_path(ctx.resource_id)
        if path is None:
            return None
        return TagClient(ctx.client, path, self.handler.tag_style)

    def _changes(self, old: Optional[Mapping[str, Any]], new: Mapping[str, Any]) -> ChangeSet:
        """
        Diff configurable attributes.

        An optional+computed attribute left out of ``new`` keeps its
        remote value and is not a change.
        """
        descriptor = self.handler.descriptor
        changes = ChangeSet.compute(old, new, descriptor.configurable_fields)
        keep_remote = [
            c.field
            for c in changes.changes
            if descriptor.attribute(c.field).computed and is_empty(c.new_value)
        ]
        return changes.without(keep_remote)

    def _replace_fields(self, changes: ChangeSet) -> list[str]:
        """Changed attributes that cannot be applied in place, top-level and nested."""
        fields = [f for f in changes.changed_fields if f in self.handler.descriptor.force_new_fields]
        fields.extend(self.handler.replace_fields(changes))
        return sorted(fields)

    def _mark_left_behind(
        self, error: ProviderError, resource_id: str, status: LifecycleStatus
    ) -> None:
        """Attach the handle of an object a failed operation left in place."""
        error.resource_id = error.resource_id or resource_id
        error.lifecycle_status = error.lifecycle_status or status.value
        reason = redact_sensitive_info(str(error))
        logger.warning(
            f"{self.type_name} {resource_id} left {status.value} after failure: {reason}",
            extra=get_correlation_id_for_logging(),
        )

    def _absent(self, resource_id: str) -> ResourceState:
        logger.info(f"{self.type_name} {resource_id} not found; marking absent")
        return ResourceState(resource_type=self.type_name, id="", status=LifecycleStatus.ABSENT)

    def _audited(
        self,
        operation: str,
        resource_id: str,
        parameters: Optional[Mapping[str, Any]],
        func: Callable[[], T],
    ) -> T:
        """Run one operation and record its outcome in the audit trail."""
        start_time = time.time()
        try:
            result = func()
        except Exception as e:
            if isinstance(e, ProviderError) and e.resource_id:
                resource_id = e.resource_id
            self._record(operation, resource_id, parameters, AuditStatus.FAILURE, start_time, e)
            raise
        if isinstance(result, ResourceState) and result.id:
            resource_id = result.id
        self._record(operation, resource_id, parameters, AuditStatus.SUCCESS, start_time)
        return result

    def _record(
        self,
        operation: str,
        resource_id: str,
        parameters: Optional[Mapping[str, Any]],
        status: AuditStatus,
        start_time: float,
        error: Optional[Exception] = None,
    ) -> None:
        if not self.audit_service:
            return
        self.audit_service.log_operation(
            resource_type=self.type_name,
            operation=operation,
            resource_id=resource_id,
            parameters=redact_attributes(parameters, self.handler.descriptor.sensitive_fields),
            status=status,
            error_message=redact_sensitive_info(str(error)) if error else None,
            execution_time_ms=(time.time() - start_time) * 1000,
            correlation_id=get_correlation_id() or None,
        )
