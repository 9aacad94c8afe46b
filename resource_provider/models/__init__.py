"""Data models for the resource provider."""

from .audit import AuditLogEntry, AuditStatus
from .health import HealthStatus
from .job import AsyncJob, JobState
from .schema import Attribute, AttributeType, ResourceDescriptor
from .state import (
    ChangeSet,
    DesiredState,
    FieldChange,
    LifecycleStatus,
    ObservedState,
    PlanAction,
    PlanResult,
    ResourceState,
)

__all__ = [
    "AuditLogEntry",
    "AuditStatus",
    "HealthStatus",
    "AsyncJob",
    "JobState",
    "Attribute",
    "AttributeType",
    "ResourceDescriptor",
    "ChangeSet",
    "DesiredState",
    "FieldChange",
    "LifecycleStatus",
    "ObservedState",
    "PlanAction",
    "PlanResult",
    "ResourceState",
]
