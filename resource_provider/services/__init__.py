"""Lifecycle orchestration, tag reconciliation and audit services."""

from .audit_service import AuditService
from .lifecycle import ResourceLifecycle
from .tag_reconciler import TagDiff, TagReconciler, diff_tags

__all__ = [
    "AuditService",
    "ResourceLifecycle",
    "TagDiff",
    "TagReconciler",
    "diff_tags",
]
