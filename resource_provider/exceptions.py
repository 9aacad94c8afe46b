# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Error taxonomy shared by the clients, the orchestrator and resource kinds."""

from typing import Any


class ProviderError(Exception):
    """
    Base class for every error raised by the provider.

    When a failure leaves a remote object behind, ``resource_id`` names it
    and ``lifecycle_status`` says which operation it was caught in
    (``creating``, ``updating`` or ``deleting``).
    """

    resource_id: str | None = None
    lifecycle_status: str | None = None


class ClientConstructionError(ProviderError):
    """Raised when a service client cannot be built (endpoint, credentials)."""

    pass


class RemoteAPIError(ProviderError):
    """
    Raised when a remote call returns a status outside the accepted codes.

    Carries the structured body so callers can inspect the remote
    ``error_code`` rather than relying on the HTTP status alone.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        error_code: str | None = None,
        error_msg: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.error_code = error_code
        self.error_msg = error_msg

    def has_error_code(self, code: str) -> bool:
        """Check whether the remote body carried the given error code."""
        return self.error_code is not None and self.error_code == code


class ResourceNotFoundError(ProviderError):
    """The remote object no longer exists."""

    def __init__(self, message: str, resource_id: str | None = None):
        super().__init__(message)
        self.resource_id = resource_id


class MissingIdentifierError(ProviderError):
    """A create response did not contain the expected identifier field."""

    pass


class InvalidIdentifierFormatError(ProviderError):
    """An import identifier does not have the expected shape."""

    pass


class SchemaValidationError(ProviderError):
    """Desired state does not satisfy the resource descriptor."""

    def __init__(self, type_name: str, errors: list[str]):
        self.type_name = type_name
        self.errors = list(errors)
        super().__init__(
            f"invalid configuration for {type_name}: " + "; ".join(self.errors)
        )


class ReplacementRequiredError(ProviderError):
    """An in-place update was requested for attributes that force replacement."""

    def __init__(self, type_name: str, fields: list[str]):
        self.type_name = type_name
        self.fields = sorted(fields)
        super().__init__(
            f"{type_name} cannot update {', '.join(self.fields)} in place; "
            "the resource must be replaced"
        )


class PartialFieldSetError(ProviderError):
    """
    One or more attributes could not be assembled into observed state.

    All failures are collected so the caller sees every problem at once.
    """

    def __init__(self, type_name: str, errors: list[Exception]):
        self.type_name = type_name
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(
            f"failed to set {len(self.errors)} attribute(s) for {type_name}: {details}"
        )


class JobFailedError(ProviderError):
    """An asynchronous remote job finished in a failed state."""

    def __init__(self, job_id: str, reason: str | None = None):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"job {job_id} failed: {reason or 'no reason reported'}")


class JobTimeoutError(ProviderError):
    """An asynchronous remote job did not finish within the allowed time."""

    def __init__(self, job_id: str, timeout_seconds: float, last_status: str | None = None):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        self.last_status = last_status
        super().__init__(
            f"job {job_id} did not complete within {timeout_seconds}s "
            f"(last status: {last_status or 'unknown'})"
        )
