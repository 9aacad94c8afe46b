# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Error message sanitization for the plugin server.

Remote error bodies and configuration echoes can carry tokens,
passwords or secret material. Everything surfaced to a caller or
written to the audit trail goes through these helpers first.
"""

import json
import logging
import re
from typing import Any, Iterable, Mapping

from ..exceptions import (
    ClientConstructionError,
    InvalidIdentifierFormatError,
    JobFailedError,
    JobTimeoutError,
    MissingIdentifierError,
    PartialFieldSetError,
    RemoteAPIError,
    ProviderError,
    ReplacementRequiredError,
    ResourceNotFoundError,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

SENSITIVE_PATTERNS = {
    "credentials": [
        r"(?i)x-auth-token['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
        r"(?i)password['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
        r"(?i)db_user_pwd['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
        r"(?i)secret_(?:string|text)['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
        r"(?i)(?:access|secret)[_-]?key['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
        r"(?i)token['\"]?\s*[:=]\s*['\"]?[^\s'\",}]+",
    ],
    "file_path": [
        r"[/\\](?:home|root|var|etc|opt|srv|usr|tmp)[/\\][\w\-./\\]+",
        r"[A-Za-z]:\\[\w\-./\\]+",
    ],
    "stack_trace": [
        r"(?i)traceback|File \"[^\"]+\", line \d+",
    ],
}

COMPILED_PATTERNS = {
    category: [re.compile(pattern) for pattern in patterns]
    for category, patterns in SENSITIVE_PATTERNS.items()
}

# error code, HTTP status and user-facing message per exception type
ERROR_MAP: dict[type, tuple[str, int, str]] = {
    SchemaValidationError: ("validation_error", 400, "The resource configuration is invalid."),
    InvalidIdentifierFormatError: ("invalid_identifier", 400, "The import identifier is malformed."),
    ResourceNotFoundError: ("not_found", 404, "The remote resource was not found."),
    ReplacementRequiredError: (
        "replacement_required",
        409,
        "The change requires replacing the resource.",
    ),
    ClientConstructionError: (
        "client_error",
        502,
        "Could not build a client for the cloud API.",
    ),
    RemoteAPIError: ("remote_error", 502, "The cloud API rejected the request."),
    MissingIdentifierError: (
        "missing_identifier",
        502,
        "The cloud API did not return an identifier for the new resource.",
    ),
    JobFailedError: ("job_failed", 502, "An asynchronous cloud operation failed."),
    JobTimeoutError: ("job_timeout", 504, "An asynchronous cloud operation timed out."),
    PartialFieldSetError: (
        "partial_state",
        500,
        "Some resource attributes could not be read back.",
    ),
}


class SanitizedError:
    """Represents a sanitized error message with metadata."""

    def __init__(
        self,
        user_message: str,
        internal_message: str | None = None,
        error_code: str | None = None,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a sanitized error.

        Args:
            user_message: Safe message to show to callers
            internal_message: Full error message for internal logging
            error_code: Machine-readable error code
            status_code: HTTP status the plugin server should answer with
            details: Additional safe details to include
        """
        self.user_message = user_message
        self.internal_message = internal_message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "error": self.error_code or "internal_error",
            "message": self.user_message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_json_string(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


def detect_sensitive_info(text: str) -> dict[str, list]:
    """
    Detect sensitive information in text.

    Args:
        text: Text to scan

    Returns:
        Dictionary mapping sensitivity categories to matches
    """
    if not text:
        return {}

    found = {}
    for category, patterns in COMPILED_PATTERNS.items():
        matches = []
        for pattern in patterns:
            for match in pattern.finditer(text):
                matches.append({"match": match.group(0), "position": match.start()})
        if matches:
            found[category] = matches
    return found


def redact_sensitive_info(text: str, replacement: str = REDACTED) -> str:
    """
    Redact sensitive information from text.

    Args:
        text: Text to redact
        replacement: String to use for redacted content

    Returns:
        Text with sensitive information redacted
    """
    if not text:
        return text

    result = text
    for patterns in COMPILED_PATTERNS.values():
        for pattern in patterns:
            result = pattern.sub(replacement, result)
    return result


def redact_attributes(
    attributes: Mapping[str, Any] | None,
    sensitive_fields: Iterable[str],
) -> dict[str, Any]:
    """
    Copy an attribute mapping with sensitive attribute values masked.

    Args:
        attributes: Desired or observed attribute values
        sensitive_fields: Names of attributes that must never be echoed

    Returns:
        New dictionary safe to log or persist
    """
    if not attributes:
        return {}
    hidden = set(sensitive_fields)
    return {
        key: (REDACTED if key in hidden and value not in (None, "") else value)
        for key, value in attributes.items()
    }


def sanitize_exception(exc: Exception) -> SanitizedError:
    """
    Sanitize an exception into a caller-safe error.

    Provider errors keep their (redacted) message as a detail; any
    other exception is reported as an internal error.

    Args:
        exc: Exception to sanitize

    Returns:
        SanitizedError with code, status and safe message
    """
    exc_message = str(exc)

    sensitive_info = detect_sensitive_info(exc_message)
    if sensitive_info:
        logger.warning(
            f"Sensitive information detected in exception message: {list(sensitive_info.keys())}"
        )

    safe_message = redact_sensitive_info(exc_message)

    for exc_type, (error_code, status_code, user_message) in ERROR_MAP.items():
        if isinstance(exc, exc_type):
            details: dict[str, Any] = {"reason": safe_message}
            if isinstance(exc, RemoteAPIError):
                if exc.error_code:
                    details["remote_error_code"] = exc.error_code
                if exc.status_code is not None:
                    details["remote_status"] = exc.status_code
            if isinstance(exc, SchemaValidationError):
                details["errors"] = [redact_sensitive_info(e) for e in exc.errors]
            if isinstance(exc, ReplacementRequiredError):
                details["fields"] = exc.fields
            if isinstance(exc, ProviderError) and exc.resource_id:
                details["resource_id"] = exc.resource_id
            if isinstance(exc, ProviderError) and exc.lifecycle_status:
                details["status"] = exc.lifecycle_status
            return SanitizedError(
                user_message=user_message,
                internal_message=exc_message,
                error_code=error_code,
                status_code=status_code,
                details=details,
            )

    return SanitizedError(
        user_message="An unexpected error occurred. Please try again later.",
        internal_message=exc_message,
        error_code="internal_error",
        status_code=500,
    )
