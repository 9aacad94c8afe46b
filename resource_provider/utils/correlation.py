# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Correlation IDs for tracing one reconciliation across log lines.

The plugin server assigns an ID per incoming request; lifecycle
operations and the remote client attach it to their log records and
to outgoing API calls.
"""

import contextvars
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id_context: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID (UUID4)."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current context."""
    _correlation_id_context.set(correlation_id)


def get_correlation_id() -> str:
    """
    Get the correlation ID from the current context.

    Returns:
        The correlation ID if set, or an empty string
    """
    return _correlation_id_context.get()


def get_correlation_id_for_logging() -> dict:
    """
    Correlation ID as a logging ``extra`` mapping.

    Returns:
        ``{"correlation_id": ...}`` or an empty dict when unset
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        return {"correlation_id": correlation_id}
    return {}


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Reuse the caller's correlation ID or mint a new one per request.

    The ID is stored in the request context and echoed back in the
    response headers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)

        logger.debug(
            f"Request {request.method} {request.url.path} started",
            extra={"correlation_id": correlation_id},
        )

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
