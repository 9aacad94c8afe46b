# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""JSON-over-HTTP client for the cloud API with throttling backoff."""

import logging
import time
from typing import Any, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import RemoteAPIError
from ..utils.correlation import get_correlation_id_for_logging
from ..utils.path_search import search_as

logger = logging.getLogger(__name__)

THROTTLING_STATUS_CODES = (429,)


class RequestOptions(BaseModel):
    """
    Immutable per-call options: extra headers and accepted status codes.

    Built once and shared; use :meth:`merge` to derive a variant.
    """

    model_config = ConfigDict(frozen=True)

    headers: tuple[tuple[str, str], ...] = Field(
        default=(("Content-Type", "application/json"),),
        description="Headers sent with the request",
    )
    ok_codes: tuple[int, ...] = Field(
        default=(200, 201, 202, 204),
        description="Status codes treated as success",
    )

    @property
    def header_dict(self) -> dict[str, str]:
        """Headers as a fresh dictionary."""
        return dict(self.headers)

    def merge(
        self,
        headers: dict[str, str] | None = None,
        ok_codes: tuple[int, ...] | None = None,
    ) -> "RequestOptions":
        """Return a new options value with extra headers and/or other codes."""
        merged = self.header_dict
        merged.update(headers or {})
        return RequestOptions(
            headers=tuple(merged.items()),
            ok_codes=ok_codes if ok_codes is not None else self.ok_codes,
        )


DEFAULT_REQUEST_OPTIONS = RequestOptions()


def extract_error_code(body: Any) -> tuple[str | None, str | None]:
    """
    Pull the structured error code and message out of an error body.

    Both the flat ``{"error_code", "error_msg"}`` shape and the nested
    ``{"error": {"code", "message"}}`` shape are understood.
    """
    code = search_as("error_code", body, str) or search_as("error.code", body, str)
    message = search_as("error_msg", body, str) or search_as("error.message", body, str)
    return code, message


class RemoteClient:
    """
    Wrapper around a ``requests.Session`` bound to one service endpoint.

    Paths are relative to the endpoint and may contain ``{project_id}``.
    Throttled calls (HTTP 429) are retried with exponential backoff;
    every other failure is raised as :class:`RemoteAPIError`.
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str = "",
        auth_token: Optional[str] = None,
        service: str = "",
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        default_options: RequestOptions = DEFAULT_REQUEST_OPTIONS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Base URL of the service (e.g. https://ccm.region.example.com/)
            project_id: Value substituted for ``{project_id}`` in paths
            auth_token: Token sent as X-Auth-Token
            service: Service name, used in log lines
            timeout: Per-call timeout in seconds
            max_retries: Retries for throttled calls
            base_delay: First backoff delay in seconds
            default_options: Options used when a call passes none
            session: Pre-built session (tests inject a mock here)
        """
        self.endpoint = endpoint.rstrip("/") + "/"
        self.project_id = project_id
        self.service = service
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.default_options = default_options

        self._session = session or requests.Session()
        if auth_token:
            self._session.headers.update({"X-Auth-Token": auth_token})

    def build_url(self, path: str) -> str:
        """Resolve a relative path (with placeholders) against the endpoint."""
        resolved = path.replace("{project_id}", self.project_id).lstrip("/")
        return self.endpoint + resolved

    def request(
        self,
        method: str,
        path: str,
        options: Optional[RequestOptions] = None,
        json_body: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Issue one API call and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the endpoint
            options: Headers and accepted codes (defaults to the client's)
            json_body: Request body, serialised as JSON when not None
            params: Query string parameters

        Returns:
            Decoded JSON body, or ``{}`` for an empty body

        Raises:
            RemoteAPIError: If the status is not accepted or the transport fails
        """
        opts = options or self.default_options
        url = self.build_url(path)

        for attempt in range(self.max_retries + 1):
            logger.debug(
                f"{self.service or 'api'} {method} {url} (attempt {attempt + 1})",
                extra=get_correlation_id_for_logging(),
            )
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=opts.header_dict,
                    json=json_body,
                    params=params,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise RemoteAPIError(f"{method} {url} failed: {str(e)}") from e

            if response.status_code in opts.ok_codes:
                return self._decode(response)

            if response.status_code in THROTTLING_STATUS_CODES and attempt < self.max_retries:
                delay = self.base_delay * (2**attempt)
                logger.warning(
                    f"{method} {url} throttled, retrying in {delay:.1f}s",
                    extra=get_correlation_id_for_logging(),
                )
                time.sleep(delay)
                continue

            raise self._to_error(method, url, response)

        raise RemoteAPIError(f"Max retries exceeded for {method} {url}")

    def get(self, path: str, **kwargs: Any) -> dict[str, Any]:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> dict[str, Any]:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> dict[str, Any]:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        """Release the underlying connection pool."""
        self._session.close()

    @staticmethod
    def _decode(response: requests.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Response from {response.url} is not JSON; ignoring body")
            return {}
        if isinstance(body, dict):
            return body
        return {"items": body}

    @staticmethod
    def _to_error(method: str, url: str, response: requests.Response) -> RemoteAPIError:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        error_code, error_msg = extract_error_code(body)
        detail = f"{error_code}: {error_msg}" if error_code else (error_msg or str(body)[:200])
        return RemoteAPIError(
            f"{method} {url} returned {response.status_code}: {detail}",
            status_code=response.status_code,
            body=body,
            error_code=error_code,
            error_msg=error_msg,
        )
