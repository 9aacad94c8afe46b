# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Factory for creating and caching per-service, per-region clients."""

import logging
from typing import Callable, Optional

import requests

from ..config import CoreSettings
from ..exceptions import ClientConstructionError
from .http_client import RemoteClient

logger = logging.getLogger(__name__)


class ServiceClientFactory:
    """
    Builds one :class:`RemoteClient` per ``(service, region)`` and reuses it.

    Endpoints come from ``endpoint_overrides`` when configured, otherwise
    they are derived as ``https://{service}.{region}.{cloud_domain}/``.
    """

    def __init__(
        self,
        settings: CoreSettings,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        """
        Initialize with provider settings.

        Args:
            settings: Settings carrying region, project, credentials and timeouts
            session_factory: Builds the HTTP session for each new client
                (tests plug in a fake transport here)
        """
        self._settings = settings
        self._session_factory = session_factory
        self._clients: dict[tuple[str, str], RemoteClient] = {}

    @property
    def default_region(self) -> str:
        """Region used when a resource does not name one."""
        return self._settings.region

    @property
    def default_enterprise_project_id(self) -> str | None:
        """Enterprise project applied to new resources that do not name one."""
        return self._settings.enterprise_project_id

    def resolve_endpoint(self, service: str, region: str) -> str:
        """Endpoint URL for a service in a region."""
        override = self._settings.endpoint_overrides.get(service)
        if override:
            return override
        return f"https://{service}.{region}.{self._settings.cloud_domain}/"

    def get_client(self, service: str, region: str | None = None) -> RemoteClient:
        """
        Get a client for a service, creating it on first use.

        Args:
            service: Service name (e.g. "ccm", "kms", "rds")
            region: Region code; defaults to the configured region

        Returns:
            Cached RemoteClient

        Raises:
            ClientConstructionError: If region, project or credentials are missing
        """
        region = region or self.default_region
        if not region:
            raise ClientConstructionError(
                f"cannot create {service} client: no region configured"
            )

        key = (service, region)
        if key in self._clients:
            return self._clients[key]

        if not self._settings.project_id:
            raise ClientConstructionError(
                f"cannot create {service} client: no project_id configured"
            )
        if self._settings.auth_token is None:
            raise ClientConstructionError(
                f"cannot create {service} client: no credentials configured"
            )

        endpoint = self.resolve_endpoint(service, region)
        client = RemoteClient(
            endpoint=endpoint,
            project_id=self._settings.project_id,
            auth_token=self._settings.auth_token.get_secret_value(),
            service=service,
            timeout=self._settings.request_timeout_seconds,
            max_retries=self._settings.max_retries,
            session=self._session_factory() if self._session_factory else None,
        )
        self._clients[key] = client
        logger.info(f"Created {service} client for region {region} at {endpoint}")
        return client

    def clear_cache(self) -> None:
        """Close and forget all cached clients."""
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def get_cached_regions(self, service: str) -> list[str]:
        """Regions with a cached client for the given service."""
        return [region for (svc, region) in self._clients if svc == service]
