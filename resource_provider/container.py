# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Provider container for dependency wiring and lifecycle management.

The container builds the client factory, the audit trail and one
lifecycle orchestrator per resource kind from a single settings
object. It is protocol-agnostic: the plugin server uses it, and so can
a CLI or a test harness.
"""

import logging
import sqlite3
from typing import Optional

from .clients.client_factory import ServiceClientFactory
from .clients.http_client import RemoteClient
from .clients.jobs import JobPoller
from .config import CoreSettings, settings as get_default_settings
from .resources import get_handler, list_resource_types
from .services.audit_service import AuditService
from .services.lifecycle import ResourceLifecycle

logger = logging.getLogger(__name__)


class ProviderContainer:
    """
    Wires together the provider services.

    Usage::

        container = ProviderContainer()          # uses default settings
        container.initialize()

        lifecycle = container.get_lifecycle("csms_secret")
        state = lifecycle.create({...})

        container.shutdown()
    """

    def __init__(
        self,
        settings: Optional[CoreSettings] = None,
        client_factory: Optional[ServiceClientFactory] = None,
    ) -> None:
        """
        Create a ProviderContainer.

        Args:
            settings: Provider settings. Accepts CoreSettings or
                      ServerSettings. If None, loads from environment
                      variables / .env via the default ``settings()`` helper.
            client_factory: Pre-built factory (tests inject one backed by
                      a fake API)
        """
        self._settings: CoreSettings = settings or get_default_settings()
        self._initialized = False

        self._client_factory: Optional[ServiceClientFactory] = client_factory
        self._audit_service: Optional[AuditService] = None
        self._lifecycles: dict[str, ResourceLifecycle] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Initialize all services in dependency order.

        An audit database that cannot be opened disables the audit
        trail; everything else still works.
        """
        if self._initialized:
            logger.warning("ProviderContainer.initialize() called more than once")
            return

        s = self._settings
        logger.info("ProviderContainer: initializing services")

        # 1. Client factory
        if self._client_factory is None:
            self._client_factory = ServiceClientFactory(s)
        logger.info(
            f"ProviderContainer: client factory ready (region={s.region or 'unset'})"
        )

        # 2. Audit service (SQLite)
        if s.audit_enabled:
            try:
                self._audit_service = AuditService(db_path=s.audit_db_path)
                logger.info(f"ProviderContainer: audit service initialized (db={s.audit_db_path})")
            except sqlite3.Error as e:
                logger.error(f"ProviderContainer: failed to initialize audit service: {e}")
                self._audit_service = None

        # 3. One orchestrator per resource kind
        for type_name in list_resource_types():
            self._lifecycles[type_name] = ResourceLifecycle(
                handler=get_handler(type_name),
                client_factory=self._client_factory,
                audit_service=self._audit_service,
                job_poller_factory=self._build_job_poller,
            )
        logger.info(f"ProviderContainer: {len(self._lifecycles)} resource type(s) registered")

        self._initialized = True
        logger.info("ProviderContainer: all services initialized")

    def shutdown(self) -> None:
        """Release cached clients."""
        logger.info("ProviderContainer: shutting down")
        if self._client_factory:
            self._client_factory.clear_cache()
        self._initialized = False
        logger.info("ProviderContainer: shutdown complete")

    def _build_job_poller(self, client: RemoteClient) -> JobPoller:
        return JobPoller(
            client,
            interval_seconds=self._settings.job_poll_interval_seconds,
            timeout_seconds=self._settings.job_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def settings(self) -> CoreSettings:
        return self._settings

    @property
    def client_factory(self) -> Optional[ServiceClientFactory]:
        return self._client_factory

    @property
    def audit_service(self) -> Optional[AuditService]:
        return self._audit_service

    @property
    def resource_types(self) -> list[str]:
        return sorted(self._lifecycles)

    @property
    def credentials_configured(self) -> bool:
        """Whether region, project and token are all set."""
        s = self._settings
        return bool(s.region and s.project_id and s.auth_token is not None)

    def get_lifecycle(self, type_name: str) -> ResourceLifecycle:
        """
        Orchestrator for a resource type.

        Raises:
            KeyError: If the type is not registered
        """
        if type_name not in self._lifecycles:
            raise KeyError(f"unknown resource type: {type_name}")
        return self._lifecycles[type_name]
