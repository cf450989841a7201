# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Service container for dependency wiring.

Builds the License Manager adapter, the default tag provider, the audit
service and the runner from one Settings object, so entry points (the
CLI, tests, an embedding orchestrator) never assemble them by hand.
"""

import logging
from typing import Optional

from botocore.config import Config

from .clients.base import LicenseConfigurationAPI
from .clients.license_manager_client import LicenseManagerClient
from .config import Settings, settings as get_default_settings
from .services.audit_service import AuditService
from .services.reconciler import LicenseConfigurationReconciler
from .services.runner import ReconcileRunner
from .services.state_store import StateStore
from .services.tag_service import DefaultTagProvider

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Wires together the reconciler's collaborators.

    Usage::

        container = ServiceContainer()          # uses default settings
        reconciler = container.reconciler()
        observed = await reconciler.create(config)

    Or with custom settings and a pre-built client::

        container = ServiceContainer(settings=my_settings, client=fake_client)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[LicenseConfigurationAPI] = None,
    ) -> None:
        """
        Create a ServiceContainer.

        Args:
            settings: Application settings. If None, loads from environment
                      variables / .env file via the default ``settings()`` helper.
            client: License Manager adapter; built from settings when None
        """
        self._settings: Settings = settings or get_default_settings()
        self._client = client
        self._tag_provider: Optional[DefaultTagProvider] = None
        self._audit_service: Optional[AuditService] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def client(self) -> LicenseConfigurationAPI:
        """License Manager adapter, created on first use."""
        if self._client is None:
            s = self._settings
            boto_config = Config(retries={"max_attempts": s.max_attempts, "mode": s.retry_mode})
            logger.info(f"Creating License Manager client for region {s.aws_region}")
            self._client = LicenseManagerClient(region=s.aws_region, boto_config=boto_config)
        return self._client

    @property
    def tag_provider(self) -> DefaultTagProvider:
        if self._tag_provider is None:
            self._tag_provider = DefaultTagProvider.from_settings(self._settings)
        return self._tag_provider

    @property
    def audit_service(self) -> Optional[AuditService]:
        """Audit service, or None when auditing is disabled."""
        if self._audit_service is None and self._settings.audit_enabled:
            self._audit_service = AuditService(db_path=self._settings.audit_db_path)
            logger.info(f"Audit logging to {self._settings.audit_db_path}")
        return self._audit_service

    def reconciler(self, identity: Optional[str] = None) -> LicenseConfigurationReconciler:
        """Create a reconciler for one license configuration."""
        return LicenseConfigurationReconciler(
            self.client,
            tag_provider=self.tag_provider,
            identity=identity,
            timeout=self._settings.call_timeout_seconds,
            audit_service=self.audit_service,
        )

    def runner(self, state_path: Optional[str] = None) -> ReconcileRunner:
        """Create a runner bound to a state file."""
        return ReconcileRunner(
            self.client,
            StateStore(state_path or self._settings.state_path),
            tag_provider=self.tag_provider,
            timeout=self._settings.call_timeout_seconds,
            audit_service=self.audit_service,
        )
