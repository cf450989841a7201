# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Runner that drives one license configuration from a declaration and a state file.

The runner plays the orchestration role around the reconciler: it loads
the persisted record, decides between create, update and replace, and
saves the result. Replacement is a two-step saga - delete the old ARN,
then create a new resource with a new ARN - and the old ARN is never
reused.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..clients.base import LicenseConfigurationAPI
from ..models.enums import ChangeAction
from ..models.license_configuration import DeclaredConfiguration, ObservedState
from ..models.plan import ChangePlan
from ..utils.arn_utils import is_license_configuration_arn
from .audit_service import AuditService
from .diff_policy import classify_change
from .errors import ReconcileValidationError
from .reconciler import ConfigurationInput, LicenseConfigurationReconciler, validate_configuration
from .state_store import ResourceRecord, StateStore
from .tag_service import DefaultTagProvider, merge_tags

logger = logging.getLogger(__name__)


class PlannedAction(str, Enum):
    """What an apply would do."""

    CREATE = "create"
    NO_OP = "no_op"
    UPDATE = "update"
    REPLACE = "replace"


class RunnerPlan(BaseModel):
    """Plan computed from the stored record, without contacting License Manager."""

    action: PlannedAction
    arn: Optional[str] = None
    changed_fields: list[str] = Field(default_factory=list)
    replace_fields: list[str] = Field(default_factory=list)


class ReconcileRunner:
    """Applies a declared configuration to the license configuration tracked in a state file."""

    def __init__(
        self,
        client: LicenseConfigurationAPI,
        state_store: StateStore,
        tag_provider: Optional[DefaultTagProvider] = None,
        timeout: Optional[float] = None,
        audit_service: Optional[AuditService] = None,
    ):
        self._client = client
        self._store = state_store
        self._tags = tag_provider or DefaultTagProvider()
        self._timeout = timeout
        self._audit_service = audit_service

    def _reconciler(
        self,
        identity: Optional[str] = None,
        declared: Optional[DeclaredConfiguration] = None,
    ) -> LicenseConfigurationReconciler:
        return LicenseConfigurationReconciler(
            self._client,
            tag_provider=self._tags,
            identity=identity,
            timeout=self._timeout,
            audit_service=self._audit_service,
            declared=declared,
        )

    def _change_plan(
        self, observed: ObservedState, declared: DeclaredConfiguration
    ) -> ChangePlan:
        """
        Diff the observed state against the declaration.

        Tags are compared as merged sets, so a declared tag equal to a
        default counts as in place, and default tag drift counts as a change.
        """
        baseline = observed.to_declared().model_copy(update={"tags": dict(declared.tags)})
        plan = classify_change(baseline, declared)
        desired_tags = merge_tags(self._tags.snapshot(), declared.tags)
        if observed.merged_tags == desired_tags:
            return plan
        if plan.action is ChangeAction.REPLACE:
            return plan.model_copy(update={"changed_fields": plan.changed_fields | {"tags"}})
        return ChangePlan(
            action=ChangeAction.IN_PLACE_UPDATE,
            changed_fields=plan.changed_fields | {"tags"},
        )

    def _save(self, reconciler: LicenseConfigurationReconciler) -> None:
        self._store.save(
            ResourceRecord(
                arn=reconciler.identity,
                declared=reconciler.declared,
                observed=reconciler.observed,
            )
        )

    def plan(self, config: ConfigurationInput) -> RunnerPlan:
        """
        Compute what apply would do from the stored record alone.

        Raises:
            ReconcileValidationError: If the declaration is invalid
        """
        declared = validate_configuration(config, "planning")
        record = self._store.load()
        if record is None:
            return RunnerPlan(action=PlannedAction.CREATE)

        baseline = record.observed or ObservedState(
            arn=record.arn,
            merged_tags=merge_tags(self._tags.snapshot(), record.declared.tags),
            **record.declared.model_dump(),
        )
        plan = self._change_plan(baseline, declared)
        action = {
            ChangeAction.NO_OP: PlannedAction.NO_OP,
            ChangeAction.IN_PLACE_UPDATE: PlannedAction.UPDATE,
            ChangeAction.REPLACE: PlannedAction.REPLACE,
        }[plan.action]
        return RunnerPlan(
            action=action,
            arn=record.arn,
            changed_fields=sorted(plan.changed_fields),
            replace_fields=sorted(plan.replace_fields),
        )

    async def apply(self, config: ConfigurationInput) -> ObservedState:
        """
        Make License Manager match the declared configuration.

        Returns:
            The observed state after the apply
        """
        declared = validate_configuration(config, "applying")
        record = self._store.load()

        if record is None:
            return await self._create(self._reconciler(), declared)

        reconciler = self._reconciler(record.arn, record.declared)
        observed = await reconciler.read()
        if observed is None:
            logger.warning(f"{record.arn} was deleted outside the reconciler; recreating it")
            self._store.clear()
            return await self._create(reconciler, declared)

        plan = self._change_plan(observed, declared)

        if plan.action is ChangeAction.NO_OP:
            logger.info(f"{record.arn} is up to date")
            self._store.save(ResourceRecord(arn=record.arn, declared=declared, observed=observed))
            return observed

        if plan.action is ChangeAction.REPLACE:
            logger.info(f"Replacing {record.arn}: {sorted(plan.replace_fields)} changed")
            await reconciler.delete()
            self._store.clear()
            return await self._create(reconciler, declared)

        updated = await reconciler.update(
            observed.to_declared(), declared, observed_tags=observed.merged_tags
        )
        if updated is None:
            logger.warning(f"{record.arn} vanished during update; recreating it")
            self._store.clear()
            return await self._create(reconciler, declared)

        self._save(reconciler)
        return updated

    async def _create(
        self, reconciler: LicenseConfigurationReconciler, declared: DeclaredConfiguration
    ) -> ObservedState:
        try:
            observed = await reconciler.create(declared)
        finally:
            # Persist the identity even when the follow-up read failed
            if reconciler.identity is not None:
                self._save(reconciler)
        return observed

    async def refresh(self) -> Optional[ObservedState]:
        """
        Re-read the tracked license configuration.

        Returns:
            The observed state, or None when nothing is tracked or the
            resource was deleted outside the reconciler (state is cleared)
        """
        record = self._store.load()
        if record is None:
            return None

        reconciler = self._reconciler(record.arn, record.declared)
        observed = await reconciler.read()
        if observed is None:
            self._store.clear()
            return None

        self._store.save(ResourceRecord(arn=record.arn, declared=record.declared, observed=observed))
        return observed

    async def destroy(self) -> bool:
        """
        Delete the tracked license configuration.

        Returns:
            True if a license configuration was tracked, False otherwise
        """
        record = self._store.load()
        if record is None:
            logger.info("No license configuration tracked; nothing to destroy")
            return False

        await self._reconciler(record.arn).delete()
        self._store.clear()
        return True

    async def import_resource(self, arn: str) -> ObservedState:
        """
        Start tracking an existing license configuration.

        Raises:
            ReconcileValidationError: If the ARN is malformed or a resource is already tracked
        """
        if not is_license_configuration_arn(arn):
            raise ReconcileValidationError(
                "reading", arn, "not a license configuration ARN", field="arn"
            )
        record = self._store.load()
        if record is not None:
            raise ReconcileValidationError(
                "reading", arn, f"state already tracks {record.arn}", field="arn"
            )

        reconciler = self._reconciler()
        observed = await reconciler.import_resource(arn)
        self._save(reconciler)
        return observed
