# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Lifecycle reconciler for a single License Manager license configuration.

The reconciler owns the identity (ARN) of exactly one license configuration
and moves it through the Absent -> Present -> Absent/Gone lifecycle:

    create:  Absent  -> Present(arn), then an authoritative read
    read:    Present -> Present, or Gone when deleted out-of-band
    update:  Present -> Present, in-place changes only
    delete:  Present -> Absent, NotFound counts as success
    import:  Absent  -> Present(arn)

Every remote call is turned into a CallOutcome tagged with an ErrorKind,
and the entry points branch on that kind. Nothing is retried here; the
caller decides what to do with a TransientReconcileError.
"""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Mapping, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..clients.base import LicenseConfigurationAPI
from ..models.audit import AuditLogEntry, AuditStatus
from ..models.enums import ChangeAction, ErrorKind, LifecycleState, Operation
from ..models.license_configuration import DeclaredConfiguration, ObservedState
from ..models.remote import (
    CreateLicenseConfigurationRequest,
    RemoteLicenseConfiguration,
    UpdateLicenseConfigurationRequest,
)
from ..utils.cancellation import CallCancelledError, run_with_deadline
from ..utils.correlation import get_correlation_id, reconciliation_pass
from .audit_service import AuditService
from .diff_policy import classify_change
from .error_classifier import classify_error, describe_error, error_field
from .errors import (
    ERROR_CLASSES,
    LifecycleStateError,
    OperationCancelledError,
    ReconcileError,
    ReconcileValidationError,
    ReplacementRequiredError,
    ResourceNotFoundError,
)
from .tag_service import (
    DefaultTagProvider,
    diff_tags,
    merge_tags,
    merged_tags_from_observation,
    resource_tags_from_observation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfigurationInput = DeclaredConfiguration | Mapping[str, Any]


@dataclass(frozen=True)
class CallOutcome(Generic[T]):
    """Result of one remote call: a value, or an error tagged with its kind."""

    operation: Operation
    value: Optional[T] = None
    kind: Optional[ErrorKind] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.kind is None


def validate_configuration(config: ConfigurationInput, verb: str) -> DeclaredConfiguration:
    """
    Validate a declared configuration before any remote call.

    Models are re-validated too, so instances built without validation
    cannot slip malformed license rules through.

    Raises:
        ReconcileValidationError: naming the offending field
    """
    raw = config.model_dump() if isinstance(config, DeclaredConfiguration) else dict(config)
    try:
        return DeclaredConfiguration.model_validate(raw)
    except PydanticValidationError as exc:
        name = raw.get("name") or None
        raise ReconcileValidationError(
            verb, name, describe_error(exc), field=error_field(exc)
        ) from exc


def _audited(operation: str):
    """Run an entry point under a correlation ID and record it in the audit log."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "LicenseConfigurationReconciler", *args, **kwargs):
            with reconciliation_pass():
                started = time.perf_counter()
                identity_before = self._identity
                try:
                    result = await func(self, *args, **kwargs)
                except ReconcileError as exc:
                    self._record(operation, exc.identity or identity_before, started, exc)
                    raise
                self._record(operation, self._identity or identity_before, started)
                return result

        return wrapper

    return decorator


class LicenseConfigurationReconciler:
    """
    Reconciles one license configuration against License Manager.

    Instances hold no state shared with other instances, so many resources
    can be reconciled concurrently. Operations on one instance must not
    overlap; serializing them is the caller's job.
    """

    def __init__(
        self,
        client: LicenseConfigurationAPI,
        tag_provider: Optional[DefaultTagProvider] = None,
        identity: Optional[str] = None,
        timeout: Optional[float] = None,
        audit_service: Optional[AuditService] = None,
        declared: Optional[DeclaredConfiguration] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            client: Remote License Manager adapter
            tag_provider: Source of process-wide default tags
            identity: ARN of an existing license configuration, if any
            timeout: Default deadline in seconds for each remote call
            audit_service: Optional audit log for every entry point
            declared: Last applied declared configuration of an existing
                license configuration, used to read back its tags
        """
        self._client = client
        self._tags = tag_provider or DefaultTagProvider()
        self._timeout = timeout
        self._audit_service = audit_service

        self._identity: Optional[str] = identity
        self._state = LifecycleState.PRESENT if identity else LifecycleState.ABSENT
        self._observed: Optional[ObservedState] = None
        self._declared: Optional[DeclaredConfiguration] = declared if identity else None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def observed(self) -> Optional[ObservedState]:
        return self._observed

    @property
    def declared(self) -> Optional[DeclaredConfiguration]:
        """Last declared configuration applied, or the baseline after import."""
        return self._declared

    def _require(self, verb: str, *allowed: LifecycleState) -> None:
        if self._state not in allowed:
            expected = " or ".join(state.value for state in allowed)
            raise LifecycleStateError(
                verb,
                self._identity,
                f"resource is {self._state.value}, expected {expected}",
            )

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _invoke(
        self,
        operation: Operation,
        call: Awaitable[T],
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> CallOutcome[T]:
        """Await a remote call and tag its failure with an ErrorKind."""
        try:
            value = await run_with_deadline(
                call,
                timeout=timeout if timeout is not None else self._timeout,
                cancel_event=cancel_event,
            )
        except Exception as exc:
            kind = classify_error(exc, operation)
            logger.debug(f"{operation.value} failed with {kind.value} error: {describe_error(exc)}")
            return CallOutcome(operation=operation, kind=kind, error=exc)
        return CallOutcome(operation=operation, value=value)

    @staticmethod
    def _failure(verb: str, identity: Optional[str], outcome: CallOutcome) -> ReconcileError:
        """Build the user-visible error for a failed call."""
        error = outcome.error
        if isinstance(error, CallCancelledError):
            error_class = OperationCancelledError
        else:
            error_class = ERROR_CLASSES[outcome.kind]
        return error_class(verb, identity, describe_error(error), field=error_field(error))

    def _observe(
        self, remote: RemoteLicenseConfiguration, default_tags: Mapping[str, str]
    ) -> ObservedState:
        merged = merged_tags_from_observation(
            remote.tags, self._tags.ignore_keys, self._tags.ignore_prefixes
        )
        return ObservedState(
            arn=remote.arn,
            license_configuration_id=remote.license_configuration_id,
            owner_account_id=remote.owner_account_id,
            status=remote.status,
            consumed_licenses=remote.consumed_licenses,
            name=remote.name,
            description=remote.description,
            license_count=remote.license_count,
            license_count_hard_limit=remote.license_count_hard_limit,
            license_counting_type=remote.license_counting_type,
            license_rules=remote.license_rules,
            tags=resource_tags_from_observation(
                merged, default_tags, self._declared.tags if self._declared else None
            ),
            merged_tags=merged,
        )

    def _forget(self) -> None:
        self._identity = None
        self._observed = None
        self._declared = None

    async def _load(
        self,
        arn: str,
        default_tags: Mapping[str, str],
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> ObservedState:
        """Read the license configuration; any failure, NotFound included, raises."""
        outcome = await self._invoke(
            Operation.GET, self._client.get_license_configuration(arn), timeout, cancel_event
        )
        if not outcome.ok:
            raise self._failure("reading", arn, outcome) from outcome.error
        return self._observe(outcome.value, default_tags)

    async def _refresh(
        self,
        default_tags: Mapping[str, str],
        is_new_resource: bool,
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> Optional[ObservedState]:
        arn = self._identity
        try:
            observed = await self._load(arn, default_tags, timeout, cancel_event)
        except ResourceNotFoundError:
            if is_new_resource:
                raise
            logger.warning(f"License Manager License Configuration {arn} not found, removing from state")
            self._state = LifecycleState.GONE
            self._forget()
            return None

        self._observed = observed
        return observed

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @_audited("create")
    async def create(
        self,
        config: ConfigurationInput,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ObservedState:
        """
        Create the license configuration, then read it back.

        The follow-up read populates owner_account_id and merged_tags from
        License Manager rather than echoing the input.

        Args:
            config: Declared configuration
            timeout: Deadline in seconds for each remote call
            cancel_event: Event the caller sets to abort the in-flight call

        Returns:
            Observed state of the new license configuration

        Raises:
            ReconcileValidationError: If the configuration is invalid (no remote call is made)
            ReconcileError: If creation or the follow-up read fails
        """
        self._require("creating", LifecycleState.ABSENT, LifecycleState.GONE)
        declared = validate_configuration(config, "creating")
        default_tags = self._tags.snapshot()

        request = CreateLicenseConfigurationRequest(
            name=declared.name,
            license_counting_type=declared.license_counting_type,
            description=declared.description,
            license_count=declared.license_count,
            license_count_hard_limit=declared.license_count_hard_limit,
            license_rules=declared.license_rules,
            tags=merge_tags(default_tags, declared.tags),
        )
        outcome = await self._invoke(
            Operation.CREATE,
            self._client.create_license_configuration(request),
            timeout,
            cancel_event,
        )
        if not outcome.ok:
            raise self._failure("creating", declared.name, outcome) from outcome.error

        self._identity = outcome.value.arn
        self._state = LifecycleState.PRESENT
        self._declared = declared
        logger.info(f"Created License Manager License Configuration {self._identity}")

        self._observed = await self._load(self._identity, default_tags, timeout, cancel_event)
        return self._observed

    @_audited("read")
    async def read(
        self,
        *,
        is_new_resource: bool = False,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[ObservedState]:
        """
        Refresh the observed state from License Manager.

        Args:
            is_new_resource: True while the caller still treats the resource
                as freshly created; NotFound is then an error, not drift
            timeout: Deadline in seconds for the remote call
            cancel_event: Event the caller sets to abort the in-flight call

        Returns:
            The observed state, or None when a routine refresh found the
            resource deleted out-of-band and the caller should drop its state
        """
        self._require("reading", LifecycleState.PRESENT)
        return await self._refresh(self._tags.snapshot(), is_new_resource, timeout, cancel_event)

    @_audited("update")
    async def update(
        self,
        old: ConfigurationInput,
        new: ConfigurationInput,
        *,
        observed_tags: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[ObservedState]:
        """
        Apply an in-place change, then read the resource back.

        Non-tag fields are resent together; the license count is only sent
        when declared. Tag changes go through the tagging API, diffing the
        current merged tags against the new merged tags.

        Args:
            old: Configuration the resource currently reflects
            new: Configuration now declared
            observed_tags: Remote merged tags, if known; defaults to the last
                observation, then to the old configuration merged with defaults
            timeout: Deadline in seconds for each remote call
            cancel_event: Event the caller sets to abort the in-flight call

        Returns:
            The refreshed observed state, or None if the resource vanished

        Raises:
            ReplacementRequiredError: If an immutable field changed
        """
        self._require("updating", LifecycleState.PRESENT)
        old_config = validate_configuration(old, "updating")
        new_config = validate_configuration(new, "updating")
        arn = self._identity

        plan = classify_change(old_config, new_config)
        if plan.action is ChangeAction.REPLACE:
            fields = sorted(plan.replace_fields)
            raise ReplacementRequiredError(
                "updating",
                arn,
                f"{', '.join(fields)} cannot be changed in place; the resource must be replaced",
                field=fields[0],
            )

        default_tags = self._tags.snapshot()

        if plan.requires_update_call:
            request = UpdateLicenseConfigurationRequest(
                name=new_config.name,
                description=new_config.description or "",
                license_count_hard_limit=new_config.license_count_hard_limit,
                license_count=new_config.license_count,
            )
            outcome = await self._invoke(
                Operation.UPDATE,
                self._client.update_license_configuration(arn, request),
                timeout,
                cancel_event,
            )
            if not outcome.ok:
                raise self._failure("updating", arn, outcome) from outcome.error
            logger.info(f"Updated {sorted(plan.changed_fields - {'tags'})} on {arn}")

        if observed_tags is not None:
            current_tags = dict(observed_tags)
        elif self._observed is not None:
            current_tags = dict(self._observed.merged_tags)
        else:
            current_tags = merge_tags(default_tags, old_config.tags)

        changes = diff_tags(current_tags, merge_tags(default_tags, new_config.tags))
        if changes.to_remove:
            outcome = await self._invoke(
                Operation.UNTAG,
                self._client.untag_resource(arn, sorted(changes.to_remove)),
                timeout,
                cancel_event,
            )
            if not outcome.ok:
                raise self._failure("updating", arn, outcome) from outcome.error
        if changes.to_set:
            outcome = await self._invoke(
                Operation.TAG,
                self._client.tag_resource(arn, changes.to_set),
                timeout,
                cancel_event,
            )
            if not outcome.ok:
                raise self._failure("updating", arn, outcome) from outcome.error
        if not changes.is_empty:
            logger.info(
                f"Updated tags on {arn}: set {sorted(changes.to_set)}, removed {sorted(changes.to_remove)}"
            )

        self._declared = new_config
        return await self._refresh(default_tags, False, timeout, cancel_event)

    @_audited("delete")
    async def delete(
        self,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Delete the license configuration.

        A resource that is already gone, including one whose ARN License
        Manager does not recognize, counts as deleted. Any other failure
        leaves the reconciler Present with its identity so the caller can
        retry.
        """
        if self._state is not LifecycleState.PRESENT:
            logger.debug("Delete requested with no license configuration present; nothing to do")
            return

        arn = self._identity
        logger.debug(f"Deleting License Manager License Configuration: {arn}")
        outcome = await self._invoke(
            Operation.DELETE,
            self._client.delete_license_configuration(arn),
            timeout,
            cancel_event,
        )

        if outcome.kind is ErrorKind.NOT_FOUND:
            logger.info(f"License Manager License Configuration {arn} already deleted")
        elif not outcome.ok:
            raise self._failure("deleting", arn, outcome) from outcome.error
        else:
            logger.info(f"Deleted License Manager License Configuration {arn}")

        self._state = LifecycleState.ABSENT
        self._forget()

    @_audited("import")
    async def import_resource(
        self,
        identity: str,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ObservedState:
        """
        Adopt an existing license configuration by ARN.

        The observed state becomes the declared baseline (see ``declared``).

        Raises:
            ResourceNotFoundError: If no license configuration has this ARN
        """
        self._require("reading", LifecycleState.ABSENT, LifecycleState.GONE)
        if not identity:
            raise ReconcileValidationError("reading", identity, "an ARN is required", field="arn")

        observed = await self._load(identity, self._tags.snapshot(), timeout, cancel_event)

        self._identity = identity
        self._state = LifecycleState.PRESENT
        self._observed = observed
        self._declared = observed.to_declared()
        logger.info(f"Imported License Manager License Configuration {identity}")
        return self._observed

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _record(
        self,
        operation: str,
        identity: Optional[str],
        started: float,
        error: Optional[ReconcileError] = None,
    ) -> None:
        if self._audit_service is None:
            return
        entry = AuditLogEntry(
            operation=operation,
            identity=identity,
            status=AuditStatus.FAILURE if error else AuditStatus.SUCCESS,
            error_kind=error.kind if error else None,
            error_message=str(error) if error else None,
            correlation_id=get_correlation_id() or None,
            execution_time_ms=(time.perf_counter() - started) * 1000,
        )
        self._audit_service.log_operation(entry)
