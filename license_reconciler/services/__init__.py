"""Reconciliation services for License Manager license configurations."""

from .audit_service import AuditService
from .diff_policy import classify_change
from .error_classifier import classify_error, describe_error
from .errors import (
    FatalReconcileError,
    LifecycleStateError,
    OperationCancelledError,
    ReconcileError,
    ReconcileValidationError,
    ReplacementRequiredError,
    ResourceNotFoundError,
    TransientReconcileError,
)
from .reconciler import LicenseConfigurationReconciler, validate_configuration
from .runner import PlannedAction, ReconcileRunner, RunnerPlan
from .state_store import ResourceRecord, StateFileError, StateStore
from .tag_service import DefaultTagProvider, diff_tags, merge_tags, merged_tags_from_observation

__all__ = [
    "AuditService",
    "classify_change",
    "classify_error",
    "describe_error",
    "FatalReconcileError",
    "LifecycleStateError",
    "OperationCancelledError",
    "ReconcileError",
    "ReconcileValidationError",
    "ReplacementRequiredError",
    "ResourceNotFoundError",
    "TransientReconcileError",
    "LicenseConfigurationReconciler",
    "validate_configuration",
    "PlannedAction",
    "ReconcileRunner",
    "RunnerPlan",
    "ResourceRecord",
    "StateFileError",
    "StateStore",
    "DefaultTagProvider",
    "diff_tags",
    "merge_tags",
    "merged_tags_from_observation",
]
