# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Error taxonomy surfaced by the reconciler.

Callers react to the class (or ``kind``) of the error:
ResourceNotFoundError means drop or recreate local state, never retry as-is.
ReconcileValidationError is fatal for the operation and names the field.
TransientReconcileError may be retried by the caller with backoff.
FatalReconcileError aborts the operation.
"""

from typing import Optional

from ..models.enums import ErrorKind

RESOURCE_LABEL = "License Manager License Configuration"


class ReconcileError(Exception):
    """Base class for all reconciler failures."""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(
        self,
        verb: str,
        identity: Optional[str],
        message: str,
        field: Optional[str] = None,
    ):
        """
        Initialize a reconcile error.

        Args:
            verb: Attempted operation ("creating", "reading", "updating", "deleting")
            identity: ARN, or the name when no ARN exists yet
            message: Sanitized description of the underlying failure
            field: Offending field, for validation failures
        """
        self.verb = verb
        self.identity = identity
        self.message = message
        self.field = field
        super().__init__(f"{verb} {RESOURCE_LABEL} ({identity or 'unknown'}): {message}")


class ResourceNotFoundError(ReconcileError):
    """Raised when the referenced license configuration does not exist remotely."""

    kind = ErrorKind.NOT_FOUND


class ReconcileValidationError(ReconcileError):
    """Raised when input is malformed, locally or as judged by License Manager."""

    kind = ErrorKind.VALIDATION


class ReplacementRequiredError(ReconcileValidationError):
    """Raised when an in-place update is requested for an immutable field change."""


class TransientReconcileError(ReconcileError):
    """Raised on throttling, timeouts and connectivity failures."""

    kind = ErrorKind.TRANSIENT


class OperationCancelledError(TransientReconcileError):
    """Raised when a remote call is abandoned on deadline or caller cancellation."""


class FatalReconcileError(ReconcileError):
    """Raised for any failure that is neither retryable nor a validation problem."""

    kind = ErrorKind.FATAL


class LifecycleStateError(FatalReconcileError):
    """Raised when an entry point is called from a state that does not allow it."""


ERROR_CLASSES: dict[ErrorKind, type[ReconcileError]] = {
    ErrorKind.NOT_FOUND: ResourceNotFoundError,
    ErrorKind.VALIDATION: ReconcileValidationError,
    ErrorKind.TRANSIENT: TransientReconcileError,
    ErrorKind.FATAL: FatalReconcileError,
}
