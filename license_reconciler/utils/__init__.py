"""Utility modules for the License Configuration Reconciler."""

from .arn_utils import is_license_configuration_arn, parse_license_configuration_arn
from .cancellation import CallCancelledError, run_with_deadline
from .correlation import get_correlation_id, reconciliation_pass
from .error_sanitization import redact_sensitive_info
from .logging_config import configure_logging

__all__ = [
    "is_license_configuration_arn",
    "parse_license_configuration_arn",
    "CallCancelledError",
    "run_with_deadline",
    "get_correlation_id",
    "reconciliation_pass",
    "redact_sensitive_info",
    "configure_logging",
]
