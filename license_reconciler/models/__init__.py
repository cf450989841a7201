"""Data models for the License Configuration Reconciler."""

from .enums import ChangeAction, ErrorKind, LicenseCountingType, LifecycleState, Operation
from .license_configuration import (
    DECLARED_FIELDS,
    IMMUTABLE_FIELDS,
    LICENSE_RULE_PATTERN,
    MUTABLE_FIELDS,
    DeclaredConfiguration,
    ObservedState,
)
from .plan import ChangePlan, TagChanges
from .remote import (
    CreateLicenseConfigurationRequest,
    CreateLicenseConfigurationResponse,
    RemoteLicenseConfiguration,
    UpdateLicenseConfigurationRequest,
)
from .audit import AuditLogEntry, AuditStatus

__all__ = [
    "ChangeAction",
    "ErrorKind",
    "LicenseCountingType",
    "LifecycleState",
    "Operation",
    "DECLARED_FIELDS",
    "IMMUTABLE_FIELDS",
    "LICENSE_RULE_PATTERN",
    "MUTABLE_FIELDS",
    "DeclaredConfiguration",
    "ObservedState",
    "ChangePlan",
    "TagChanges",
    "CreateLicenseConfigurationRequest",
    "CreateLicenseConfigurationResponse",
    "RemoteLicenseConfiguration",
    "UpdateLicenseConfigurationRequest",
    "AuditLogEntry",
    "AuditStatus",
]
