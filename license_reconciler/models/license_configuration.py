# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""License configuration data models.

DeclaredConfiguration is the user's intent for one license configuration.
ObservedState is what the remote control plane reported on the last
successful read.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import LicenseCountingType

LICENSE_RULE_PATTERN = re.compile(r"^#([^=]+)=(.+)$")
LICENSE_RULE_FORMAT_MESSAGE = "Expected format is #RuleType=RuleValue"

# Fields that can only change by destroying and recreating the resource
IMMUTABLE_FIELDS: tuple[str, ...] = ("license_counting_type", "license_rules")

# Fields the remote API updates in place; tags go through the tagging API
MUTABLE_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "license_count",
    "license_count_hard_limit",
    "tags",
)

DECLARED_FIELDS: tuple[str, ...] = MUTABLE_FIELDS + IMMUTABLE_FIELDS


class DeclaredConfiguration(BaseModel):
    """Represents the declared configuration of a license configuration."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "windows-server-datacenter",
                "description": "Windows Server Datacenter licenses",
                "license_count": 10,
                "license_count_hard_limit": True,
                "license_counting_type": "Socket",
                "license_rules": ["#minimumSockets=2"],
                "tags": {"CostCenter": "Engineering"},
            }
        },
    )

    name: str = Field(..., min_length=1, description="Name of the license configuration")
    description: str | None = Field(None, description="Description of the license configuration")
    license_count: int | None = Field(
        None,
        ge=0,
        description="Number of licenses managed; None means no explicit limit",
    )
    license_count_hard_limit: bool = Field(
        False, description="Whether exceeding the license count blocks new launches"
    )
    license_counting_type: LicenseCountingType = Field(
        ..., description="Dimension used to track license inventory"
    )
    license_rules: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Ordered license rules, each in the form #RuleType=RuleValue",
    )
    tags: dict[str, str] = Field(
        default_factory=dict, description="Tags specific to this license configuration"
    )

    @field_validator("description")
    @classmethod
    def normalize_description(cls, description: str | None) -> str | None:
        """Treat an empty description as unset."""
        return description or None

    @field_validator("license_rules")
    @classmethod
    def validate_license_rules(cls, rules: tuple[str, ...]) -> tuple[str, ...]:
        """Reject any rule not shaped like #RuleType=RuleValue."""
        for index, rule in enumerate(rules):
            if not LICENSE_RULE_PATTERN.match(rule):
                raise ValueError(
                    f"license_rules[{index}] '{rule}' is invalid: {LICENSE_RULE_FORMAT_MESSAGE}"
                )
        return rules


class ObservedState(BaseModel):
    """Represents a license configuration as last reported by License Manager."""

    model_config = ConfigDict(frozen=True)

    arn: str = Field(..., description="ARN assigned by License Manager at creation")
    license_configuration_id: str | None = Field(
        None, description="Short identifier of the license configuration"
    )
    owner_account_id: str | None = Field(None, description="Account that owns the configuration")
    status: str | None = Field(None, description="Remote status (AVAILABLE, DISABLED)")
    consumed_licenses: int | None = Field(None, ge=0, description="Licenses currently consumed")

    name: str = Field(..., description="Name of the license configuration")
    description: str | None = None
    license_count: int | None = Field(None, ge=0)
    license_count_hard_limit: bool = False
    license_counting_type: LicenseCountingType
    license_rules: tuple[str, ...] = Field(default_factory=tuple)
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Resource-specific tags (merged tags minus unchanged default tags)",
    )
    merged_tags: dict[str, str] = Field(
        default_factory=dict,
        description="Default and resource-specific tags as stored remotely (read-only)",
    )

    def to_declared(self) -> DeclaredConfiguration:
        """
        Build the declared baseline matching this observation.

        Used after import, where the observed state becomes the caller's
        new declared configuration. merged_tags is never carried over.
        """
        return DeclaredConfiguration(
            name=self.name,
            description=self.description,
            license_count=self.license_count,
            license_count_hard_limit=self.license_count_hard_limit,
            license_counting_type=self.license_counting_type,
            license_rules=self.license_rules,
            tags=dict(self.tags),
        )
