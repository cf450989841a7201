# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Typed requests and responses exchanged with the License Manager adapter."""

from pydantic import BaseModel, Field

from .enums import LicenseCountingType


class CreateLicenseConfigurationRequest(BaseModel):
    """Fields sent when creating a license configuration."""

    name: str
    license_counting_type: LicenseCountingType
    description: str | None = None
    license_count: int | None = Field(None, ge=0)
    license_count_hard_limit: bool = False
    license_rules: tuple[str, ...] = Field(default_factory=tuple)
    tags: dict[str, str] = Field(
        default_factory=dict, description="Merged default and resource-specific tags"
    )


class CreateLicenseConfigurationResponse(BaseModel):
    """Identity assigned by License Manager to a new license configuration."""

    arn: str


class UpdateLicenseConfigurationRequest(BaseModel):
    """Mutable non-tag fields resent on every update."""

    name: str
    description: str = ""
    license_count_hard_limit: bool = False
    # None leaves the count unset; it is never coerced to zero
    license_count: int | None = Field(None, ge=0)


class RemoteLicenseConfiguration(BaseModel):
    """A license configuration as returned by GetLicenseConfiguration."""

    arn: str
    license_configuration_id: str | None = None
    name: str
    description: str | None = None
    license_counting_type: LicenseCountingType
    license_rules: tuple[str, ...] = Field(default_factory=tuple)
    license_count: int | None = None
    license_count_hard_limit: bool = False
    consumed_licenses: int | None = None
    status: str | None = None
    owner_account_id: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)
