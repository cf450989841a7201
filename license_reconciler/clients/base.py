# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Contract between the reconciler and the License Manager control plane."""

from typing import Protocol, runtime_checkable

from ..models.remote import (
    CreateLicenseConfigurationRequest,
    CreateLicenseConfigurationResponse,
    RemoteLicenseConfiguration,
    UpdateLicenseConfigurationRequest,
)


@runtime_checkable
class LicenseConfigurationAPI(Protocol):
    """
    Remote operations the reconciler depends on.

    None of these operations is idempotent and none retries. Failures are
    raised as the transport's own exceptions so the error classifier can
    interpret them.
    """

    async def create_license_configuration(
        self, request: CreateLicenseConfigurationRequest
    ) -> CreateLicenseConfigurationResponse: ...

    async def get_license_configuration(self, arn: str) -> RemoteLicenseConfiguration: ...

    async def update_license_configuration(
        self, arn: str, request: UpdateLicenseConfigurationRequest
    ) -> None: ...

    async def delete_license_configuration(self, arn: str) -> None: ...

    async def tag_resource(self, arn: str, tags: dict[str, str]) -> None: ...

    async def untag_resource(self, arn: str, tag_keys: list[str]) -> None: ...
