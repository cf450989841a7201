# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""AWS License Manager client adapter."""

import asyncio
import functools
import logging
from typing import Any, Callable

import boto3
from botocore.config import Config

from ..models.remote import (
    CreateLicenseConfigurationRequest,
    CreateLicenseConfigurationResponse,
    RemoteLicenseConfiguration,
    UpdateLicenseConfigurationRequest,
)

logger = logging.getLogger(__name__)


class EmptyResultError(Exception):
    """Raised when License Manager answers a lookup with no license configuration."""

    def __init__(self, arn: str):
        self.arn = arn
        super().__init__(f"empty result for license configuration {arn}")


class LicenseManagerClient:
    """
    Thin wrapper around the boto3 License Manager client.

    Uses the default boto3 credential chain - no hardcoded credentials.
    Each blocking boto3 call runs in the default executor so callers can
    await it and abandon it on deadline or cancellation. The adapter never
    retries; botocore's retry configuration is the only retry policy.
    """

    SERVICE_NAME = "license-manager"

    def __init__(
        self,
        region: str = "us-east-1",
        boto_config: Config | None = None,
        client: Any | None = None,
    ):
        """
        Initialize the License Manager client.

        Args:
            region: AWS region hosting the license configurations
            boto_config: Optional botocore Config (retries, timeouts)
            client: Pre-built boto3 client, mainly for tests with a Stubber
        """
        self.region = region
        if client is None:
            config = boto_config or Config(
                retries={"max_attempts": 3, "mode": "standard"}
            )
            client = boto3.client(self.SERVICE_NAME, region_name=region, config=config)
        self._client = client

    @property
    def client(self) -> Any:
        """The underlying boto3 client."""
        return self._client

    async def _call(self, func: Callable[..., dict[str, Any]], **kwargs: Any) -> dict[str, Any]:
        """
        Run a boto3 call in the thread pool.

        Errors raised by botocore propagate unchanged.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, **kwargs))

    @staticmethod
    def _extract_tags(tag_list: list[dict[str, str]] | None) -> dict[str, str]:
        """
        Convert AWS tag list format to dictionary.

        Args:
            tag_list: List of tags in AWS format [{"Key": "...", "Value": "..."}]

        Returns:
            Dictionary of tag key-value pairs
        """
        if not tag_list:
            return {}

        result = {}
        for tag in tag_list:
            key = tag.get("Key", "")
            if key:
                result[key] = tag.get("Value", "")
        return result

    @staticmethod
    def _format_tags(tags: dict[str, str]) -> list[dict[str, str]]:
        """Convert a tag dictionary to the AWS list format."""
        return [{"Key": key, "Value": value} for key, value in sorted(tags.items())]

    async def create_license_configuration(
        self, request: CreateLicenseConfigurationRequest
    ) -> CreateLicenseConfigurationResponse:
        """
        Create a license configuration.

        Optional fields are only sent when declared, so an absent license
        count stays absent rather than being sent as zero.

        Args:
            request: Fields of the new license configuration

        Returns:
            Response carrying the ARN assigned by License Manager
        """
        params: dict[str, Any] = {
            "Name": request.name,
            "LicenseCountingType": request.license_counting_type.value,
        }
        if request.description:
            params["Description"] = request.description
        if request.license_count is not None:
            params["LicenseCount"] = request.license_count
        if request.license_count_hard_limit:
            params["LicenseCountHardLimit"] = True
        if request.license_rules:
            params["LicenseRules"] = list(request.license_rules)
        if request.tags:
            params["Tags"] = self._format_tags(request.tags)

        logger.debug(f"Creating license configuration {request.name}")
        response = await self._call(self._client.create_license_configuration, **params)
        return CreateLicenseConfigurationResponse(arn=response["LicenseConfigurationArn"])

    async def get_license_configuration(self, arn: str) -> RemoteLicenseConfiguration:
        """
        Fetch a license configuration by ARN.

        Raises:
            EmptyResultError: If the response carries no license configuration
        """
        response = await self._call(
            self._client.get_license_configuration, LicenseConfigurationArn=arn
        )
        if not response or not response.get("LicenseConfigurationArn"):
            raise EmptyResultError(arn)

        return RemoteLicenseConfiguration(
            arn=response["LicenseConfigurationArn"],
            license_configuration_id=response.get("LicenseConfigurationId"),
            name=response.get("Name", ""),
            description=response.get("Description") or None,
            license_counting_type=response["LicenseCountingType"],
            license_rules=tuple(response.get("LicenseRules") or ()),
            license_count=response.get("LicenseCount"),
            license_count_hard_limit=bool(response.get("LicenseCountHardLimit", False)),
            consumed_licenses=response.get("ConsumedLicenses"),
            status=response.get("Status"),
            owner_account_id=response.get("OwnerAccountId"),
            tags=self._extract_tags(response.get("Tags")),
        )

    async def update_license_configuration(
        self, arn: str, request: UpdateLicenseConfigurationRequest
    ) -> None:
        """Update the mutable, non-tag fields of a license configuration."""
        params: dict[str, Any] = {
            "LicenseConfigurationArn": arn,
            "Name": request.name,
            "Description": request.description,
            "LicenseCountHardLimit": request.license_count_hard_limit,
        }
        if request.license_count is not None:
            params["LicenseCount"] = request.license_count

        logger.debug(f"Updating license configuration {arn}")
        await self._call(self._client.update_license_configuration, **params)

    async def delete_license_configuration(self, arn: str) -> None:
        """Delete a license configuration."""
        logger.debug(f"Deleting license configuration {arn}")
        await self._call(self._client.delete_license_configuration, LicenseConfigurationArn=arn)

    async def tag_resource(self, arn: str, tags: dict[str, str]) -> None:
        """Add or overwrite tags on a license configuration."""
        await self._call(
            self._client.tag_resource, ResourceArn=arn, Tags=self._format_tags(tags)
        )

    async def untag_resource(self, arn: str, tag_keys: list[str]) -> None:
        """Remove tags from a license configuration."""
        await self._call(
            self._client.untag_resource, ResourceArn=arn, TagKeys=sorted(tag_keys)
        )
