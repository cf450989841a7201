# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""ARN parsing helpers for License Manager license configurations.

License configuration ARNs look like:
    arn:aws:license-manager:us-east-1:123456789012:license-configuration:lic-0123456789abcdef
"""

import re
from typing import Optional

# ARN validation pattern - generic AWS ARN shape
ARN_PATTERN = re.compile(r"^arn:aws[a-z-]*:[a-z0-9-]+:[a-z0-9-]*:[0-9]*:.+")

LICENSE_CONFIGURATION_ARN_PATTERN = re.compile(
    r"^arn:(?P<partition>aws[a-z-]*):license-manager:(?P<region>[a-z0-9-]+):"
    r"(?P<account>[0-9]{12}):license-configuration:(?P<id>lic-[0-9a-f]+)$"
)


def is_valid_arn(arn: Optional[str]) -> bool:
    """
    Validate if a string is a valid AWS ARN format.

    Args:
        arn: String to validate

    Returns:
        True if valid ARN format, False otherwise
    """
    if not arn or not isinstance(arn, str):
        return False

    return bool(ARN_PATTERN.match(arn))


def is_license_configuration_arn(arn: Optional[str]) -> bool:
    """Check whether a string is shaped like a license configuration ARN."""
    if not arn or not isinstance(arn, str):
        return False
    return bool(LICENSE_CONFIGURATION_ARN_PATTERN.match(arn))


def parse_license_configuration_arn(arn: str) -> dict[str, str]:
    """
    Parse a license configuration ARN into its components.

    Args:
        arn: License configuration ARN

    Returns:
        Dictionary with partition, region, account and license_configuration_id

    Raises:
        ValueError: If the ARN is not a license configuration ARN

    Example:
        >>> parse_license_configuration_arn(
        ...     "arn:aws:license-manager:us-east-1:123456789012:license-configuration:lic-0abc"
        ... )["account"]
        '123456789012'
    """
    match = LICENSE_CONFIGURATION_ARN_PATTERN.match(arn or "")
    if not match:
        raise ValueError(f"Not a license configuration ARN: {arn}")

    return {
        "partition": match.group("partition"),
        "region": match.group("region"),
        "account": match.group("account"),
        "license_configuration_id": match.group("id"),
    }


def get_account_from_arn(arn: str) -> str:
    """
    Extract the AWS account ID from a license configuration ARN.

    Returns:
        AWS account ID or empty string if the ARN cannot be parsed
    """
    try:
        return parse_license_configuration_arn(arn)["account"]
    except ValueError:
        return ""
