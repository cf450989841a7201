"""AWS License Manager client adapter module."""

from .base import LicenseConfigurationAPI
from .license_manager_client import EmptyResultError, LicenseManagerClient

__all__ = ["LicenseConfigurationAPI", "LicenseManagerClient", "EmptyResultError"]
