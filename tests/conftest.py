"""Pytest configuration and shared fixtures."""

import uuid
from typing import Any, Optional

import pytest
from botocore.exceptions import ClientError

from license_reconciler.models.remote import (
    CreateLicenseConfigurationRequest,
    CreateLicenseConfigurationResponse,
    RemoteLicenseConfiguration,
    UpdateLicenseConfigurationRequest,
)
from license_reconciler.services.tag_service import DefaultTagProvider

OWNER_ACCOUNT_ID = "123456789012"


# =============================================================================
# Environment and Configuration Fixtures
# =============================================================================

@pytest.fixture
def test_env(monkeypatch, tmp_path):
    """Set up test environment variables."""
    test_vars = {
        "AWS_REGION": "us-east-1",
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "RECONCILER_DEFAULT_TAGS": '{"ManagedBy": "license-reconciler"}',
        "RECONCILER_STATE_PATH": str(tmp_path / "state.json"),
        "AUDIT_DB_PATH": str(tmp_path / "audit.db"),
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    return test_vars


# =============================================================================
# AWS Error Helpers
# =============================================================================

def make_client_error(
    code: str,
    message: str = "",
    operation_name: str = "GetLicenseConfiguration",
    status_code: int = 400,
) -> ClientError:
    """Build a botocore ClientError as License Manager would return it."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status_code},
        },
        operation_name,
    )


def invalid_arn_error(operation_name: str = "GetLicenseConfiguration") -> ClientError:
    return make_client_error(
        "InvalidParameterValueException",
        "Invalid license configuration ARN",
        operation_name,
    )


# =============================================================================
# In-memory License Manager
# =============================================================================

class FakeLicenseManager:
    """
    In-memory stand-in for the License Manager adapter.

    Unknown ARNs fail the way License Manager does, with an
    InvalidParameterValueException about the license configuration ARN.
    """

    def __init__(self):
        self.records: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []
        self._failures: dict[str, list[BaseException]] = {}

    def fail_next(self, operation: str, error: BaseException) -> None:
        """Make the next call to an operation raise an error."""
        self._failures.setdefault(operation, []).append(error)

    def call_count(self, operation: Optional[str] = None) -> int:
        if operation is None:
            return len(self.calls)
        return self.calls.count(operation)

    def delete_out_of_band(self, arn: str) -> None:
        del self.records[arn]

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _lookup(self, arn: str, operation_name: str) -> dict[str, Any]:
        if arn not in self.records:
            raise invalid_arn_error(operation_name)
        return self.records[arn]

    async def create_license_configuration(
        self, request: CreateLicenseConfigurationRequest
    ) -> CreateLicenseConfigurationResponse:
        self._enter("create")
        license_id = f"lic-{uuid.uuid4().hex}"
        arn = f"arn:aws:license-manager:us-east-1:{OWNER_ACCOUNT_ID}:license-configuration:{license_id}"
        self.records[arn] = {
            "license_configuration_id": license_id,
            "name": request.name,
            "description": request.description,
            "license_counting_type": request.license_counting_type,
            "license_rules": tuple(request.license_rules),
            "license_count": request.license_count,
            "license_count_hard_limit": request.license_count_hard_limit,
            "tags": dict(request.tags),
        }
        return CreateLicenseConfigurationResponse(arn=arn)

    async def get_license_configuration(self, arn: str) -> RemoteLicenseConfiguration:
        self._enter("get")
        record = self._lookup(arn, "GetLicenseConfiguration")
        return RemoteLicenseConfiguration(
            arn=arn,
            status="AVAILABLE",
            owner_account_id=OWNER_ACCOUNT_ID,
            consumed_licenses=0,
            **record,
        )

    async def update_license_configuration(
        self, arn: str, request: UpdateLicenseConfigurationRequest
    ) -> None:
        self._enter("update")
        record = self._lookup(arn, "UpdateLicenseConfiguration")
        record["name"] = request.name
        record["description"] = request.description or None
        record["license_count_hard_limit"] = request.license_count_hard_limit
        if request.license_count is not None:
            record["license_count"] = request.license_count

    async def delete_license_configuration(self, arn: str) -> None:
        self._enter("delete")
        self._lookup(arn, "DeleteLicenseConfiguration")
        del self.records[arn]

    async def tag_resource(self, arn: str, tags: dict[str, str]) -> None:
        self._enter("tag")
        self._lookup(arn, "TagResource")["tags"].update(tags)

    async def untag_resource(self, arn: str, tag_keys: list[str]) -> None:
        self._enter("untag")
        tags = self._lookup(arn, "UntagResource")["tags"]
        for key in tag_keys:
            tags.pop(key, None)


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors."""
    return make_client_error


@pytest.fixture
def fake_license_manager():
    """Provide an empty in-memory License Manager."""
    return FakeLicenseManager()


@pytest.fixture
def default_tags():
    """Process-wide default tags used across reconciler tests."""
    return {"ManagedBy": "license-reconciler", "Environment": "production"}


@pytest.fixture
def tag_provider(default_tags):
    return DefaultTagProvider(default_tags)


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def sample_declaration():
    """Provide a declared license configuration."""
    return {
        "name": "windows-server-datacenter",
        "description": "Windows Server Datacenter licenses",
        "license_count": 10,
        "license_count_hard_limit": True,
        "license_counting_type": "Socket",
        "license_rules": ["#minimumSockets=2"],
        "tags": {"CostCenter": "Engineering", "Environment": "staging"},
    }


# =============================================================================
# Pytest Hooks for Test Reporting
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "property: marks tests as property-based tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "property" in path:
            item.add_marker(pytest.mark.property)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
