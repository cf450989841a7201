"""Unit tests for the lifecycle reconciler."""

import asyncio

import pytest

from license_reconciler.models import (
    AuditStatus,
    DeclaredConfiguration,
    ErrorKind,
    LicenseCountingType,
    LifecycleState,
)
from license_reconciler.services.audit_service import AuditService
from license_reconciler.services.errors import (
    FatalReconcileError,
    LifecycleStateError,
    OperationCancelledError,
    ReconcileValidationError,
    ReplacementRequiredError,
    ResourceNotFoundError,
    TransientReconcileError,
)
from license_reconciler.services.reconciler import LicenseConfigurationReconciler


@pytest.fixture
def reconciler(fake_license_manager, tag_provider):
    return LicenseConfigurationReconciler(fake_license_manager, tag_provider=tag_provider)


@pytest.fixture
def declaration(sample_declaration):
    return DeclaredConfiguration(**sample_declaration)


def _with(config: DeclaredConfiguration, **changes) -> DeclaredConfiguration:
    return DeclaredConfiguration(**{**config.model_dump(), **changes})


class SlowLicenseManager:
    """Adapter whose reads never complete until released."""

    def __init__(self, inner):
        self.inner = inner
        self.release = asyncio.Event()

    async def get_license_configuration(self, arn):
        await self.release.wait()
        return await self.inner.get_license_configuration(arn)

    def __getattr__(self, name):
        return getattr(self.inner, name)


# =============================================================================
# Create
# =============================================================================

class TestCreate:
    """Tests for create."""

    @pytest.mark.asyncio
    async def test_create_then_reads_back(self, reconciler, fake_license_manager, declaration):
        observed = await reconciler.create(declaration)

        assert reconciler.state is LifecycleState.PRESENT
        assert reconciler.identity == observed.arn
        assert observed.owner_account_id == "123456789012"
        assert fake_license_manager.calls == ["create", "get"]

    @pytest.mark.asyncio
    async def test_create_sends_merged_tags(self, reconciler, fake_license_manager, declaration):
        observed = await reconciler.create(declaration)

        stored = fake_license_manager.records[observed.arn]["tags"]
        assert stored == {
            "ManagedBy": "license-reconciler",
            "Environment": "staging",
            "CostCenter": "Engineering",
        }
        assert observed.merged_tags == stored
        assert observed.tags == {"Environment": "staging", "CostCenter": "Engineering"}

    @pytest.mark.asyncio
    async def test_declared_tag_equal_to_default_is_read_back(self, reconciler, declaration):
        declared = _with(declaration, tags={"Environment": "production"})

        observed = await reconciler.create(declared)

        assert observed.tags == {"Environment": "production"}
        assert observed.to_declared() == declared

    @pytest.mark.asyncio
    async def test_create_accepts_mapping(self, reconciler, sample_declaration):
        observed = await reconciler.create(sample_declaration)
        assert observed.license_counting_type is LicenseCountingType.SOCKET
        assert observed.license_rules == ("#minimumSockets=2",)

    @pytest.mark.asyncio
    async def test_invalid_rule_makes_no_remote_call(self, reconciler, fake_license_manager):
        with pytest.raises(ReconcileValidationError) as exc_info:
            await reconciler.create(
                {"name": "lc1", "license_counting_type": "vCPU", "license_rules": ["badrule"]}
            )

        assert exc_info.value.field == "license_rules"
        assert "#RuleType=RuleValue" in str(exc_info.value)
        assert fake_license_manager.call_count() == 0
        assert reconciler.state is LifecycleState.ABSENT

    @pytest.mark.asyncio
    async def test_unset_count_is_never_zero(self, reconciler, fake_license_manager):
        observed = await reconciler.create({"name": "lc1", "license_counting_type": "Instance"})

        assert observed.license_count is None
        assert fake_license_manager.records[observed.arn]["license_count"] is None

    @pytest.mark.asyncio
    async def test_create_failure_names_resource(
        self, reconciler, fake_license_manager, client_error, declaration
    ):
        fake_license_manager.fail_next(
            "create", client_error("AccessDeniedException", "not authorized", status_code=403)
        )

        with pytest.raises(FatalReconcileError) as exc_info:
            await reconciler.create(declaration)

        message = str(exc_info.value)
        assert message.startswith("creating License Manager License Configuration (windows-server-datacenter)")
        assert "AccessDeniedException" in message
        assert reconciler.state is LifecycleState.ABSENT
        assert reconciler.identity is None

    @pytest.mark.asyncio
    async def test_not_found_after_create_is_an_error(
        self, reconciler, fake_license_manager, client_error, declaration
    ):
        fake_license_manager.fail_next(
            "get", client_error("InvalidParameterValueException", "Invalid license configuration ARN")
        )

        with pytest.raises(ResourceNotFoundError) as exc_info:
            await reconciler.create(declaration)

        assert exc_info.value.verb == "reading"
        # The identity is kept so the new resource is not orphaned
        assert reconciler.state is LifecycleState.PRESENT
        assert reconciler.identity is not None

    @pytest.mark.asyncio
    async def test_create_twice_is_rejected(self, reconciler, fake_license_manager, declaration):
        await reconciler.create(declaration)

        with pytest.raises(LifecycleStateError):
            await reconciler.create(declaration)
        assert fake_license_manager.call_count("create") == 1


# =============================================================================
# Read
# =============================================================================

class TestRead:
    """Tests for read."""

    @pytest.mark.asyncio
    async def test_read_returns_observation(self, reconciler, declaration):
        created = await reconciler.create(declaration)
        observed = await reconciler.read()
        assert observed == created

    @pytest.mark.asyncio
    async def test_out_of_band_delete_is_drift(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)
        fake_license_manager.delete_out_of_band(created.arn)

        assert await reconciler.read() is None
        assert reconciler.state is LifecycleState.GONE
        assert reconciler.identity is None
        assert reconciler.observed is None

    @pytest.mark.asyncio
    async def test_new_resource_not_found_raises(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)
        fake_license_manager.delete_out_of_band(created.arn)

        with pytest.raises(ResourceNotFoundError):
            await reconciler.read(is_new_resource=True)
        assert reconciler.state is LifecycleState.PRESENT

    @pytest.mark.asyncio
    async def test_throttling_is_transient(self, reconciler, fake_license_manager, client_error, declaration):
        await reconciler.create(declaration)
        fake_license_manager.fail_next("get", client_error("ThrottlingException", "Rate exceeded"))

        with pytest.raises(TransientReconcileError) as exc_info:
            await reconciler.read()

        assert exc_info.value.kind is ErrorKind.TRANSIENT
        assert reconciler.state is LifecycleState.PRESENT

    @pytest.mark.asyncio
    async def test_read_when_absent_is_rejected(self, reconciler):
        with pytest.raises(LifecycleStateError):
            await reconciler.read()

    @pytest.mark.asyncio
    async def test_aws_reserved_tags_are_ignored(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)
        fake_license_manager.records[created.arn]["tags"]["aws:createdBy"] = "someone"

        observed = await reconciler.read()
        assert "aws:createdBy" not in observed.merged_tags


# =============================================================================
# Update
# =============================================================================

class TestUpdate:
    """Tests for update."""

    @pytest.mark.asyncio
    async def test_replace_is_rejected_before_remote_calls(
        self, reconciler, fake_license_manager, declaration
    ):
        await reconciler.create(declaration)
        calls_before = fake_license_manager.call_count()

        with pytest.raises(ReplacementRequiredError) as exc_info:
            await reconciler.update(declaration, _with(declaration, license_counting_type="Core"))

        assert exc_info.value.field == "license_counting_type"
        assert fake_license_manager.call_count() == calls_before

    @pytest.mark.asyncio
    async def test_name_change_resends_mutable_fields(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)

        observed = await reconciler.update(declaration, _with(declaration, name="renamed"))

        assert observed.name == "renamed"
        assert observed.arn == created.arn
        assert fake_license_manager.call_count("update") == 1
        assert fake_license_manager.call_count("tag") == 0
        assert fake_license_manager.call_count("untag") == 0

    @pytest.mark.asyncio
    async def test_cleared_description_is_sent_empty(self, reconciler, fake_license_manager, declaration):
        await reconciler.create(declaration)

        observed = await reconciler.update(declaration, _with(declaration, description=None))

        assert observed.description is None

    @pytest.mark.asyncio
    async def test_unset_count_is_not_sent(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)

        await reconciler.update(declaration, _with(declaration, license_count=None))

        # The remote count is left alone rather than being set to zero
        assert fake_license_manager.records[created.arn]["license_count"] == 10

    @pytest.mark.asyncio
    async def test_tag_only_change_skips_update_call(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)

        observed = await reconciler.update(
            declaration, _with(declaration, tags={"CostCenter": "Sales", "Team": "ops"})
        )

        assert fake_license_manager.call_count("update") == 0
        assert fake_license_manager.call_count("untag") == 0
        assert fake_license_manager.call_count("tag") == 1
        assert fake_license_manager.records[created.arn]["tags"] == {
            "ManagedBy": "license-reconciler",
            "Environment": "production",
            "CostCenter": "Sales",
            "Team": "ops",
        }
        assert observed.tags == {"CostCenter": "Sales", "Team": "ops"}

    @pytest.mark.asyncio
    async def test_untag_runs_before_tag(self, reconciler, fake_license_manager, declaration):
        await reconciler.create(declaration)
        fake_license_manager.calls.clear()

        await reconciler.update(declaration, _with(declaration, tags={"Team": "ops"}))

        assert fake_license_manager.calls == ["untag", "tag", "get"]

    @pytest.mark.asyncio
    async def test_removed_default_override_restores_default(
        self, reconciler, fake_license_manager, declaration
    ):
        created = await reconciler.create(declaration)

        await reconciler.update(declaration, _with(declaration, tags={"CostCenter": "Engineering"}))

        tags = fake_license_manager.records[created.arn]["tags"]
        assert tags["Environment"] == "production"

    @pytest.mark.asyncio
    async def test_observed_tags_take_precedence(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)
        fake_license_manager.records[created.arn]["tags"]["Stray"] = "x"

        await reconciler.update(
            declaration,
            declaration,
            observed_tags=fake_license_manager.records[created.arn]["tags"],
        )

        assert "Stray" not in fake_license_manager.records[created.arn]["tags"]

    @pytest.mark.asyncio
    async def test_update_failure_keeps_identity(
        self, reconciler, fake_license_manager, client_error, declaration
    ):
        created = await reconciler.create(declaration)
        fake_license_manager.fail_next(
            "update",
            client_error("InvalidParameterValueException", "LicenseCount too low", "UpdateLicenseConfiguration"),
        )

        with pytest.raises(ReconcileValidationError) as exc_info:
            await reconciler.update(declaration, _with(declaration, license_count=1))

        assert exc_info.value.verb == "updating"
        assert reconciler.identity == created.arn
        assert reconciler.state is LifecycleState.PRESENT

    @pytest.mark.asyncio
    async def test_update_of_deleted_resource_is_not_found(
        self, reconciler, fake_license_manager, declaration
    ):
        created = await reconciler.create(declaration)
        fake_license_manager.delete_out_of_band(created.arn)

        with pytest.raises(ResourceNotFoundError):
            await reconciler.update(declaration, _with(declaration, name="renamed"))


# =============================================================================
# Delete
# =============================================================================

class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_delete(self, reconciler, fake_license_manager, declaration):
        created = await reconciler.create(declaration)

        await reconciler.delete()

        assert reconciler.state is LifecycleState.ABSENT
        assert reconciler.identity is None
        assert created.arn not in fake_license_manager.records

    @pytest.mark.asyncio
    async def test_delete_twice_is_idempotent(self, reconciler, fake_license_manager, declaration):
        await reconciler.create(declaration)

        await reconciler.delete()
        await reconciler.delete()

        assert fake_license_manager.call_count("delete") == 1
        assert reconciler.state is LifecycleState.ABSENT

    @pytest.mark.asyncio
    async def test_delete_of_unknown_arn_succeeds(self, fake_license_manager, tag_provider):
        arn = "arn:aws:license-manager:us-east-1:123456789012:license-configuration:lic-deadbeef"
        reconciler = LicenseConfigurationReconciler(fake_license_manager, tag_provider, identity=arn)

        await reconciler.delete()

        assert reconciler.state is LifecycleState.ABSENT

    @pytest.mark.asyncio
    async def test_failed_delete_stays_present(
        self, reconciler, fake_license_manager, client_error, declaration
    ):
        created = await reconciler.create(declaration)
        fake_license_manager.fail_next(
            "delete", client_error("ServerInternalException", "oops", status_code=500)
        )

        with pytest.raises(TransientReconcileError) as exc_info:
            await reconciler.delete()

        assert exc_info.value.verb == "deleting"
        assert reconciler.state is LifecycleState.PRESENT
        assert reconciler.identity == created.arn
        assert created.arn in fake_license_manager.records


# =============================================================================
# Import
# =============================================================================

class TestImport:
    """Tests for import_resource."""

    @pytest.mark.asyncio
    async def test_import_adopts_existing(self, fake_license_manager, tag_provider, declaration):
        creator = LicenseConfigurationReconciler(fake_license_manager, tag_provider)
        created = await creator.create(declaration)

        importer = LicenseConfigurationReconciler(fake_license_manager, tag_provider)
        observed = await importer.import_resource(created.arn)

        assert importer.state is LifecycleState.PRESENT
        assert importer.identity == created.arn
        assert observed == created
        assert importer.declared == declaration

    @pytest.mark.asyncio
    async def test_import_unknown_arn(self, reconciler):
        arn = "arn:aws:license-manager:us-east-1:123456789012:license-configuration:lic-deadbeef"

        with pytest.raises(ResourceNotFoundError) as exc_info:
            await reconciler.import_resource(arn)

        assert exc_info.value.verb == "reading"
        assert reconciler.state is LifecycleState.ABSENT

    @pytest.mark.asyncio
    async def test_import_requires_identity(self, reconciler, fake_license_manager):
        with pytest.raises(ReconcileValidationError):
            await reconciler.import_resource("")
        assert fake_license_manager.call_count() == 0


# =============================================================================
# Cancellation
# =============================================================================

class TestCancellation:
    """Tests for deadlines and caller cancellation."""

    @pytest.mark.asyncio
    async def test_deadline_leaves_state_unchanged(self, fake_license_manager, tag_provider, declaration):
        creator = LicenseConfigurationReconciler(fake_license_manager, tag_provider)
        created = await creator.create(declaration)

        slow = SlowLicenseManager(fake_license_manager)
        reconciler = LicenseConfigurationReconciler(slow, tag_provider, identity=created.arn)

        with pytest.raises(OperationCancelledError) as exc_info:
            await reconciler.read(timeout=0.05)

        assert exc_info.value.kind is ErrorKind.TRANSIENT
        assert "deadline" in str(exc_info.value)
        assert reconciler.state is LifecycleState.PRESENT
        assert reconciler.identity == created.arn

    @pytest.mark.asyncio
    async def test_cancel_event(self, fake_license_manager, tag_provider, declaration):
        creator = LicenseConfigurationReconciler(fake_license_manager, tag_provider)
        created = await creator.create(declaration)

        slow = SlowLicenseManager(fake_license_manager)
        reconciler = LicenseConfigurationReconciler(slow, tag_provider, identity=created.arn)
        cancel = asyncio.Event()

        task = asyncio.create_task(reconciler.read(cancel_event=cancel))
        await asyncio.sleep(0.01)
        cancel.set()

        with pytest.raises(OperationCancelledError):
            await task
        assert reconciler.state is LifecycleState.PRESENT

    @pytest.mark.asyncio
    async def test_cancel_before_create_makes_no_call(self, reconciler, fake_license_manager, declaration):
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            await reconciler.create(declaration, cancel_event=cancel)

        assert fake_license_manager.call_count() == 0
        assert reconciler.state is LifecycleState.ABSENT


# =============================================================================
# Audit
# =============================================================================

class TestAudit:
    """Tests for audit recording."""

    @pytest.mark.asyncio
    async def test_operations_are_audited(self, fake_license_manager, tag_provider, tmp_path, declaration):
        audit = AuditService(str(tmp_path / "audit.db"))
        reconciler = LicenseConfigurationReconciler(
            fake_license_manager, tag_provider, audit_service=audit
        )

        created = await reconciler.create(declaration)
        with pytest.raises(ReplacementRequiredError):
            await reconciler.update(declaration, _with(declaration, license_rules=[]))

        logs = audit.get_logs(identity=created.arn)
        assert [log.operation for log in logs] == ["update", "create"]
        assert logs[0].status is AuditStatus.FAILURE
        assert logs[0].error_kind is ErrorKind.VALIDATION
        assert logs[1].status is AuditStatus.SUCCESS
        assert logs[1].correlation_id
