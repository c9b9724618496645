#tests\test_memory_backend.py

"""Test in-memory backends and stack rendering."""

import json
import pytest
from datetime import datetime, timezone

from deploy_engine.core.errors import AliasNotCoveredByCertError, ChangeSetEmptyError
from deploy_engine.core.models import ServiceStatus, SubmitOptions
from deploy_engine.infrastructure.memory.backend import (
    InMemoryEnvironmentStore,
    InMemoryServiceForceUpdater,
    InMemoryStackBackend,
)
from deploy_engine.infrastructure.template.renderer import JsonStackTemplateRenderer
from deploy_engine.orchestrator.stack_config import new_stack_builder
from deploy_engine.orchestrator.waiter import StabilityWaiter


class TestInMemoryStackBackend:
    """Test change set detection."""

    def test_identical_document_is_empty_change_set(self):
        backend = InMemoryStackBackend()
        backend.submit_stack("app-env-svc", '{"a":1}', "bucket", SubmitOptions())

        with pytest.raises(ChangeSetEmptyError) as exc:
            backend.submit_stack("app-env-svc", '{"a":1}', "bucket", SubmitOptions())

        assert exc.value.change_set == "app-env-svc-r2"

    def test_changed_document_bumps_revision(self):
        backend = InMemoryStackBackend()
        backend.submit_stack("app-env-svc", '{"a":1}', "bucket", SubmitOptions())
        backend.submit_stack("app-env-svc", '{"a":2}', "bucket", SubmitOptions(disable_rollback=True))

        stack = backend.get("app-env-svc")
        assert stack.revision == 2
        assert stack.disable_rollback is True
        assert len(backend.submissions) == 2


class TestInMemoryServiceForceUpdater:
    """Test simulated rollouts."""

    @pytest.fixture
    def updater(self):
        updater = InMemoryServiceForceUpdater(
            waiter=StabilityWaiter(poll_interval_seconds=0, max_attempts=5),
            clock=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        updater.put_service("app", "env", "svc", ServiceStatus(desired_count=3, running_count=3))
        return updater

    def test_force_update_rolls_out(self, updater):
        """Test a restart settles once every desired task runs again."""
        updater.force_update_service("app", "env", "svc")

        status = updater.service_status("app", "env", "svc")
        assert status.is_stable()
        assert status.last_updated_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_zero_desired_count_settles(self, updater):
        updater.put_service("app", "env", "idle", ServiceStatus(desired_count=0, running_count=0))

        updater.force_update_service("app", "env", "idle")

        assert updater.service_status("app", "env", "idle").is_stable()

    def test_unknown_service(self, updater):
        with pytest.raises(KeyError):
            updater.last_updated_at("app", "env", "missing")


class TestInMemoryEnvironmentStore:
    """Test certificate coverage."""

    @pytest.fixture
    def store(self):
        store = InMemoryEnvironmentStore()
        store.put_certificate("arn:cert", ["example.com", "*.foobar.com"])
        return store

    @pytest.mark.parametrize("alias", ["example.com", "v1.foobar.com"])
    def test_covered_aliases(self, store, alias):
        store.validate_cert_aliases([alias], ["arn:cert"])

    @pytest.mark.parametrize("alias", ["foobar.com", "a.b.foobar.com", "v1.example.com"])
    def test_uncovered_aliases(self, store, alias):
        """Test wildcards cover exactly one label."""
        with pytest.raises(AliasNotCoveredByCertError, match="is not a valid domain against arn:cert"):
            store.validate_cert_aliases([alias], ["arn:cert"])

    def test_unknown_certificate(self, store):
        with pytest.raises(ValueError, match="certificate arn:other not found"):
            store.validate_cert_aliases(["example.com"], ["arn:other"])


class TestJsonStackTemplateRenderer:
    """Test stack rendering."""

    def test_render_is_deterministic(self, make_input, collaborators):
        deploy_input = make_input({"type": "Worker Service"})
        renderer = JsonStackTemplateRenderer()

        first = renderer.render(
            new_stack_builder(deploy_input, collaborators).stack_configuration(deploy_input.artifacts)
        )
        second = renderer.render(
            new_stack_builder(deploy_input, collaborators).stack_configuration(deploy_input.artifacts)
        )

        assert first == second
        assert json.loads(first)["stack_name"] == "mockApp-mockEnv-mockWkld"
