#tests\conftest.py

"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone

from deploy_engine.core.models import (
    AppRegionalResources,
    Application,
    DeployOptions,
    DeployWorkloadInput,
    Environment,
    ServiceStatus,
    StackRuntimeConfiguration,
)
from deploy_engine.infrastructure.memory.backend import (
    EnvironmentRecord,
    InMemoryEnvironmentStore,
    InMemoryServiceForceUpdater,
    InMemoryStackBackend,
)
from deploy_engine.infrastructure.template.renderer import JsonStackTemplateRenderer
from deploy_engine.manifest.schemas import parse_manifest
from deploy_engine.orchestrator.deployer import WorkloadDeployer
from deploy_engine.orchestrator.waiter import StabilityWaiter


APP = "mockApp"
ENV = "mockEnv"
WORKLOAD = "mockWkld"
BUCKET = "mockBucket"
DOMAIN = "mockDomain"

NOW = datetime(2017, 5, 11, 12, 29, 10, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed start time of every deploy in the suite."""
    return NOW


@pytest.fixture
def environment_store():
    """Environment with a discovery endpoint and two public subnets."""
    store = InMemoryEnvironmentStore()
    store.put_environment(
        APP,
        ENV,
        EnvironmentRecord(
            service_discovery_endpoint=f"{ENV}.{APP}.local",
            public_cidr_blocks=["10.0.0.0/24", "10.0.1.0/24"],
        ),
    )
    store.put_app_version(APP, "v1.0.0")
    return store


@pytest.fixture
def collaborators(environment_store):
    return environment_store.collaborators()


@pytest.fixture
def stack_backend():
    return InMemoryStackBackend()


@pytest.fixture
def force_updater():
    """Running service last updated an hour before the deploy starts."""
    updater = InMemoryServiceForceUpdater(
        waiter=StabilityWaiter(poll_interval_seconds=0, max_attempts=5),
        clock=lambda: NOW + timedelta(seconds=30),
    )
    updater.put_service(
        APP,
        ENV,
        WORKLOAD,
        ServiceStatus(
            desired_count=1,
            running_count=1,
            last_updated_at=NOW - timedelta(hours=1),
        ),
    )
    return updater


@pytest.fixture
def deployer(collaborators, stack_backend, force_updater):
    return WorkloadDeployer(
        collaborators=collaborators,
        renderer=JsonStackTemplateRenderer(),
        stack_backend=stack_backend,
        force_updater=force_updater,
        now=lambda: NOW,
    )


@pytest.fixture
def make_input():
    """Factory for deploy inputs around a raw manifest mapping."""

    def _make(
        manifest,
        *,
        domain="",
        version="",
        import_cert_arns=None,
        force=False,
        disable_rollback=False,
    ):
        data = {"name": WORKLOAD, **manifest}
        return DeployWorkloadInput(
            manifest=parse_manifest(data),
            application=Application(name=APP, domain=domain, version=version),
            environment=Environment(
                name=ENV,
                app_name=APP,
                region="us-west-2",
                import_cert_arns=list(import_cert_arns or []),
            ),
            resources=AppRegionalResources(s3_bucket=BUCKET),
            artifacts=StackRuntimeConfiguration(
                addons_url="https://mockBucket.s3.amazonaws.com/addons.yml",
                image_digest="sha256:741d3e95eefd",
            ),
            options=DeployOptions(force_new_update=force, disable_rollback=disable_rollback),
        )

    return _make
