#deploy_engine\container.py

"""Dependency injection container - wires all services together."""

import requests

from deploy_engine.config import settings
from deploy_engine.core.models import AppRegionalResources, Application
from deploy_engine.infrastructure.http.environment_client import (
    CustomResourcesClient,
    EnvironmentClient,
)
from deploy_engine.infrastructure.http.provisioning_client import ProvisioningClient
from deploy_engine.infrastructure.template.renderer import JsonStackTemplateRenderer
from deploy_engine.orchestrator.collaborators import Collaborators
from deploy_engine.orchestrator.deployer import WorkloadDeployer
from deploy_engine.orchestrator.waiter import StabilityWaiter


# ============================================
# CLIENTS
# ============================================

http_session = requests.Session()

stability_waiter = StabilityWaiter(
    poll_interval_seconds=settings.stability_poll_interval_seconds,
    max_attempts=settings.stability_max_attempts,
)

provisioning_client = ProvisioningClient(
    backend_url=settings.backend_url,
    waiter=stability_waiter,
    timeout=settings.request_timeout_seconds,
    session=http_session,
)

environment_client = EnvironmentClient(
    backend_url=settings.backend_url,
    timeout=settings.request_timeout_seconds,
    session=http_session,
)

renderer = JsonStackTemplateRenderer()


# ============================================
# DEPLOYER
# ============================================

def build_deployer(application: Application, resources: AppRegionalResources) -> WorkloadDeployer:
    """Deployer for one application; custom resources go to its artifact bucket."""
    collaborators = Collaborators(
        endpoint_getter=environment_client,
        app_version_getter=environment_client,
        alias_cert_validator=environment_client,
        public_cidr_blocks_getter=environment_client,
        topic_lister=environment_client,
        custom_resources_uploader=CustomResourcesClient(
            backend_url=settings.backend_url,
            app=application.name,
            bucket=resources.s3_bucket,
            timeout=settings.request_timeout_seconds,
            session=http_session,
        ),
    )
    return WorkloadDeployer(
        collaborators=collaborators,
        renderer=renderer,
        stack_backend=provisioning_client,
        force_updater=provisioning_client,
    )
