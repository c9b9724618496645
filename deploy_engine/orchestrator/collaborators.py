# deploy_engine/orchestrator/collaborators.py

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from deploy_engine.core.models import SubmitOptions


class StackTemplateRenderer(ABC):
    """
    Turns a stack configuration into the provider's stack document.
    Must be deterministic for a given configuration.
    """

    @abstractmethod
    def render(self, config) -> str:
        raise NotImplementedError


class StackBackend(ABC):

    @abstractmethod
    def submit_stack(
        self,
        stack_name: str,
        document: str,
        artifact_bucket: str,
        options: SubmitOptions,
    ) -> None:
        """
        Create or update a stack.
        Raises ChangeSetEmptyError when nothing would change.
        """
        raise NotImplementedError


class ServiceForceUpdater(ABC):

    @abstractmethod
    def last_updated_at(self, app: str, env: str, svc: str) -> datetime:
        raise NotImplementedError

    @abstractmethod
    def force_update_service(
        self,
        app: str,
        env: str,
        svc: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Restart the running tasks and block until the service is stable.
        Raises StabilityTimeoutError when the wait budget runs out.
        """
        raise NotImplementedError


class TopicLister(ABC):

    @abstractmethod
    def list_deployed_topics(self, app: str, env: str) -> List[str]:
        """Return ARNs of every topic deployed in the environment."""
        raise NotImplementedError


class PublicCIDRBlocksGetter(ABC):

    @abstractmethod
    def public_cidr_blocks(self, app: str, env: str) -> List[str]:
        raise NotImplementedError


class EndpointGetter(ABC):

    @abstractmethod
    def service_discovery_endpoint(self, app: str, env: str) -> str:
        raise NotImplementedError


class AliasCertValidator(ABC):

    @abstractmethod
    def validate_cert_aliases(self, aliases: List[str], cert_arns: List[str]) -> None:
        """
        Raise AliasNotCoveredByCertError for the first alias the imported
        certificates do not cover. Lookup failures raise anything else.
        """
        raise NotImplementedError


class CustomResourcesUploader(ABC):

    @abstractmethod
    def upload_request_driven_custom_resources(self, workload: str) -> Dict[str, str]:
        """Upload service-scoped custom resources, returning name -> URL."""
        raise NotImplementedError


class AppVersionGetter(ABC):

    @abstractmethod
    def version(self, app: str) -> str:
        raise NotImplementedError


@dataclass
class Collaborators:
    """Lookups the stack configuration builders depend on."""
    endpoint_getter: EndpointGetter
    app_version_getter: Optional[AppVersionGetter] = None
    alias_cert_validator: Optional[AliasCertValidator] = None
    public_cidr_blocks_getter: Optional[PublicCIDRBlocksGetter] = None
    topic_lister: Optional[TopicLister] = None
    custom_resources_uploader: Optional[CustomResourcesUploader] = None
