# deploy_engine/orchestrator/stack_config.py
"""Stack configuration builders - one per workload kind."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from deploy_engine.core.errors import (
    ApplicationQueryError,
    DeployError,
    EnvironmentQueryError,
    MissingAliasForImportedCertError,
    NoDomainAssociatedError,
    ValidationError,
)
from deploy_engine.core.models import (
    DeployWorkloadInput,
    StackRuntimeConfiguration,
    WorkloadKind,
)
from deploy_engine.domain.alias import (
    check_alias_prerequisites,
    check_nlb_alias_posture,
    validate_alias,
    validate_aliases,
)
from deploy_engine.domain.discovery import workload_discovery_name
from deploy_engine.domain.topics import validate_topics_exist
from deploy_engine.orchestrator.collaborators import Collaborators

logger = logging.getLogger(__name__)


def stack_name(app: str, env: str, workload: str) -> str:
    return f"{app}-{env}-{workload}"


@dataclass(frozen=True)
class NLBListener:
    port: int
    protocol: str
    aliases: List[str] = field(default_factory=list)
    public_cidr_blocks: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StackConfiguration:
    """Render-ready description of a workload stack. Never mutated after build."""

    stack_name: str
    workload: str
    kind: WorkloadKind
    app: str
    env: str
    region: str
    runtime: StackRuntimeConfiguration
    service_discovery_endpoint: str
    discovery_name: str
    manifest: Dict[str, Any] = field(default_factory=dict)

    # Load balanced web service
    aliases: List[str] = field(default_factory=list)
    https_listener: bool = False
    import_cert_arns: List[str] = field(default_factory=list)
    nlb: Optional[NLBListener] = None

    # Request-driven web service
    rd_service_alias: Optional[str] = None
    custom_resource_urls: Dict[str, str] = field(default_factory=dict)

    # Worker service
    subscriptions: List[Any] = field(default_factory=list)

    force_update: bool = False
    disable_rollback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        # force_update and disable_rollback steer the deploy, not the stack body.
        return {
            "stack_name": self.stack_name,
            "workload": self.workload,
            "kind": self.kind.value,
            "app": self.app,
            "env": self.env,
            "region": self.region,
            "runtime": {
                "addons_url": self.runtime.addons_url,
                "env_file_arn": self.runtime.env_file_arn,
                "image_digest": self.runtime.image_digest,
                "root_user_arn": self.runtime.root_user_arn,
            },
            "service_discovery_endpoint": self.service_discovery_endpoint,
            "discovery_name": self.discovery_name,
            "manifest": self.manifest,
            "aliases": list(self.aliases),
            "https_listener": self.https_listener,
            "import_cert_arns": list(self.import_cert_arns),
            "nlb": None if self.nlb is None else {
                "port": self.nlb.port,
                "protocol": self.nlb.protocol,
                "aliases": list(self.nlb.aliases),
                "public_cidr_blocks": list(self.nlb.public_cidr_blocks),
            },
            "rd_service_alias": self.rd_service_alias,
            "custom_resource_urls": dict(self.custom_resource_urls),
            "subscriptions": [s.model_dump() for s in self.subscriptions],
        }


class WorkloadStackBuilder:
    """
    Shared steps for building a workload's stack configuration.

    Each workload kind subclasses this once and implements
    stack_configuration(). Builders are created per deploy call; the only
    state they keep is the memoized application version.
    """

    kind: WorkloadKind

    def __init__(self, deploy_input: DeployWorkloadInput, collaborators: Collaborators):
        self.manifest = deploy_input.manifest
        self.name = deploy_input.manifest.name
        self.app = deploy_input.application
        self.env = deploy_input.environment
        self.resources = deploy_input.resources
        self.options = deploy_input.options
        self.collaborators = collaborators

        self._app_version: Optional[str] = None

    def stack_configuration(self, runtime: StackRuntimeConfiguration) -> StackConfiguration:
        raise NotImplementedError

    # -------------------------
    # SHARED STEPS
    # -------------------------

    def _service_discovery_endpoint(self) -> str:
        try:
            return self.collaborators.endpoint_getter.service_discovery_endpoint(
                self.app.name, self.env.name
            )
        except Exception as e:
            raise EnvironmentQueryError(
                f"get service discovery endpoint for environment {self.env.name}: {e}"
            ) from e

    def _require_domain(self, field_name: str) -> None:
        if not self.app.domain:
            raise NoDomainAssociatedError(field_name)

    def _application_version(self) -> str:
        if self._app_version is not None:
            return self._app_version
        if self.app.version:
            self._app_version = self.app.version
            return self._app_version

        getter = self._require(self.collaborators.app_version_getter, "an application version getter")
        try:
            self._app_version = getter.version(self.app.name)
        except Exception as e:
            raise ApplicationQueryError(
                f"get version for app {self.app.name} to validate aliases of {self.name}: {e}"
            ) from e
        return self._app_version

    def _require(self, collaborator, description: str):
        if collaborator is None:
            raise DeployError(
                f"{self.kind.value} {self.name} requires {description} to build its stack"
            )
        return collaborator

    def _base_fields(self, runtime: StackRuntimeConfiguration, endpoint: str) -> Dict[str, Any]:
        return dict(
            stack_name=stack_name(self.app.name, self.env.name, self.name),
            workload=self.name,
            kind=self.kind,
            app=self.app.name,
            env=self.env.name,
            region=self.env.region,
            runtime=runtime,
            service_discovery_endpoint=endpoint,
            discovery_name=workload_discovery_name(self.name, endpoint),
            manifest=self.manifest.model_dump(mode="json"),
            force_update=self.options.force_new_update,
            disable_rollback=self.options.disable_rollback,
        )


# ============================================
# LOAD BALANCED WEB SERVICE
# ============================================

class LoadBalancedWebStackBuilder(WorkloadStackBuilder):
    kind = WorkloadKind.LOAD_BALANCED_WEB

    def stack_configuration(self, runtime: StackRuntimeConfiguration) -> StackConfiguration:
        endpoint = self._service_discovery_endpoint()

        aliases = self._validated_http_aliases()
        nlb = self._nlb_listener()

        logger.info(
            f"[stack-config] {self.name} in {self.env.name}: "
            f"{len(aliases)} alias(es), nlb={'yes' if nlb else 'no'}"
        )

        return StackConfiguration(
            **self._base_fields(runtime, endpoint),
            aliases=aliases,
            https_listener=bool(aliases) or bool(self.app.domain),
            import_cert_arns=list(self.env.import_cert_arns),
            nlb=nlb,
        )

    def _validated_http_aliases(self) -> List[str]:
        aliases = self.manifest.http.aliases()

        if self.env.has_imported_certs:
            # No managed hosted zone to fall back on.
            if not aliases:
                raise MissingAliasForImportedCertError(self.name, self.env.name)
            self._require_domain("http.alias")
            check_alias_prerequisites("http.alias", self.app.domain, self._application_version())
            validator = self._require(
                self.collaborators.alias_cert_validator, "a certificate alias validator"
            )
            try:
                validator.validate_cert_aliases(aliases, list(self.env.import_cert_arns))
            except ValidationError:
                raise
            except Exception as e:
                raise EnvironmentQueryError(
                    f"validate aliases against the imported certificate for env {self.env.name}: {e}"
                ) from e
            return aliases

        if not aliases:
            return []
        self._require_domain("http.alias")
        validated = validate_aliases(
            aliases,
            self.app.domain,
            self._application_version(),
            app_name=self.app.name,
            env_name=self.env.name,
        )
        return [alias.hostname for alias in validated]

    def _nlb_listener(self) -> Optional[NLBListener]:
        nlb_config = self.manifest.nlb
        if nlb_config is None or not nlb_config.port:
            return None

        nlb_aliases = nlb_config.aliases()
        if nlb_aliases:
            # Version is fetched only after the domain and certificate checks pass.
            check_nlb_alias_posture(self.app.domain, self.env.name, self.env.has_imported_certs)
            nlb_aliases = [
                alias.hostname
                for alias in validate_aliases(
                    nlb_aliases,
                    self.app.domain,
                    self._application_version(),
                    app_name=self.app.name,
                    env_name=self.env.name,
                    field="nlb.alias",
                )
            ]

        port, protocol = nlb_config.listener()

        getter = self._require(
            self.collaborators.public_cidr_blocks_getter, "a public CIDR blocks getter"
        )
        try:
            cidr_blocks = getter.public_cidr_blocks(self.app.name, self.env.name)
        except Exception as e:
            raise EnvironmentQueryError(
                f"get public CIDR blocks information from the VPC of environment {self.env.name}: {e}"
            ) from e

        return NLBListener(
            port=port,
            protocol=protocol,
            aliases=nlb_aliases,
            public_cidr_blocks=list(cidr_blocks),
        )


# ============================================
# REQUEST-DRIVEN WEB SERVICE
# ============================================

class RequestDrivenWebStackBuilder(WorkloadStackBuilder):
    kind = WorkloadKind.REQUEST_DRIVEN_WEB

    def stack_configuration(self, runtime: StackRuntimeConfiguration) -> StackConfiguration:
        endpoint = self._service_discovery_endpoint()

        alias = self.manifest.http.alias or None
        if alias:
            self._require_domain("http.alias")
            validate_alias(
                alias,
                self.app.domain,
                self._application_version(),
                app_name=self.app.name,
                env_name=self.env.name,
            )

        uploader = self._require(
            self.collaborators.custom_resources_uploader, "a custom resources uploader"
        )
        try:
            urls = uploader.upload_request_driven_custom_resources(self.name)
        except Exception as e:
            raise ApplicationQueryError(
                f"upload custom resources for {self.name} to bucket {self.resources.s3_bucket}: {e}"
            ) from e

        logger.info(f"[stack-config] {self.name}: uploaded {len(urls)} custom resource(s)")

        return StackConfiguration(
            **self._base_fields(runtime, endpoint),
            rd_service_alias=alias,
            custom_resource_urls=dict(urls),
        )


# ============================================
# WORKER SERVICE
# ============================================

class WorkerStackBuilder(WorkloadStackBuilder):
    kind = WorkloadKind.WORKER

    def stack_configuration(self, runtime: StackRuntimeConfiguration) -> StackConfiguration:
        endpoint = self._service_discovery_endpoint()

        subscriptions = list(self.manifest.subscribe.topics)
        if subscriptions:
            lister = self._require(self.collaborators.topic_lister, "a topic lister")
            try:
                topic_arns = lister.list_deployed_topics(self.app.name, self.env.name)
            except Exception as e:
                raise EnvironmentQueryError(
                    f"get topics for app {self.app.name} and environment {self.env.name}: {e}"
                ) from e
            validate_topics_exist(subscriptions, topic_arns, self.app.name, self.env.name)

        logger.info(f"[stack-config] {self.name}: {len(subscriptions)} subscription(s) resolved")

        return StackConfiguration(
            **self._base_fields(runtime, endpoint),
            subscriptions=subscriptions,
        )


_BUILDERS = {
    WorkloadKind.LOAD_BALANCED_WEB: LoadBalancedWebStackBuilder,
    WorkloadKind.REQUEST_DRIVEN_WEB: RequestDrivenWebStackBuilder,
    WorkloadKind.WORKER: WorkerStackBuilder,
}


def new_stack_builder(
    deploy_input: DeployWorkloadInput,
    collaborators: Collaborators,
) -> WorkloadStackBuilder:
    builder_cls = _BUILDERS.get(deploy_input.manifest.kind)
    if builder_cls is None:
        raise DeployError(f"unsupported workload type {deploy_input.manifest.kind}")
    return builder_cls(deploy_input, collaborators)
