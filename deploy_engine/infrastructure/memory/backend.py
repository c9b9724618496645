# deploy_engine/infrastructure/memory/backend.py

import hashlib
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from deploy_engine.core.errors import AliasNotCoveredByCertError, ChangeSetEmptyError
from deploy_engine.core.models import ServiceStatus, SubmitOptions
from deploy_engine.orchestrator.collaborators import (
    AliasCertValidator,
    AppVersionGetter,
    Collaborators,
    CustomResourcesUploader,
    EndpointGetter,
    PublicCIDRBlocksGetter,
    ServiceForceUpdater,
    StackBackend,
    TopicLister,
)
from deploy_engine.orchestrator.waiter import StabilityWaiter


ServiceKey = Tuple[str, str, str]


@dataclass
class StoredStack:
    name: str
    document_digest: str
    artifact_bucket: str
    disable_rollback: bool
    revision: int = 1


@dataclass
class EnvironmentRecord:
    service_discovery_endpoint: str
    public_cidr_blocks: List[str] = field(default_factory=list)
    topic_arns: List[str] = field(default_factory=list)


class InMemoryStackBackend(StackBackend):
    """Keeps the last submitted document per stack; identical resubmits are empty change sets."""

    def __init__(self):
        self._stacks: Dict[str, StoredStack] = {}
        self._lock = Lock()
        self.submissions: List[Tuple[str, SubmitOptions]] = []

    def submit_stack(self, stack_name: str, document: str, artifact_bucket: str, options: SubmitOptions) -> None:
        digest = hashlib.sha256(document.encode("utf-8")).hexdigest()
        with self._lock:
            self.submissions.append((stack_name, options))
            existing = self._stacks.get(stack_name)
            if existing and existing.document_digest == digest:
                raise ChangeSetEmptyError(stack_name, f"{stack_name}-r{existing.revision + 1}")

            revision = existing.revision + 1 if existing else 1
            self._stacks[stack_name] = StoredStack(
                name=stack_name,
                document_digest=digest,
                artifact_bucket=artifact_bucket,
                disable_rollback=options.disable_rollback,
                revision=revision,
            )

    def get(self, stack_name: str) -> Optional[StoredStack]:
        return self._stacks.get(stack_name)


class InMemoryServiceForceUpdater(ServiceForceUpdater):
    """
    Running-service state keyed by (app, env, svc).

    A force update marks the service as rolling; each status check advances
    the rollout by one task until running == desired.
    """

    def __init__(
        self,
        waiter: Optional[StabilityWaiter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._services: Dict[ServiceKey, ServiceStatus] = {}
        self._held = set()
        self._lock = Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.waiter = waiter or StabilityWaiter(poll_interval_seconds=0, max_attempts=10)
        self.force_updates: List[ServiceKey] = []

    def put_service(self, app: str, env: str, svc: str, status: ServiceStatus) -> None:
        with self._lock:
            self._services[(app, env, svc)] = status

    def service_status(self, app: str, env: str, svc: str) -> ServiceStatus:
        with self._lock:
            status = self._services.get((app, env, svc))
            if status is None:
                raise KeyError(f"service {svc} not found in {app}/{env}")
            if not status.is_stable() and (app, env, svc) not in self._held:
                running = min(status.running_count + 1, status.desired_count)
                status = ServiceStatus(
                    desired_count=status.desired_count,
                    running_count=running,
                    deployment_count=1 if running == status.desired_count else status.deployment_count,
                    last_updated_at=status.last_updated_at,
                )
                self._services[(app, env, svc)] = status
            return status

    def hold_rollout(self, app: str, env: str, svc: str) -> None:
        """Stop a service's rollout from progressing (tasks keep failing to start)."""
        with self._lock:
            self._held.add((app, env, svc))

    def last_updated_at(self, app: str, env: str, svc: str) -> datetime:
        with self._lock:
            status = self._services.get((app, env, svc))
        if status is None or status.last_updated_at is None:
            raise KeyError(f"service {svc} not found in {app}/{env}")
        return status.last_updated_at

    def force_update_service(
        self,
        app: str,
        env: str,
        svc: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        with self._lock:
            status = self._services.get((app, env, svc))
            if status is None:
                raise KeyError(f"service {svc} not found in {app}/{env}")
            self.force_updates.append((app, env, svc))
            self._services[(app, env, svc)] = ServiceStatus(
                desired_count=status.desired_count,
                running_count=0,
                deployment_count=2,
                last_updated_at=self._clock(),
            )

        self.waiter.wait(
            lambda: self.service_status(app, env, svc).is_stable(),
            cancel_event=cancel_event,
            description=f"service {svc} in {env}",
        )


class InMemoryEnvironmentStore(
    EndpointGetter,
    PublicCIDRBlocksGetter,
    TopicLister,
    AliasCertValidator,
    AppVersionGetter,
    CustomResourcesUploader,
):
    """Environment topology, app versions and certificate coverage held in memory."""

    def __init__(self):
        self._environments: Dict[Tuple[str, str], EnvironmentRecord] = {}
        self._app_versions: Dict[str, str] = {}
        self._cert_names: Dict[str, List[str]] = {}
        self._lock = Lock()
        self.uploaded_custom_resources: List[str] = []

    # -------------------------
    # SETUP
    # -------------------------

    def put_environment(self, app: str, env: str, record: EnvironmentRecord) -> None:
        with self._lock:
            self._environments[(app, env)] = record

    def put_app_version(self, app: str, version: str) -> None:
        with self._lock:
            self._app_versions[app] = version

    def put_certificate(self, cert_arn: str, domain_names: List[str]) -> None:
        with self._lock:
            self._cert_names[cert_arn] = list(domain_names)

    def _require_environment(self, app: str, env: str) -> EnvironmentRecord:
        record = self._environments.get((app, env))
        if record is None:
            raise KeyError(f"environment {env} not found in app {app}")
        return record

    # -------------------------
    # LOOKUPS
    # -------------------------

    def service_discovery_endpoint(self, app: str, env: str) -> str:
        return self._require_environment(app, env).service_discovery_endpoint

    def public_cidr_blocks(self, app: str, env: str) -> List[str]:
        return list(self._require_environment(app, env).public_cidr_blocks)

    def list_deployed_topics(self, app: str, env: str) -> List[str]:
        return list(self._require_environment(app, env).topic_arns)

    def version(self, app: str) -> str:
        if app not in self._app_versions:
            raise KeyError(f"application {app} not found")
        return self._app_versions[app]

    def validate_cert_aliases(self, aliases: List[str], cert_arns: List[str]) -> None:
        covered = []
        for arn in cert_arns:
            if arn not in self._cert_names:
                raise ValueError(f"certificate {arn} not found")
            covered.extend(self._cert_names[arn])
        for alias in aliases:
            if not any(_cert_covers(name, alias) for name in covered):
                raise AliasNotCoveredByCertError(alias, cert_arns)

    def upload_request_driven_custom_resources(self, workload: str) -> Dict[str, str]:
        with self._lock:
            self.uploaded_custom_resources.append(workload)
        return {
            "CustomDomainFunction": f"https://bucket.local/manual/scripts/custom-domain/{workload}.zip",
            "EnvControllerFunction": f"https://bucket.local/manual/scripts/env-controller/{workload}.zip",
        }

    def collaborators(self) -> Collaborators:
        return Collaborators(
            endpoint_getter=self,
            app_version_getter=self,
            alias_cert_validator=self,
            public_cidr_blocks_getter=self,
            topic_lister=self,
            custom_resources_uploader=self,
        )


def _cert_covers(cert_name: str, alias: str) -> bool:
    if cert_name == alias:
        return True
    # Wildcards cover exactly one label.
    if cert_name.startswith("*."):
        head, _, rest = alias.partition(".")
        return bool(head) and rest == cert_name[2:]
    return False
