"""Core domain models for workload deploys."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class WorkloadKind(Enum):
    """Deployable workload types."""

    LOAD_BALANCED_WEB = "Load Balanced Web Service"
    REQUEST_DRIVEN_WEB = "Request-Driven Web Service"
    WORKER = "Worker Service"


class DeployState(Enum):
    """Deploy state machine."""

    IDLE = "IDLE"
    SUBMITTED = "SUBMITTED"
    APPLIED = "APPLIED"
    CHANGE_SET_EMPTY = "CHANGE_SET_EMPTY"
    FAILED = "FAILED"
    CHECKING_STALENESS = "CHECKING_STALENESS"
    SKIPPED = "SKIPPED"
    FORCE_UPDATING = "FORCE_UPDATING"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"


# ============================================
# APPLICATION / ENVIRONMENT
# ============================================

@dataclass(frozen=True)
class Application:
    """Application record. An empty domain means no hosted zone is associated."""
    name: str
    domain: str = ""
    version: str = ""  # resolved through AppVersionGetter when empty


@dataclass(frozen=True)
class Environment:
    """Environment record shared by every workload deployed into it."""
    name: str
    app_name: str
    region: str = ""
    import_cert_arns: List[str] = field(default_factory=list)

    @property
    def has_imported_certs(self) -> bool:
        return len(self.import_cert_arns) > 0


@dataclass(frozen=True)
class AppRegionalResources:
    """Regional resources created for the application (artifact bucket)."""
    s3_bucket: str


# ============================================
# DEPLOY INPUT
# ============================================

@dataclass(frozen=True)
class StackRuntimeConfiguration:
    """References returned by the artifact upload pipeline."""
    addons_url: Optional[str] = None
    env_file_arn: Optional[str] = None
    image_digest: Optional[str] = None
    root_user_arn: Optional[str] = None


@dataclass(frozen=True)
class DeployOptions:
    force_new_update: bool = False
    disable_rollback: bool = False


@dataclass(frozen=True)
class SubmitOptions:
    """Options forwarded to the provisioning backend without interpretation."""
    disable_rollback: bool = False


@dataclass
class DeployWorkloadInput:
    """Everything a single deploy invocation needs."""
    manifest: Any  # one of the manifest schemas
    application: Application
    environment: Environment
    resources: AppRegionalResources
    artifacts: StackRuntimeConfiguration = field(default_factory=StackRuntimeConfiguration)
    options: DeployOptions = field(default_factory=DeployOptions)


# ============================================
# RUNNING SERVICE STATE
# ============================================

@dataclass(frozen=True)
class ServiceStatus:
    """Snapshot of a running service as reported by the backend."""
    desired_count: int
    running_count: int
    deployment_count: int = 1
    last_updated_at: Optional[datetime] = None

    def is_stable(self) -> bool:
        """A single active deployment with every desired task running."""
        return self.deployment_count == 1 and self.running_count == self.desired_count


# ============================================
# RESULT
# ============================================

@dataclass
class DeployResult:
    """Outcome of a deploy invocation."""
    outcome: DeployState
    stack_name: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def force_updated(self) -> bool:
        return self.outcome == DeployState.COMPLETED
