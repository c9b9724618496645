"""Pydantic schemas for workload manifests."""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from deploy_engine.core.errors import ManifestValidationError
from deploy_engine.core.models import WorkloadKind


Alias = Union[str, List[str]]


def alias_list(alias: Optional[Alias]) -> List[str]:
    """Flatten an alias field into distinct hostnames, first-seen order kept."""
    if alias is None:
        return []
    values = [alias] if isinstance(alias, str) else alias
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


# ============================================
# Shared sections
# ============================================

class ImageConfig(BaseModel):
    """Container image section."""

    build: Optional[str] = None
    location: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)

    model_config = ConfigDict(extra="ignore")


class TopicSubscription(BaseModel):
    """Declared intent to consume a topic published by another service."""

    name: str
    service: str
    queue: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("name", "service")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class SubscribeConfig(BaseModel):
    topics: List[TopicSubscription] = Field(default_factory=list)


class WorkloadManifest(BaseModel):
    """Fields common to every workload manifest."""

    name: str
    cpu: int = 256
    memory: int = 512
    count: int = Field(default=1, ge=0)
    variables: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @property
    def kind(self) -> WorkloadKind:
        return WorkloadKind(self.type)


# ============================================
# Load Balanced Web Service
# ============================================

class HTTPConfig(BaseModel):
    path: str = "/"
    alias: Optional[Alias] = None
    healthcheck: str = "/"

    def aliases(self) -> List[str]:
        return alias_list(self.alias)


NLB_PROTOCOLS = ("TCP", "UDP", "TLS", "TCP_UDP")


def split_nlb_port(value: str) -> tuple[int, str]:
    """Parse "<port>[/<protocol>]"; protocol defaults to TCP."""
    port, _, protocol = value.partition("/")
    if not port.isdigit() or not 1 <= int(port) <= 65535:
        raise ValueError(f"nlb.port {value!r} must be a port between 1 and 65535")
    protocol = (protocol or "tcp").upper()
    if protocol not in NLB_PROTOCOLS:
        raise ValueError(
            f"nlb.port {value!r} has unsupported protocol {protocol}, "
            f"expected one of {', '.join(NLB_PROTOCOLS)}"
        )
    return int(port), protocol


class NetworkLoadBalancerConfig(BaseModel):
    port: Optional[str] = None  # "443" or "443/tcp"
    alias: Optional[Alias] = None

    @field_validator("port", mode="before")
    @classmethod
    def port_as_string(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("port")
    @classmethod
    def valid_port(cls, value: Optional[str]) -> Optional[str]:
        if value:
            split_nlb_port(value)
        return value

    @model_validator(mode="after")
    def alias_requires_port(self):
        if alias_list(self.alias) and not self.port:
            raise ValueError("nlb.port must be specified when nlb.alias is set")
        return self

    def aliases(self) -> List[str]:
        return alias_list(self.alias)

    def listener(self) -> tuple[int, str]:
        """Split the port field into (port, protocol)."""
        try:
            return split_nlb_port(self.port or "")
        except ValueError as e:
            raise ManifestValidationError(str(e)) from e


class LoadBalancedWebServiceManifest(WorkloadManifest):
    type: Literal["Load Balanced Web Service"] = "Load Balanced Web Service"
    image: ImageConfig = Field(default_factory=ImageConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    nlb: Optional[NetworkLoadBalancerConfig] = None


# ============================================
# Request-Driven Web Service
# ============================================

class RequestDrivenHTTPConfig(BaseModel):
    alias: Optional[str] = None


class RequestDrivenWebServiceManifest(WorkloadManifest):
    type: Literal["Request-Driven Web Service"] = "Request-Driven Web Service"
    image: ImageConfig = Field(default_factory=ImageConfig)
    http: RequestDrivenHTTPConfig = Field(default_factory=RequestDrivenHTTPConfig)


# ============================================
# Worker Service
# ============================================

class WorkerServiceManifest(WorkloadManifest):
    type: Literal["Worker Service"] = "Worker Service"
    image: ImageConfig = Field(default_factory=ImageConfig)
    subscribe: SubscribeConfig = Field(default_factory=SubscribeConfig)


AnyWorkloadManifest = Annotated[
    Union[
        LoadBalancedWebServiceManifest,
        RequestDrivenWebServiceManifest,
        WorkerServiceManifest,
    ],
    Field(discriminator="type"),
]

_manifest_adapter = TypeAdapter(AnyWorkloadManifest)


def parse_manifest(data: Dict[str, Any]):
    """Validate a manifest mapping into the schema for its workload type."""
    try:
        return _manifest_adapter.validate_python(data)
    except PydanticValidationError as e:
        name = data.get("name", "<unnamed>") if isinstance(data, dict) else "<unnamed>"
        raise ManifestValidationError(f"invalid manifest for {name}: {e}") from e
