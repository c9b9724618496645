"""Service discovery naming inside an environment's private namespace."""

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class ServiceDiscovery:
    service: str
    app: str
    port: str

    def __str__(self) -> str:
        return f"{self.service}.{self.app}.local:{self.port}"


@dataclass
class ServiceDiscoveryGroup:
    """Environments whose discovery name for a service is identical."""
    namespace: str
    environments: List[str] = field(default_factory=list)


def resolve_discovery(service: str, app: str, port) -> str:
    return str(ServiceDiscovery(service=service, app=app, port=str(port)))


def workload_discovery_name(workload: str, endpoint: str) -> str:
    """Record name a workload registers under, e.g. ``api.test.app.local``."""
    return f"{workload}.{endpoint}"


def append_service_discovery(
    groups: List[ServiceDiscoveryGroup],
    discovery: ServiceDiscovery,
    env: str,
) -> List[ServiceDiscoveryGroup]:
    namespace = str(discovery)
    for group in groups:
        if group.namespace == namespace:
            if env not in group.environments:
                group.environments.append(env)
            return groups
    groups.append(ServiceDiscoveryGroup(namespace=namespace, environments=[env]))
    return groups


def aggregate_service_discoveries(
    entries: Iterable[Tuple[str, ServiceDiscovery]],
) -> List[ServiceDiscoveryGroup]:
    groups: List[ServiceDiscoveryGroup] = []
    for env, discovery in entries:
        append_service_discovery(groups, discovery, env)
    return groups
