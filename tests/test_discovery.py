#tests\test_discovery.py

"""Test service discovery naming."""

from deploy_engine.domain.discovery import (
    ServiceDiscovery,
    aggregate_service_discoveries,
    append_service_discovery,
    resolve_discovery,
    workload_discovery_name,
)


class TestServiceDiscovery:
    """Test discovery name formatting."""

    def test_resolve_discovery(self):
        """Test <service>.<app>.local:<port>."""
        assert resolve_discovery("api", "app", 80) == "api.app.local:80"

    def test_port_kept_as_given(self):
        assert str(ServiceDiscovery(service="api", app="app", port="8080")) == "api.app.local:8080"

    def test_workload_discovery_name(self):
        """Test workloads register under the environment endpoint."""
        assert workload_discovery_name("api", "test.app.local") == "api.test.app.local"


class TestAggregateServiceDiscoveries:
    """Test grouping environments by identical discovery names."""

    def test_environments_grouped_by_namespace(self):
        """Test environments sharing a name are grouped, first-seen order kept."""
        groups = aggregate_service_discoveries([
            ("test", ServiceDiscovery("api", "app", "80")),
            ("prod", ServiceDiscovery("api", "app", "80")),
            ("dev", ServiceDiscovery("api", "app", "8080")),
        ])

        assert [(g.namespace, g.environments) for g in groups] == [
            ("api.app.local:80", ["test", "prod"]),
            ("api.app.local:8080", ["dev"]),
        ]

    def test_environment_not_repeated(self):
        """Test the same environment is listed once per group."""
        groups = []
        append_service_discovery(groups, ServiceDiscovery("api", "app", "80"), "test")
        append_service_discovery(groups, ServiceDiscovery("api", "app", "80"), "test")

        assert len(groups) == 1
        assert groups[0].environments == ["test"]

    def test_empty(self):
        assert aggregate_service_discoveries([]) == []
