#tests\test_manifest.py

"""Test workload manifest schemas."""

import pytest

from deploy_engine.core.errors import ManifestValidationError
from deploy_engine.core.models import WorkloadKind
from deploy_engine.manifest.schemas import (
    LoadBalancedWebServiceManifest,
    NetworkLoadBalancerConfig,
    RequestDrivenWebServiceManifest,
    WorkerServiceManifest,
    parse_manifest,
)


class TestParseManifest:
    """Test manifest parsing per workload type."""

    def test_load_balanced_web_service(self):
        """Test LBWS manifest with a single alias."""
        manifest = parse_manifest({
            "name": "frontend",
            "type": "Load Balanced Web Service",
            "image": {"build": "./Dockerfile", "port": 80},
            "http": {"path": "/", "alias": "v1.example.com"},
        })

        assert isinstance(manifest, LoadBalancedWebServiceManifest)
        assert manifest.kind == WorkloadKind.LOAD_BALANCED_WEB
        assert manifest.http.aliases() == ["v1.example.com"]
        assert manifest.nlb is None

    def test_alias_list_deduplicated(self):
        """Test aliases are distinct, first-seen order kept."""
        manifest = parse_manifest({
            "name": "frontend",
            "type": "Load Balanced Web Service",
            "http": {"alias": ["b.example.com", "a.example.com", "b.example.com"]},
        })

        assert manifest.http.aliases() == ["b.example.com", "a.example.com"]

    def test_no_alias(self):
        manifest = parse_manifest({"name": "frontend", "type": "Load Balanced Web Service"})

        assert manifest.http.aliases() == []

    def test_request_driven_web_service(self):
        manifest = parse_manifest({
            "name": "api",
            "type": "Request-Driven Web Service",
            "http": {"alias": "api.example.com"},
        })

        assert isinstance(manifest, RequestDrivenWebServiceManifest)
        assert manifest.kind == WorkloadKind.REQUEST_DRIVEN_WEB
        assert manifest.http.alias == "api.example.com"

    def test_worker_service_subscriptions(self):
        """Test worker subscriptions are parsed in declaration order."""
        manifest = parse_manifest({
            "name": "processor",
            "type": "Worker Service",
            "subscribe": {"topics": [
                {"name": "events", "service": "database"},
                {"name": "orders", "service": "api", "queue": {"retention": "4d"}},
            ]},
        })

        assert isinstance(manifest, WorkerServiceManifest)
        assert [(t.service, t.name) for t in manifest.subscribe.topics] == [
            ("database", "events"),
            ("api", "orders"),
        ]

    def test_blank_subscription_rejected(self):
        with pytest.raises(ManifestValidationError):
            parse_manifest({
                "name": "processor",
                "type": "Worker Service",
                "subscribe": {"topics": [{"name": " ", "service": "database"}]},
            })

    def test_unknown_type_rejected(self):
        """Test only the three workload types are accepted."""
        with pytest.raises(ManifestValidationError) as exc:
            parse_manifest({"name": "job", "type": "Scheduled Job"})

        assert "invalid manifest for job" in str(exc.value)

    def test_missing_name_rejected(self):
        with pytest.raises(ManifestValidationError):
            parse_manifest({"type": "Worker Service"})

    def test_nlb_alias_requires_port(self):
        """Test nlb.alias without nlb.port is invalid."""
        with pytest.raises(ManifestValidationError):
            parse_manifest({
                "name": "frontend",
                "type": "Load Balanced Web Service",
                "nlb": {"alias": "v1.example.com"},
            })


class TestNetworkLoadBalancerConfig:
    """Test NLB listener parsing."""

    @pytest.mark.parametrize("port,expected", [
        ("443/tcp", (443, "TCP")),
        ("443/TLS", (443, "TLS")),
        ("80", (80, "TCP")),
    ])
    def test_listener(self, port, expected):
        """Test port/protocol split, TCP by default."""
        assert NetworkLoadBalancerConfig(port=port).listener() == expected

    def test_integer_port(self):
        """Test a bare integer port is accepted as written in YAML."""
        assert NetworkLoadBalancerConfig(port=8080).listener() == (8080, "TCP")

    @pytest.mark.parametrize("protocol", ["udp", "TLS", "tcp_udp"])
    def test_supported_protocols(self, protocol):
        assert NetworkLoadBalancerConfig(port=f"53/{protocol}").listener()[1] == protocol.upper()

    @pytest.mark.parametrize("port", ["0", "-5", "70000", "70000/tcp", "http/tcp", "443/bogus"])
    def test_invalid_port_rejected_at_parse(self, port):
        """Test out-of-range ports and unknown protocols fail when the manifest is parsed."""
        with pytest.raises(ManifestValidationError) as exc:
            parse_manifest({
                "name": "frontend",
                "type": "Load Balanced Web Service",
                "nlb": {"port": port},
            })

        assert "nlb.port" in str(exc.value)

    def test_unknown_protocol_named(self):
        with pytest.raises(ManifestValidationError) as exc:
            parse_manifest({
                "name": "frontend",
                "type": "Load Balanced Web Service",
                "nlb": {"port": "443/bogus"},
            })

        assert "unsupported protocol BOGUS" in str(exc.value)
