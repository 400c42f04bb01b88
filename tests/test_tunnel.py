"""
Tests for the WireGuard tunnel profile.
"""

from pathlib import Path

import pytest

from provisioner.core.config.resolver import ConfigResolver
from provisioner.core.documents.wireguard import ENDPOINT_PLACEHOLDER
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.steps.base import StepContext
from provisioner.core.steps.registry import StepRegistry
from provisioner.core.steps.tunnel import GenerateKeysStep, WriteClientConfigStep
from provisioner.core.use_cases.tunnel import run_tunnel_setup


@pytest.fixture
def tunnel_ctx(registry):
    def _make(**settings):
        config = ConfigResolver(settings).resolve_tunnel()
        return StepContext(config=config, adapters=registry)

    return _make


def _run(registry, ctx):
    return Orchestrator(registry).run(StepRegistry.tunnel(), ctx)


class TestTunnelProfile:
    def test_fresh_setup(self, registry, tunnel_ctx):
        ctx = tunnel_ctx()
        report = _run(registry, ctx)

        assert report.ok, report.error
        assert report.applied == 5
        files = registry.files
        for path in (
            "/etc/wireguard/server.key",
            "/etc/wireguard/server.pub",
            "/etc/wireguard/client1.key",
            "/etc/wireguard/client1.pub",
            "/etc/wireguard/wg0.conf",
            "/root/wg-client1.conf",
        ):
            assert files.mode_of(path) == 0o600, path
        assert files.mode_of("/etc/wireguard") == 0o700
        assert "wg-quick@wg0" in registry.services.active
        assert registry.packages.events.of("packages") == ["packages:update_index", "packages:install wireguard"]

    def test_server_and_client_reference_each_other(self, registry, tunnel_ctx):
        _run(registry, tunnel_ctx())
        files = registry.files
        server_pub = files.read_text("/etc/wireguard/server.pub").strip()
        client_pub = files.read_text("/etc/wireguard/client1.pub").strip()
        assert f"PublicKey = {client_pub}" in files.read_text("/etc/wireguard/wg0.conf")
        assert f"PublicKey = {server_pub}" in files.read_text("/root/wg-client1.conf")

    def test_endpoint_placeholder_follow_up(self, registry, tunnel_ctx):
        report = _run(registry, tunnel_ctx())
        assert ENDPOINT_PLACEHOLDER in registry.files.read_text("/root/wg-client1.conf")
        assert report.follow_ups[0] == "WG_ENDPOINT was not set. Edit Endpoint in /root/wg-client1.conf."

    def test_endpoint_set(self, registry, tunnel_ctx):
        report = _run(registry, tunnel_ctx(WG_ENDPOINT="vpn.example.com"))
        assert "Endpoint = vpn.example.com:51820" in registry.files.read_text("/root/wg-client1.conf")
        assert not any("WG_ENDPOINT" in n for n in report.follow_ups)

    def test_summary(self, registry, tunnel_ctx):
        report = _run(registry, tunnel_ctx())
        assert report.summary["interface"] == "wg0"
        assert report.summary["listen_port"] == 51820
        assert report.summary["server_public_key"] == registry.files.read_text("/etc/wireguard/server.pub").strip()


class TestTunnelRerun:
    def test_keys_reused(self, registry, tunnel_ctx):
        _run(registry, tunnel_ctx())
        keys = registry.files.read_text("/etc/wireguard/server.key")

        report = _run(registry, tunnel_ctx())

        assert report.ok
        assert registry.files.read_text("/etc/wireguard/server.key") == keys
        assert report.outcomes[1].message == "already satisfied"

    def test_missing_public_key_regenerated_from_private(self, registry, tunnel_ctx):
        ctx = tunnel_ctx()
        GenerateKeysStep().apply(ctx)
        pub = registry.files.read_text("/etc/wireguard/client1.pub")
        registry.files.remove("/etc/wireguard/client1.pub")

        GenerateKeysStep().apply(ctx)

        assert registry.files.read_text("/etc/wireguard/client1.pub") == pub

    def test_server_config_not_overwritten(self, registry, tunnel_ctx):
        registry.files.write_text("/etc/wireguard/wg0.conf", "# hand edited\n", mode=0o600)
        report = _run(registry, tunnel_ctx())
        assert report.ok
        assert registry.files.read_text("/etc/wireguard/wg0.conf") == "# hand edited\n"
        assert report.outcomes[2].message == "already satisfied"

    def test_client_config_rewritten_on_change(self, registry, tunnel_ctx):
        _run(registry, tunnel_ctx())
        ctx = tunnel_ctx(WG_ENDPOINT="vpn.example.com")
        assert not WriteClientConfigStep().satisfied(ctx)

        _run(registry, ctx)

        assert "vpn.example.com" in registry.files.read_text("/root/wg-client1.conf")


class TestTunnelUseCase:
    def test_mock_run(self, tmp_path: Path):
        result = run_tunnel_setup(environ={}, mock_mode=True, audit_path=tmp_path / "audit.ndjson")
        assert result.ok
        assert result.report.profile == "wireguard-server"
        assert (tmp_path / "audit.ndjson").is_file()

    def test_requires_root(self):
        result = run_tunnel_setup(environ={}, euid=1000)
        assert not result.ok
        assert "root" in result.error

    def test_invalid_setting(self):
        result = run_tunnel_setup(environ={"WG_PORT": "nope"}, mock_mode=True)
        assert result.report is None
        assert "WG_PORT" in result.error
