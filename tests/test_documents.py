"""
Tests for config documents — hosts, sshd, sudoers, keys, firewall, WireGuard.
"""

import pytest

from provisioner.core.documents.authorized_keys import recognized_keys, validate_authorized_keys
from provisioner.core.documents.firewall import MESH_INTERFACE, build_rule_set
from provisioner.core.documents.hosts_file import LOOPBACK_ALIAS, HostsFile, alias_names
from provisioner.core.documents.sshd_config import (
    INCLUDE_LINE,
    SshdDirectives,
    SshdMainConfig,
    hardening_dropin,
)
from provisioner.core.documents.sudoers import grant_path, render_grant, staging_path
from provisioner.core.documents.wireguard import (
    ENDPOINT_PLACEHOLDER,
    client_config,
    server_config,
)
from provisioner.core.errors import InvalidKeyDataError
from provisioner.core.models.config import TunnelConfiguration

HOSTS = "127.0.0.1 localhost\n# cloud entry\n10.0.0.5 metadata\n::1 ip6-localhost\n"


class TestHostsFile:
    def test_append_when_missing(self):
        doc = HostsFile.parse(HOSTS)
        assert doc.upsert(LOOPBACK_ALIAS, ["web1.example.com", "web1"]) is True
        assert doc.render() == HOSTS + "127.0.1.1 web1.example.com web1\n"

    def test_replace_existing_line(self):
        doc = HostsFile.parse("127.0.0.1 localhost\n127.0.1.1 ubuntu\n::1 ip6-localhost\n")
        doc.upsert(LOOPBACK_ALIAS, ["web1.example.com", "web1"])
        assert doc.render() == "127.0.0.1 localhost\n127.0.1.1 web1.example.com web1\n::1 ip6-localhost\n"

    def test_upsert_idempotent(self):
        doc = HostsFile.parse(HOSTS)
        doc.upsert(LOOPBACK_ALIAS, ["a", "b"])
        once = doc.render()
        assert doc.upsert(LOOPBACK_ALIAS, ["a", "b"]) is False
        assert doc.render() == once

    def test_unrelated_lines_preserved(self):
        doc = HostsFile.parse(HOSTS)
        doc.upsert(LOOPBACK_ALIAS, ["x"])
        for line in HOSTS.splitlines():
            assert line in doc.lines

    def test_address_prefix_does_not_match(self):
        doc = HostsFile.parse("127.0.1.10 other\n")
        assert doc.find(LOOPBACK_ALIAS) == []

    def test_names_for(self):
        doc = HostsFile.parse("127.0.1.1   a.example.com  a\n")
        assert doc.names_for(LOOPBACK_ALIAS) == ["a.example.com", "a"]

    def test_alias_names(self):
        assert alias_names(("web1.example.com", "web1.a.io"), "web1") == [
            "web1.example.com",
            "web1.a.io",
            "web1",
        ]


class TestSshdConfig:
    def test_include_appended_once(self):
        doc = SshdMainConfig.parse("Port 22\n")
        assert doc.ensure_dropin_include() is True
        assert doc.render() == f"Port 22\n\n{INCLUDE_LINE}\n"
        assert doc.ensure_dropin_include() is False

    def test_existing_include_detected(self):
        doc = SshdMainConfig.parse(f"{INCLUDE_LINE}\nPort 22\n")
        assert doc.has_dropin_include()

    def test_commented_include_not_detected(self):
        doc = SshdMainConfig.parse(f"# {INCLUDE_LINE}\n")
        assert not doc.has_dropin_include()

    def test_directives_case_insensitive(self):
        doc = SshdDirectives()
        doc.set("Port", 22)
        doc.set("port", 2222)
        assert doc.get("PORT") == "2222"
        assert doc.render() == "Port 2222\n"

    def test_hardening_dropin(self):
        text = hardening_dropin(22222).render()
        assert text.splitlines() == [
            "Port 22222",
            "PermitRootLogin no",
            "MaxAuthTries 2",
            "PermitEmptyPasswords no",
            "PasswordAuthentication no",
            "X11Forwarding no",
            "Compression delayed",
            "Protocol 2",
        ]


class TestSudoers:
    def test_paths(self):
        assert grant_path("admin") == "/etc/sudoers.d/90-admin-nopasswd"
        # dotted names are ignored by sudo's includedir
        assert "." in staging_path("admin").rsplit("/", 1)[1]

    def test_grant(self):
        assert render_grant("admin") == "admin ALL=(ALL) NOPASSWD:ALL\n"


class TestAuthorizedKeys:
    @pytest.mark.parametrize(
        "line",
        [
            "ssh-rsa AAAAB3Nza user@host",
            "ssh-ed25519 AAAAC3Nza user@host",
            "ecdsa-sha2-nistp256 AAAAE2Vj",
            "ecdsa-sha2-nistp384 AAAAE2Vj",
            "ecdsa-sha2-nistp521 AAAAE2Vj",
        ],
    )
    def test_recognized(self, line):
        assert validate_authorized_keys(line + "\n") == 1

    def test_comments_and_blanks_allowed(self):
        text = "# team keys\n\nssh-ed25519 AAAA a\n# old\nssh-rsa BBBB b\n"
        assert validate_authorized_keys(text) == 2

    @pytest.mark.parametrize(
        "text",
        ["", "\n\n", "# only comments\n", "<html>Not Found</html>", "ssh-dss AAAA x\n", "ssh-ed25519\n"],
    )
    def test_rejects_without_key_lines(self, text):
        with pytest.raises(InvalidKeyDataError):
            validate_authorized_keys(text, "URL")

    def test_leading_whitespace_not_recognized(self):
        assert recognized_keys("  ssh-ed25519 AAAA\n") == []


class TestFirewallRuleSet:
    def test_default_order(self, make_config):
        rules = build_rule_set(make_config())
        assert [r.label() for r in rules.rules] == ["22/tcp", "22222/tcp", f"in on {MESH_INTERFACE}"]
        assert rules.default_incoming == "deny"
        assert rules.default_outgoing == "allow"

    def test_legacy_port_dropped(self, make_config):
        rules = build_rule_set(make_config(KEEP_SSH_PORT_22="false"))
        assert not rules.allows_port(22)
        assert rules.allows_port(22222)

    @pytest.mark.parametrize("port", ["22", "2222", "65535"])
    @pytest.mark.parametrize("keep", ["true", "false"])
    def test_ssh_port_always_allowed(self, make_config, port, keep):
        rules = build_rule_set(make_config(SSH_PORT=port, KEEP_SSH_PORT_22=keep))
        assert rules.allows_port(int(port))

    def test_ufw_args(self, make_config):
        rules = build_rule_set(make_config(KEEP_SSH_PORT_22="false"))
        assert rules.rules[0].ufw_args() == ["allow", "22222/tcp"]
        assert rules.rules[1].ufw_args() == ["allow", "in", "on", "tailscale0"]


class TestWireGuardDocuments:
    def test_server_config(self):
        doc = server_config(TunnelConfiguration(), "SERVER_PRIV", "CLIENT_PUB")
        interface = doc.find("Interface")
        peer = doc.find("Peer")
        assert interface.get("Address") == "10.66.66.1/24"
        assert interface.get("ListenPort") == "51820"
        assert interface.get("PrivateKey") == "SERVER_PRIV"
        assert peer.get("PublicKey") == "CLIENT_PUB"
        assert peer.get("AllowedIPs") == "10.66.66.2/32"

    def test_client_config_placeholder(self):
        text = client_config(TunnelConfiguration(), "CLIENT_PRIV", "SERVER_PUB").render()
        assert f"Endpoint = {ENDPOINT_PLACEHOLDER}:51820" in text
        assert "AllowedIPs = 10.66.66.1/32" in text
        assert "PersistentKeepalive = 25" in text

    def test_client_config_endpoint(self):
        tunnel = TunnelConfiguration(endpoint="vpn.example.com", listen_port=4000)
        peer = client_config(tunnel, "P", "S").find("Peer")
        assert peer.get("Endpoint") == "vpn.example.com:4000"

    def test_render_sections(self):
        text = server_config(TunnelConfiguration(), "a", "b").render()
        assert text.startswith("[Interface]\n")
        assert "\n\n[Peer]\n" in text
        assert text.endswith("\n")
