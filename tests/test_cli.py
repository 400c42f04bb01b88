"""
Tests for CLI commands — run, plan, facts, config check, adapters, tunnel.
"""

import json
import textwrap
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from provisioner import main as main_module
from provisioner.main import cli

ENV = {
    "HOSTNAME_SHORT": "web1",
    "TS_AUTHKEY": "tskey-auth-secret",
    "MANAGE_USER": "true",
    "NEW_USER": "superadmin",
    "GITHUB_KEYS_USER": "octocat",
}


def _invoke(args, env=None):
    runner = CliRunner()
    return runner.invoke(cli, args, env=ENV if env is None else env)


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = _invoke(["--help"])
        assert result.exit_code == 0
        assert "Host Provisioner" in result.output
        for command in ("run", "plan", "facts", "config", "adapters", "tunnel"):
            assert command in result.output

    def test_version(self):
        result = _invoke(["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_main_interrupted_exits_130(self, monkeypatch):
        def interrupted(*args, **kwargs):
            raise click.exceptions.Abort()

        monkeypatch.setattr(main_module.cli, "main", interrupted)
        with pytest.raises(SystemExit) as exc_info:
            main_module.main()
        assert exc_info.value.code == 130


class TestRunCommand:
    def test_mock_run(self):
        result = _invoke(["run", "--mock"])
        assert result.exit_code == 0, result.output
        assert "Provisioning complete (classic-user-management)" in result.output
        assert "web1.example.com" in result.output
        assert "KEEP_SSH_PORT_22=false" in result.output

    def test_dry_run_json(self):
        result = _invoke(["--quiet", "run", "--dry-run", "--mock", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["status"] == "success"
        assert data["dry_run"] is True
        assert len(data["outcomes"]) == 8
        assert all(o["status"] == "skipped" for o in data["outcomes"])

    def test_non_root_real_run_refused(self, monkeypatch):
        monkeypatch.setattr("os.geteuid", lambda: 1000)
        result = _invoke(["run"])
        assert result.exit_code == 1
        assert "Run as root" in result.output

    def test_missing_setting(self):
        env = dict(ENV, HOSTNAME_SHORT="")
        result = _invoke(["run", "--mock"], env=env)
        assert result.exit_code == 1
        assert "HOSTNAME_SHORT is required" in result.output

    def test_audit_log(self, tmp_path: Path):
        ledger = tmp_path / "audit.ndjson"
        result = _invoke(["--quiet", "run", "--mock", "--audit-log", str(ledger)])
        assert result.exit_code == 0, result.output
        entry = json.loads(ledger.read_text().splitlines()[0])
        assert entry["status"] == "success"
        assert entry["hostname"] == "web1"


class TestPlanCommand:
    def test_plan(self):
        result = _invoke(["plan"])
        assert result.exit_code == 0
        assert "classic-user-management" in result.output
        assert "8. Enable unattended security upgrades" in result.output

    def test_plan_json_cloud(self):
        env = dict(ENV, MANAGE_USER="false", TARGET_USER="ubuntu")
        result = _invoke(["--quiet", "plan", "--json"], env=env)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["profile"] == "cloud-managed-user"
        assert data["steps"][3] == {"ordinal": 4, "name": "User management"}
        assert "mesh_auth_key" not in data["config"]


class TestFactsCommand:
    def test_mock_facts(self):
        result = _invoke(["facts", "--mock"])
        assert result.exit_code == 0
        assert "superadmin" in result.output
        assert "(not created yet)" in result.output

    def test_json(self):
        result = _invoke(["--quiet", "facts", "--mock", "--json"])
        data = json.loads(result.stdout)
        assert data["fqdns"] == ["web1.example.com"]
        assert data["local_keys_file"] == "/root/.ssh/authorized_keys"


class TestConfigCheckCommand:
    def test_valid(self):
        result = _invoke(["config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "GitHub user octocat" in result.output

    def test_invalid(self):
        result = _invoke(["config", "check"], env=dict(ENV, SSH_PORT="0"))
        assert result.exit_code == 1
        assert "SSH_PORT" in result.output

    def test_warnings_json(self):
        env = dict(ENV, AUTHORIZED_KEYS_URL="https://keys.example.com/team")
        result = _invoke(["--quiet", "config", "check", "--json"], env=env)
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert any("the URL wins" in w for w in data["warnings"])

    def test_settings_file(self, tmp_path: Path):
        path = tmp_path / "host.yml"
        path.write_text(textwrap.dedent("""\
            HOSTNAME_SHORT: db1
            TS_AUTHKEY: tskey-from-file
            MANAGE_USER: false
            TARGET_USER: ubuntu
        """))
        result = _invoke(["--env-file", str(path), "config", "check"], env={})
        assert result.exit_code == 0, result.output
        assert "db1.example.com" in result.output
        assert "target-existing" in result.output


class TestAdaptersCommand:
    def test_mock_adapters(self):
        result = _invoke(["adapters", "--mock", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["files"]["type"] == "MemoryFileSystem"
        assert data["wireguard"]["available"] is True


class TestTunnelCommand:
    def test_mock_setup(self):
        result = _invoke(["tunnel", "setup", "--mock"], env={})
        assert result.exit_code == 0, result.output
        assert "Provisioning complete (wireguard-server)" in result.output
        assert "WG_ENDPOINT was not set" in result.output

    def test_json(self):
        result = _invoke(["--quiet", "tunnel", "setup", "--mock", "--json"], env={"WG_ENDPOINT": "vpn.example.com"})
        data = json.loads(result.stdout)
        assert data["profile"] == "wireguard-server"
        assert data["summary"]["listen_port"] == 51820
