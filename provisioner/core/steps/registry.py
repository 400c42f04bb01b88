"""
StepRegistry — resolves the ordered step list for a run.

A Profile bundles the ordered steps with the two profile-specific
pieces of reporting: the summary facts printed on success, and the
follow-up actions the operator still has to take.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from provisioner.core.documents.firewall import LEGACY_SSH_PORT
from provisioner.core.models.config import Configuration
from provisioner.core.steps.access import AuthorizedKeysStep, UserManagementStep
from provisioner.core.steps.base import Step, StepContext
from provisioner.core.steps.network import FirewallStep, MeshVpnStep
from provisioner.core.steps.sshd import HardenSshStep
from provisioner.core.steps.system import SetHostnameStep, UnattendedUpgradesStep, UpdatePackagesStep
from provisioner.core.steps.tunnel import (
    EnableTunnelStep,
    GenerateKeysStep,
    InstallWireGuardStep,
    WriteClientConfigStep,
    WriteServerConfigStep,
)

logger = logging.getLogger(__name__)

CLASSIC_PROFILE = "classic-user-management"
CLOUD_PROFILE = "cloud-managed-user"
TUNNEL_PROFILE = "wireguard-server"


def _no_follow_ups(ctx: StepContext) -> list[str]:
    return []


@dataclass(frozen=True)
class Profile:
    """Named, ordered step list plus its summary and follow-up builders."""

    name: str
    steps: tuple[Step, ...]
    summarize: Callable[[StepContext], dict[str, Any]]
    follow_ups: Callable[[StepContext], list[str]] = field(default=_no_follow_ups)

    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]


# ── Host profile reporting ───────────────────────────────────────────


def host_summary(ctx: StepContext) -> dict[str, Any]:
    config = ctx.config
    return {
        "hostname": config.hostname_short,
        "fqdns": list(ctx.facts.fqdns) if ctx.facts else [],
        "ssh_port": config.ssh_port,
        "user_mode": config.user_mode,
        "target_user": ctx.facts.target_user if ctx.facts else "",
        "key_source": config.key_source.describe(),
    }


def host_follow_ups(ctx: StepContext) -> list[str]:
    config = ctx.config
    notes = []
    if config.keep_legacy_port and config.ssh_port != LEGACY_SSH_PORT:
        notes.append(
            f"Port {LEGACY_SSH_PORT}/tcp is still allowed in the firewall. After confirming "
            f"SSH access on port {config.ssh_port}, set KEEP_SSH_PORT_22=false and re-run."
        )
    target = ctx.facts.target_user if ctx.facts else config.new_user
    notes.append(f"Test login in a new session: ssh -p {config.ssh_port} {target}@<host>")
    return notes


# ── Tunnel profile reporting ─────────────────────────────────────────


def tunnel_summary(ctx: StepContext) -> dict[str, Any]:
    t = ctx.config
    files = ctx.adapters.files
    server_public = files.read_text(t.server_pub_path).strip() if files.is_file(t.server_pub_path) else ""
    return {
        "interface": t.interface,
        "server_address": t.server_address,
        "listen_port": t.listen_port,
        "server_public_key": server_public,
        "client_config": t.client_config_path,
    }


def tunnel_follow_ups(ctx: StepContext) -> list[str]:
    t = ctx.config
    notes = []
    if not t.endpoint:
        notes.append(f"WG_ENDPOINT was not set. Edit Endpoint in {t.client_config_path}.")
    notes.append(f"Check status: wg show; systemctl status {t.service_unit} --no-pager")
    return notes


class StepRegistry:
    """Builds profiles. Steps are stateless, so fresh instances are cheap."""

    @staticmethod
    def host_steps() -> tuple[Step, ...]:
        return (
            UpdatePackagesStep(),
            SetHostnameStep(),
            MeshVpnStep(),
            UserManagementStep(),
            AuthorizedKeysStep(),
            FirewallStep(),
            HardenSshStep(),
            UnattendedUpgradesStep(),
        )

    @classmethod
    def resolve(cls, config: Configuration) -> Profile:
        name = CLASSIC_PROFILE if config.manage_user else CLOUD_PROFILE
        logger.debug("Resolved profile %s", name)
        return Profile(
            name=name,
            steps=cls.host_steps(),
            summarize=host_summary,
            follow_ups=host_follow_ups,
        )

    @staticmethod
    def tunnel() -> Profile:
        return Profile(
            name=TUNNEL_PROFILE,
            steps=(
                InstallWireGuardStep(),
                GenerateKeysStep(),
                WriteServerConfigStep(),
                EnableTunnelStep(),
                WriteClientConfigStep(),
            ),
            summarize=tunnel_summary,
            follow_ups=tunnel_follow_ups,
        )
