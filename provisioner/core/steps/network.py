"""Network steps: mesh VPN agent and firewall."""

from __future__ import annotations

import logging

from provisioner.core.documents.firewall import build_rule_set
from provisioner.core.steps.base import Step, StepContext

logger = logging.getLogger(__name__)


class MeshVpnStep(Step):
    name = "Install & activate mesh VPN agent"

    def apply(self, ctx: StepContext) -> str:
        vpn = ctx.adapters.mesh_vpn
        if vpn.installed():
            logger.info("Tailscale already installed")
        else:
            logger.info("Installing Tailscale")
            vpn.install()
        vpn.up(ctx.config.mesh_auth_key, ctx.config.hostname_short)
        return f"up as {ctx.config.hostname_short}"

    def verify(self, ctx: StepContext) -> bool:
        return ctx.adapters.mesh_vpn.is_up()


class FirewallStep(Step):
    """Reset ufw to a clean rule set. The SSH port rule precedes enable."""

    name = "Configure firewall"

    def apply(self, ctx: StepContext) -> str:
        rules = build_rule_set(ctx.config)
        ctx.adapters.firewall.apply_rules(rules)
        logger.debug("Firewall status:\n%s", ctx.adapters.firewall.status())
        return "allow " + ", ".join(rule.label() for rule in rules.rules)

    def verify(self, ctx: StepContext) -> bool:
        status = ctx.adapters.firewall.status()
        return "Status: active" in status and f"{ctx.config.ssh_port}/tcp" in status
