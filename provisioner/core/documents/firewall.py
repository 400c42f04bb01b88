"""
Firewall rule set — the ordered ufw state derived from configuration.

The set is applied as: reset, defaults, rules in order, enable. The
configured SSH port is always among the rules, so it is in place before
the firewall is switched on.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from provisioner.core.models.config import Configuration

LEGACY_SSH_PORT = 22
MESH_INTERFACE = "tailscale0"


@dataclass(frozen=True)
class FirewallRule:
    """A single ``allow`` rule: a port/protocol or an inbound interface."""

    port: int | None = None
    proto: str = "tcp"
    interface: str | None = None
    comment: str = ""

    def ufw_args(self) -> list[str]:
        if self.interface:
            return ["allow", "in", "on", self.interface]
        return ["allow", f"{self.port}/{self.proto}"]

    def label(self) -> str:
        if self.interface:
            return f"in on {self.interface}"
        return f"{self.port}/{self.proto}"


@dataclass
class FirewallRuleSet:
    default_incoming: str = "deny"
    default_outgoing: str = "allow"
    rules: list[FirewallRule] = field(default_factory=list)

    def allows_port(self, port: int, proto: str = "tcp") -> bool:
        return any(r.port == port and r.proto == proto for r in self.rules)


def build_rule_set(config: Configuration) -> FirewallRuleSet:
    rules = []
    if config.keep_legacy_port and config.ssh_port != LEGACY_SSH_PORT:
        rules.append(FirewallRule(port=LEGACY_SSH_PORT, comment="legacy ssh"))
    rules.append(FirewallRule(port=config.ssh_port, comment="ssh"))
    rules.append(FirewallRule(interface=MESH_INTERFACE, comment="mesh vpn"))
    return FirewallRuleSet(rules=rules)
