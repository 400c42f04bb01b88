"""
WireGuard configuration documents for the point-to-point tunnel.

Both ends are rendered as INI-style sections. Comments are kept as
entries with a ``None`` value so they land where they were added.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from provisioner.core.models.config import TunnelConfiguration

ENDPOINT_PLACEHOLDER = "CHANGE_ME_TO_PUBLIC_DNS_OR_IP"
PERSISTENT_KEEPALIVE = 25


@dataclass
class Section:
    name: str
    entries: list[tuple[str, str | None]] = field(default_factory=list)

    def add(self, key: str, value: str | int) -> Section:
        self.entries.append((key, str(value)))
        return self

    def comment(self, text: str) -> Section:
        self.entries.append((f"# {text}", None))
        return self

    def blank(self) -> Section:
        self.entries.append(("", None))
        return self

    def get(self, key: str) -> str | None:
        for existing, value in self.entries:
            if existing == key:
                return value
        return None


@dataclass
class WireGuardConfig:
    sections: list[Section] = field(default_factory=list)

    def section(self, name: str) -> Section:
        sec = Section(name)
        self.sections.append(sec)
        return sec

    def find(self, name: str) -> Section | None:
        for sec in self.sections:
            if sec.name == name:
                return sec
        return None

    def render(self) -> str:
        blocks = []
        for sec in self.sections:
            lines = [f"[{sec.name}]"]
            for key, value in sec.entries:
                lines.append(key if value is None else f"{key} = {value}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks) + "\n"


def server_config(tunnel: TunnelConfiguration, server_private: str, client_public: str) -> WireGuardConfig:
    """Listening end: one interface, one permitted peer, no routing/NAT."""
    doc = WireGuardConfig()
    (
        doc.section("Interface")
        .add("Address", tunnel.server_address)
        .add("ListenPort", tunnel.listen_port)
        .add("PrivateKey", server_private)
        .blank()
        .comment("No routing/NAT enabled here.")
        .comment("Split tunnel: peers reach ONLY this server via its tunnel IP.")
    )
    doc.section("Peer").add("PublicKey", client_public).add("AllowedIPs", tunnel.client_address)
    return doc


def client_config(tunnel: TunnelConfiguration, client_private: str, server_public: str) -> WireGuardConfig:
    """Connecting end: routes only the server's tunnel address."""
    endpoint = tunnel.endpoint or ENDPOINT_PLACEHOLDER
    doc = WireGuardConfig()
    doc.section("Interface").add("PrivateKey", client_private).add("Address", tunnel.client_address)
    (
        doc.section("Peer")
        .add("PublicKey", server_public)
        .add("Endpoint", f"{endpoint}:{tunnel.listen_port}")
        .blank()
        .comment("Split tunnel: ONLY reach the server (its tunnel IP) through the tunnel.")
        .add("AllowedIPs", tunnel.client_allowed_ips)
        .blank()
        .comment("Keeps NAT mappings alive for clients behind NAT / mobile networks.")
        .add("PersistentKeepalive", PERSISTENT_KEEPALIVE)
    )
    return doc
