"""
Configuration models — the immutable inputs of a provisioning run.

Built once by the ConfigResolver and passed explicitly to every
component. Nothing downstream reads the process environment.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GITHUB_KEYS_URL = "https://github.com/{user}.keys"


class KeySource(BaseModel):
    """Where the target user's authorized_keys content comes from.

    Exactly one source is active. Precedence when several settings are
    present: URL > GitHub user > local discovery.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["url", "github", "local"] = "local"
    value: str = ""

    @property
    def url(self) -> str | None:
        """Download URL for remote sources, None for local discovery."""
        if self.kind == "url":
            return self.value
        if self.kind == "github":
            return GITHUB_KEYS_URL.format(user=self.value)
        return None

    def describe(self) -> str:
        if self.kind == "url":
            return "URL"
        if self.kind == "github":
            return f"GitHub user {self.value}"
        return "local authorized_keys"


class Configuration(BaseModel):
    """All resolved settings of a host provisioning run."""

    model_config = ConfigDict(frozen=True)

    hostname_short: str
    mesh_auth_key: str = Field(repr=False, exclude=True)
    primary_domain: str = "example.com"
    extra_domains: tuple[str, ...] = ()

    manage_user: bool = False
    new_user: str = "superadmin"
    target_user: str = ""
    invoking_user: str | None = None   # SUDO_USER signal

    ssh_port: int = 22222
    keep_legacy_port: bool = True

    key_source: KeySource = Field(default_factory=KeySource)

    @property
    def user_mode(self) -> Literal["manage", "target-existing"]:
        return "manage" if self.manage_user else "target-existing"


class TunnelConfiguration(BaseModel):
    """Settings of the WireGuard point-to-point tunnel flow."""

    model_config = ConfigDict(frozen=True)

    interface: str = "wg0"
    listen_port: int = 51820
    server_address: str = "10.66.66.1/24"
    client_address: str = "10.66.66.2/32"
    client_allowed_ips: str = "10.66.66.1/32"   # split tunnel: server only
    endpoint: str = ""
    client_name: str = "client1"

    wireguard_dir: str = "/etc/wireguard"
    client_config_dir: str = "/root"

    @property
    def server_key_path(self) -> str:
        return f"{self.wireguard_dir}/server.key"

    @property
    def server_pub_path(self) -> str:
        return f"{self.wireguard_dir}/server.pub"

    @property
    def client_key_path(self) -> str:
        return f"{self.wireguard_dir}/{self.client_name}.key"

    @property
    def client_pub_path(self) -> str:
        return f"{self.wireguard_dir}/{self.client_name}.pub"

    @property
    def server_config_path(self) -> str:
        return f"{self.wireguard_dir}/{self.interface}.conf"

    @property
    def client_config_path(self) -> str:
        return f"{self.client_config_dir}/wg-{self.client_name}.conf"

    @property
    def service_unit(self) -> str:
        return f"wg-quick@{self.interface}"
