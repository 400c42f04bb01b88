"""
Adapter registry — the single point of adapter lookup.

Steps never construct adapters. They ask the registry for a capability
by name, which lets a run swap the whole host for in-memory fakes
(``--mock``) without any step noticing.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from provisioner.adapters.base import (
    Adapter,
    CommandRunner,
    FileSystem,
    Firewall,
    HostnameControl,
    KeyFetcher,
    MeshVpn,
    PackageManager,
    ServiceManager,
    SshDaemon,
    UserAccounts,
    WireGuardTool,
)

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=Adapter)


class AdapterNotRegistered(LookupError):
    """A step asked for a capability nobody registered."""


class AdapterRegistry:
    """Central registry of host capabilities.

    Features:
        - Register/unregister adapters by name
        - Typed accessors for each capability
        - Query adapter availability
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters.keys())

    def require(self, name: str, kind: type[A]) -> A:
        adapter = self._adapters.get(name)
        if adapter is None:
            raise AdapterNotRegistered(f"No adapter registered for '{name}'")
        if not isinstance(adapter, kind):
            raise AdapterNotRegistered(
                f"Adapter '{name}' is a {type(adapter).__name__}, expected {kind.__name__}"
            )
        return adapter

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Get availability status of all registered adapters."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status

    # ── Typed accessors ──────────────────────────────────────────

    @property
    def runner(self) -> CommandRunner:
        return self.require("runner", CommandRunner)

    @property
    def files(self) -> FileSystem:
        return self.require("files", FileSystem)

    @property
    def packages(self) -> PackageManager:
        return self.require("packages", PackageManager)

    @property
    def hostname(self) -> HostnameControl:
        return self.require("hostname", HostnameControl)

    @property
    def mesh_vpn(self) -> MeshVpn:
        return self.require("mesh_vpn", MeshVpn)

    @property
    def accounts(self) -> UserAccounts:
        return self.require("accounts", UserAccounts)

    @property
    def firewall(self) -> Firewall:
        return self.require("firewall", Firewall)

    @property
    def sshd(self) -> SshDaemon:
        return self.require("sshd", SshDaemon)

    @property
    def services(self) -> ServiceManager:
        return self.require("services", ServiceManager)

    @property
    def keys(self) -> KeyFetcher:
        return self.require("keys", KeyFetcher)

    @property
    def wireguard(self) -> WireGuardTool:
        return self.require("wireguard", WireGuardTool)


def build_system_registry() -> AdapterRegistry:
    """Registry wired to the real host tools."""
    from provisioner.adapters.system.accounts import DebianUserAccounts
    from provisioner.adapters.system.apt import AptPackageManager
    from provisioner.adapters.system.filesystem import LocalFileSystem
    from provisioner.adapters.system.http import UrllibKeyFetcher
    from provisioner.adapters.system.runner import SubprocessRunner
    from provisioner.adapters.system.services import (
        HostnamectlControl,
        OpenSshDaemon,
        SystemdServiceManager,
    )
    from provisioner.adapters.system.tailscale import TailscaleVpn
    from provisioner.adapters.system.ufw import UfwFirewall
    from provisioner.adapters.system.wireguard import WgTool

    runner = SubprocessRunner()
    registry = AdapterRegistry()
    registry.register(runner)
    registry.register(LocalFileSystem())
    registry.register(AptPackageManager(runner))
    registry.register(HostnamectlControl(runner))
    registry.register(TailscaleVpn(runner))
    registry.register(DebianUserAccounts(runner))
    registry.register(UfwFirewall(runner))
    registry.register(OpenSshDaemon(runner))
    registry.register(SystemdServiceManager(runner))
    registry.register(UrllibKeyFetcher())
    registry.register(WgTool(runner))
    return registry


SAMPLE_PUBLIC_KEY = (
    "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIMockKeyMaterialForSimulatedRunsOnly0000 operator@mock"
)

DEFAULT_HOSTS = "127.0.0.1 localhost\n::1 ip6-localhost ip6-loopback\n"
DEFAULT_SSHD_CONFIG = "Port 22\nPermitRootLogin prohibit-password\n"


def build_mock_registry(
    files: dict[str, str] | None = None,
    users: dict[str, str] | None = None,
) -> AdapterRegistry:
    """Registry wired to in-memory fakes seeded like a fresh Ubuntu host."""
    from provisioner.adapters.mock import (
        EventLog,
        FakeFirewall,
        FakeHostname,
        FakeMeshVpn,
        FakePackageManager,
        FakeServiceManager,
        FakeSshDaemon,
        FakeUserAccounts,
        FakeWireGuardTool,
        MemoryFileSystem,
        MockRunner,
        StaticKeyFetcher,
    )

    seed = {
        "/etc/hosts": DEFAULT_HOSTS,
        "/etc/hostname": "ubuntu\n",
        "/etc/ssh/sshd_config": DEFAULT_SSHD_CONFIG,
    }
    seed.update(files or {})

    events = EventLog()
    fs = MemoryFileSystem(seed)
    registry = AdapterRegistry(mock_mode=True)
    registry.register(MockRunner())
    registry.register(fs)
    registry.register(FakePackageManager(events))
    registry.register(FakeHostname(fs, events))
    registry.register(FakeMeshVpn(events))
    registry.register(FakeUserAccounts(fs, users, events))
    registry.register(FakeFirewall(events))
    registry.register(FakeSshDaemon(events))
    registry.register(FakeServiceManager(events))
    registry.register(StaticKeyFetcher(default=SAMPLE_PUBLIC_KEY + "\n", events=events))
    registry.register(FakeWireGuardTool(events))
    return registry
