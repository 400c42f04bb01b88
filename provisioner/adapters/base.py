"""
Adapter base — the capability contracts between steps and the host.

Steps never shell out or touch the filesystem themselves. They go
through these narrow interfaces, which have a real implementation under
``provisioner.adapters.system`` and an in-memory fake under
``provisioner.adapters.mock``.

Error contract:
    - CommandRunner.run() NEVER raises; failures come back in the
      CommandResult.
    - Capability methods that perform changes raise ExternalToolError
      when the underlying tool fails.
    - Query methods (exists, installed, ...) answer False instead of
      raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from provisioner.core.models.command import CommandResult

if TYPE_CHECKING:
    from provisioner.core.documents.firewall import FirewallRuleSet


class Adapter(ABC):
    """Abstract base class for all adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'packages', 'firewall')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool exists. Fast, never raises."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class CommandRunner(Adapter):
    """Runs external programs and captures their output."""

    @property
    def name(self) -> str:
        return "runner"

    @abstractmethod
    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run ``argv`` to completion. MUST never raise."""

    @abstractmethod
    def which(self, program: str) -> bool:
        """Whether ``program`` is on PATH."""


class FileSystem(Adapter):
    """Host filesystem operations used by steps."""

    @property
    def name(self) -> str:
        return "files"

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def is_file(self, path: str) -> bool: ...

    @abstractmethod
    def read_text(self, path: str) -> str: ...

    @abstractmethod
    def write_text(self, path: str, content: str, mode: int | None = None) -> None:
        """Write ``content``; when ``mode`` is given the file never exists with a wider one."""

    @abstractmethod
    def mkdir(self, path: str, mode: int | None = None) -> None:
        """Create ``path`` and parents; apply ``mode`` to the leaf."""

    @abstractmethod
    def copy(self, src: str, dst: str) -> None:
        """Copy preserving mode and timestamps."""

    @abstractmethod
    def replace(self, src: str, dst: str) -> None:
        """Atomically move ``src`` over ``dst``."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file; missing files are ignored."""

    @abstractmethod
    def chmod(self, path: str, mode: int) -> None: ...

    @abstractmethod
    def chown(self, path: str, user: str, group: str | None = None, recursive: bool = False) -> None: ...

    @abstractmethod
    def mode_of(self, path: str) -> int | None:
        """Permission bits of ``path``, None if missing."""


class PackageManager(Adapter):
    @property
    def name(self) -> str:
        return "packages"

    @abstractmethod
    def update_and_upgrade(self) -> None: ...

    @abstractmethod
    def install(self, packages: list[str]) -> None: ...

    @abstractmethod
    def update_index(self) -> None: ...


class HostnameControl(Adapter):
    @property
    def name(self) -> str:
        return "hostname"

    @abstractmethod
    def set_hostname(self, hostname: str) -> None: ...


class MeshVpn(Adapter):
    @property
    def name(self) -> str:
        return "mesh_vpn"

    @abstractmethod
    def installed(self) -> bool: ...

    @abstractmethod
    def install(self) -> None: ...

    @abstractmethod
    def up(self, auth_key: str, hostname: str) -> None:
        """Bring the interface up. Safe to call on an interface that is already up."""

    @abstractmethod
    def is_up(self) -> bool: ...


class UserAccounts(Adapter):
    @property
    def name(self) -> str:
        return "accounts"

    @abstractmethod
    def exists(self, user: str) -> bool: ...

    @abstractmethod
    def create(self, user: str) -> None:
        """Create a user with a disabled password."""

    @abstractmethod
    def groups(self, user: str) -> list[str]: ...

    @abstractmethod
    def add_to_group(self, user: str, group: str) -> None: ...

    @abstractmethod
    def home_of(self, user: str) -> str | None:
        """Home directory from the passwd database, None if unknown."""

    @abstractmethod
    def check_sudoers(self, path: str) -> None:
        """Syntax-check a sudoers file. Raises ExternalToolError when invalid."""


class Firewall(Adapter):
    @property
    def name(self) -> str:
        return "firewall"

    @abstractmethod
    def apply_rules(self, rules: FirewallRuleSet) -> None:
        """Reset, set defaults, add every rule, then enable."""

    @abstractmethod
    def status(self) -> str: ...


class SshDaemon(Adapter):
    @property
    def name(self) -> str:
        return "sshd"

    @abstractmethod
    def check_config(self) -> None:
        """Validate the merged configuration. Raises ExternalToolError."""

    @abstractmethod
    def reload(self) -> None: ...


class ServiceManager(Adapter):
    @property
    def name(self) -> str:
        return "services"

    @abstractmethod
    def enable_now(self, unit: str) -> None: ...

    @abstractmethod
    def is_active(self, unit: str) -> bool: ...


class KeyFetcher(Adapter):
    @property
    def name(self) -> str:
        return "keys"

    @abstractmethod
    def fetch(self, url: str) -> str:
        """Download text. Raises ExternalToolError on any failure."""


class WireGuardTool(Adapter):
    @property
    def name(self) -> str:
        return "wireguard"

    @abstractmethod
    def genkey(self) -> str: ...

    @abstractmethod
    def pubkey(self, private_key: str) -> str: ...
