"""
Mock adapters — in-memory test doubles for every capability.

Used by the test-suite and by ``--mock`` runs to exercise the full step
sequence without touching the host. Every fake appends to a shared
event log so cross-adapter ordering can be asserted, and any method can
be told to fail with ``set_failure``.
"""

from __future__ import annotations

import hashlib
import posixpath
from typing import TYPE_CHECKING

from provisioner.adapters.base import (
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
from provisioner.core.errors import ExternalToolError
from provisioner.core.models.command import CommandResult

if TYPE_CHECKING:
    from provisioner.core.documents.firewall import FirewallRuleSet


class EventLog(list):
    """Ordered ``adapter:operation`` strings shared between fakes."""

    def of(self, adapter: str) -> list[str]:
        prefix = f"{adapter}:"
        return [e for e in self if e.startswith(prefix)]


class _FakeAdapter:
    """Shared bookkeeping: event recording and injected failures."""

    def __init__(self, events: EventLog | None = None):
        self.events = events if events is not None else EventLog()
        self._failures: dict[str, str] = {}

    def set_failure(self, operation: str, error: str = "Mock failure") -> None:
        """Make ``operation`` raise ExternalToolError from now on."""
        self._failures[operation] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, operation: str, detail: str = "") -> None:
        self.events.append(f"{self.name}:{operation}" + (f" {detail}" if detail else ""))
        if operation in self._failures:
            raise ExternalToolError(
                tool=self.name,
                argv=[self.name, operation],
                exit_code=1,
                stderr=self._failures[operation],
            )


# ── Command runner ───────────────────────────────────────────────────


class MockRunner(CommandRunner):
    """Records argv lists; answers from prefix-matched canned results."""

    def __init__(self, programs: set[str] | None = None, default_stdout: str = ""):
        self._programs = set(programs) if programs is not None else set()
        self._default_stdout = default_stdout
        self._responses: list[tuple[tuple[str, ...], CommandResult]] = []
        self._call_log: list[list[str]] = []
        self._inputs: list[str | None] = []

    def is_available(self) -> bool:
        return True

    @property
    def call_log(self) -> list[list[str]]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[str]:
        return [" ".join(argv) for argv in self._call_log]

    @property
    def inputs(self) -> list[str | None]:
        return self._inputs

    def add_program(self, program: str) -> None:
        self._programs.add(program)

    def which(self, program: str) -> bool:
        return program in self._programs

    def set_response(self, prefix: list[str], result: CommandResult) -> None:
        self._responses.append((tuple(prefix), result))

    def set_output(self, prefix: list[str], stdout: str) -> None:
        self.set_response(prefix, CommandResult(argv=list(prefix), stdout=stdout))

    def set_failure(self, prefix: list[str], returncode: int = 1, stderr: str = "Mock failure") -> None:
        self.set_response(prefix, CommandResult(argv=list(prefix), returncode=returncode, stderr=stderr))

    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        self._call_log.append(list(argv))
        self._inputs.append(input_text)

        best: CommandResult | None = None
        best_len = -1
        for prefix, result in self._responses:
            if tuple(argv[: len(prefix)]) == prefix and len(prefix) > best_len:
                best, best_len = result, len(prefix)

        if best is not None:
            return best.model_copy(update={"argv": list(argv)})
        return CommandResult.success(list(argv), stdout=self._default_stdout)

    def reset(self) -> None:
        self._call_log.clear()
        self._inputs.clear()
        self._responses.clear()


# ── Filesystem ───────────────────────────────────────────────────────


class MemoryFileSystem(FileSystem):
    """Dict-backed filesystem with modes and owners."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = {}
        self.modes: dict[str, int] = {}
        self.owners: dict[str, str] = {}
        self.dirs: set[str] = {"/"}
        for path, content in (files or {}).items():
            self.write_text(path, content)

    def _add_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent and parent not in self.dirs:
            self.dirs.add(parent)
            parent = posixpath.dirname(parent)

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def is_file(self, path: str) -> bool:
        return path in self.files

    def read_text(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write_text(self, path: str, content: str, mode: int | None = None) -> None:
        self._add_parents(path)
        self.files[path] = content
        if mode is not None:
            self.modes[path] = mode
        else:
            self.modes.setdefault(path, 0o644)

    def mkdir(self, path: str, mode: int | None = None) -> None:
        self._add_parents(path)
        self.dirs.add(path)
        if mode is not None:
            self.modes[path] = mode
        else:
            self.modes.setdefault(path, 0o755)

    def copy(self, src: str, dst: str) -> None:
        self.write_text(dst, self.read_text(src), mode=self.modes.get(src))

    def replace(self, src: str, dst: str) -> None:
        content = self.read_text(src)
        mode = self.modes.pop(src, None)
        del self.files[src]
        self.write_text(dst, content, mode=mode)

    def remove(self, path: str) -> None:
        self.files.pop(path, None)
        self.modes.pop(path, None)
        self.owners.pop(path, None)

    def chmod(self, path: str, mode: int) -> None:
        if not self.exists(path):
            raise FileNotFoundError(path)
        self.modes[path] = mode

    def chown(self, path: str, user: str, group: str | None = None, recursive: bool = False) -> None:
        if not self.exists(path):
            raise FileNotFoundError(path)
        owner = f"{user}:{group or user}"
        self.owners[path] = owner
        if recursive:
            prefix = path.rstrip("/") + "/"
            for other in [*self.files, *self.dirs]:
                if other.startswith(prefix):
                    self.owners[other] = owner

    def mode_of(self, path: str) -> int | None:
        if not self.exists(path):
            return None
        return self.modes.get(path)

    def backups_of(self, path: str) -> list[str]:
        return sorted(p for p in self.files if p.startswith(f"{path}.bak."))

    def snapshot(self) -> dict:
        """Observable state, ignoring timestamped backups."""
        files = {p: c for p, c in self.files.items() if ".bak." not in p}
        return {
            "files": files,
            "modes": {p: m for p, m in self.modes.items() if ".bak." not in p},
            "owners": dict(self.owners),
        }


# ── Capability fakes ─────────────────────────────────────────────────


class FakePackageManager(_FakeAdapter, PackageManager):
    def __init__(self, events: EventLog | None = None):
        super().__init__(events)
        self.installed: list[str] = []

    def is_available(self) -> bool:
        return True

    def update_index(self) -> None:
        self._record("update_index")

    def update_and_upgrade(self) -> None:
        self._record("update_and_upgrade")

    def install(self, packages: list[str]) -> None:
        self._record("install", " ".join(packages))
        for pkg in packages:
            if pkg not in self.installed:
                self.installed.append(pkg)


class FakeHostname(_FakeAdapter, HostnameControl):
    """Writes ``/etc/hostname`` like hostnamectl does."""

    def __init__(self, files: MemoryFileSystem, events: EventLog | None = None):
        super().__init__(events)
        self._files = files

    def is_available(self) -> bool:
        return True

    def set_hostname(self, hostname: str) -> None:
        self._record("set_hostname", hostname)
        self._files.write_text("/etc/hostname", hostname + "\n")


class FakeMeshVpn(_FakeAdapter, MeshVpn):
    def __init__(self, events: EventLog | None = None, installed: bool = False):
        super().__init__(events)
        self._installed = installed
        self._up = False
        self.hostname: str | None = None

    def is_available(self) -> bool:
        return True

    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        self._record("install")
        self._installed = True

    def up(self, auth_key: str, hostname: str) -> None:
        self._record("up", hostname)
        self._up = True
        self.hostname = hostname

    def is_up(self) -> bool:
        return self._up


class FakeUserAccounts(_FakeAdapter, UserAccounts):
    """Passwd database in a dict; creating a user creates its home."""

    def __init__(
        self,
        files: MemoryFileSystem,
        users: dict[str, str] | None = None,
        events: EventLog | None = None,
    ):
        super().__init__(events)
        self._files = files
        self.homes: dict[str, str] = dict(users) if users is not None else {"root": "/root"}
        self.memberships: dict[str, list[str]] = {u: [u] for u in self.homes}
        self.invalid_sudoers: set[str] = set()
        for home in self.homes.values():
            files.mkdir(home)

    def is_available(self) -> bool:
        return True

    def exists(self, user: str) -> bool:
        return user in self.homes

    def create(self, user: str) -> None:
        self._record("create", user)
        home = f"/home/{user}"
        self.homes[user] = home
        self.memberships[user] = [user]
        self._files.mkdir(home, mode=0o750)

    def groups(self, user: str) -> list[str]:
        return list(self.memberships.get(user, []))

    def add_to_group(self, user: str, group: str) -> None:
        self._record("add_to_group", f"{user} {group}")
        groups = self.memberships.setdefault(user, [user])
        if group not in groups:
            groups.append(group)

    def home_of(self, user: str) -> str | None:
        return self.homes.get(user)

    def check_sudoers(self, path: str) -> None:
        self._record("check_sudoers", path)
        if path in self.invalid_sudoers:
            raise ExternalToolError(
                tool="visudo",
                argv=["visudo", "-cf", path],
                exit_code=1,
                stderr=f"{path}: syntax error",
            )


class FakeFirewall(_FakeAdapter, Firewall):
    """Keeps the applied operations in order and renders a ufw-like status."""

    def __init__(self, events: EventLog | None = None):
        super().__init__(events)
        self.operations: list[str] = []
        self.active = False
        self.allowed: list[str] = []

    def is_available(self) -> bool:
        return True

    def _op(self, op: str) -> None:
        self.operations.append(op)
        operation, _, detail = op.partition(" ")
        self._record(operation, detail)

    def apply_rules(self, rules: FirewallRuleSet) -> None:
        self.operations.clear()
        self._op("reset")
        self.active = False
        self.allowed = []
        self._op(f"default {rules.default_incoming} incoming")
        self._op(f"default {rules.default_outgoing} outgoing")
        for rule in rules.rules:
            self._op(f"allow {rule.label()}")
            self.allowed.append(rule.label())
        self._op("enable")
        self.active = True

    def status(self) -> str:
        lines = [f"Status: {'active' if self.active else 'inactive'}", ""]
        lines.extend(f"{label:<26} ALLOW IN    Anywhere" for label in self.allowed)
        return "\n".join(lines) + "\n"


class FakeSshDaemon(_FakeAdapter, SshDaemon):
    def __init__(self, events: EventLog | None = None):
        super().__init__(events)
        self.reloads = 0

    def is_available(self) -> bool:
        return True

    def check_config(self) -> None:
        self._record("check_config")

    def reload(self) -> None:
        self._record("reload")
        self.reloads += 1


class FakeServiceManager(_FakeAdapter, ServiceManager):
    def __init__(self, events: EventLog | None = None):
        super().__init__(events)
        self.active: set[str] = set()

    def is_available(self) -> bool:
        return True

    def enable_now(self, unit: str) -> None:
        self._record("enable_now", unit)
        self.active.add(unit)

    def is_active(self, unit: str) -> bool:
        return unit in self.active


class StaticKeyFetcher(_FakeAdapter, KeyFetcher):
    """Serves canned bodies per URL; unknown URLs answer 404."""

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        default: str | None = None,
        events: EventLog | None = None,
    ):
        super().__init__(events)
        self.responses = dict(responses or {})
        self.default = default
        self.fetched: list[str] = []

    def is_available(self) -> bool:
        return True

    def fetch(self, url: str) -> str:
        self._record("fetch", url)
        self.fetched.append(url)
        if url in self.responses:
            return self.responses[url]
        if self.default is not None:
            return self.default
        raise ExternalToolError(tool="http", argv=["GET", url], exit_code=404, message="HTTP 404 Not Found")


class FakeWireGuardTool(_FakeAdapter, WireGuardTool):
    """Deterministic key material: every genkey call yields a new key."""

    def __init__(self, events: EventLog | None = None):
        super().__init__(events)
        self._counter = 0

    def is_available(self) -> bool:
        return True

    def genkey(self) -> str:
        self._record("genkey")
        self._counter += 1
        return hashlib.sha256(f"private-{self._counter}".encode()).hexdigest()[:43] + "="

    def pubkey(self, private_key: str) -> str:
        self._record("pubkey")
        return hashlib.sha256(f"public-{private_key}".encode()).hexdigest()[:43] + "="
