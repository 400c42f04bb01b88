"""
systemd-backed adapters: hostname, SSH daemon and generic services.
"""

from __future__ import annotations

import shutil

from provisioner.adapters.base import CommandRunner, HostnameControl, ServiceManager, SshDaemon


class HostnamectlControl(HostnameControl):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("hostnamectl") is not None

    def set_hostname(self, hostname: str) -> None:
        self._runner.run(["hostnamectl", "set-hostname", hostname]).check("hostnamectl")


class OpenSshDaemon(SshDaemon):
    """OpenSSH server. Reloads, never restarts, so live sessions survive."""

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("sshd") is not None

    def check_config(self) -> None:
        self._runner.run(["sshd", "-t"]).check("sshd")

    def reload(self) -> None:
        result = self._runner.run(["systemctl", "reload", "ssh"])
        if not result.ok:
            # hosts without systemd units for ssh
            self._runner.run(["service", "ssh", "reload"]).check("service")


class SystemdServiceManager(ServiceManager):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("systemctl") is not None

    def enable_now(self, unit: str) -> None:
        self._runner.run(["systemctl", "enable", "--now", unit]).check("systemctl")

    def is_active(self, unit: str) -> bool:
        return self._runner.run(["systemctl", "is-active", "--quiet", unit]).ok
