"""
User account adapter — passwd lookups and adduser/usermod/visudo.

Lookups go through the ``pwd``/``grp`` databases; changes go through
the Debian account tools.
"""

from __future__ import annotations

import grp
import pwd
import shutil

from provisioner.adapters.base import CommandRunner, UserAccounts


class DebianUserAccounts(UserAccounts):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("adduser") is not None and shutil.which("visudo") is not None

    def exists(self, user: str) -> bool:
        try:
            pwd.getpwnam(user)
        except KeyError:
            return False
        return True

    def create(self, user: str) -> None:
        self._runner.run(["adduser", "--disabled-password", "--gecos", "", user]).check("adduser")

    def groups(self, user: str) -> list[str]:
        try:
            primary = grp.getgrgid(pwd.getpwnam(user).pw_gid).gr_name
        except KeyError:
            return []
        names = [g.gr_name for g in grp.getgrall() if user in g.gr_mem]
        return [primary, *names]

    def add_to_group(self, user: str, group: str) -> None:
        self._runner.run(["usermod", "-aG", group, user]).check("usermod")

    def home_of(self, user: str) -> str | None:
        try:
            home = pwd.getpwnam(user).pw_dir
        except KeyError:
            return None
        return home or None

    def check_sudoers(self, path: str) -> None:
        self._runner.run(["visudo", "-cf", path]).check("visudo")
