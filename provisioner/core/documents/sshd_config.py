"""
SSH daemon configuration documents.

Two shapes are handled:
    - the main ``sshd_config``, where we only ensure the drop-in
      ``Include`` line is present;
    - the hardening drop-in, an ordered set of ``Keyword value``
      directives rendered from configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

SSHD_CONFIG = "/etc/ssh/sshd_config"
SSHD_DROPIN_DIR = "/etc/ssh/sshd_config.d"
HARDENING_DROPIN = f"{SSHD_DROPIN_DIR}/99-hardening.conf"
INCLUDE_LINE = f"Include {SSHD_DROPIN_DIR}/*.conf"

_INCLUDE_RE = re.compile(r"^\s*Include\s+/etc/ssh/sshd_config\.d/\*\.conf\s*$")


@dataclass
class SshdMainConfig:
    lines: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> SshdMainConfig:
        return cls(lines=text.splitlines())

    def render(self) -> str:
        return "\n".join(self.lines) + "\n" if self.lines else ""

    def has_dropin_include(self) -> bool:
        return any(_INCLUDE_RE.match(line) for line in self.lines)

    def ensure_dropin_include(self) -> bool:
        """Append the drop-in Include line when missing. True if changed."""
        if self.has_dropin_include():
            return False
        self.lines.extend(["", INCLUDE_LINE])
        return True


@dataclass
class SshdDirectives:
    """Ordered ``Keyword value`` pairs. Keywords are case-insensitive."""

    entries: list[tuple[str, str]] = field(default_factory=list)

    def set(self, keyword: str, value: str | int) -> None:
        for index, (existing, _) in enumerate(self.entries):
            if existing.lower() == keyword.lower():
                self.entries[index] = (existing, str(value))
                return
        self.entries.append((keyword, str(value)))

    def get(self, keyword: str) -> str | None:
        for existing, value in self.entries:
            if existing.lower() == keyword.lower():
                return value
        return None

    def render(self) -> str:
        return "".join(f"{key} {value}\n" for key, value in self.entries)


def hardening_dropin(ssh_port: int) -> SshdDirectives:
    """Drop-in pinning the port and disabling root/password logins."""
    doc = SshdDirectives()
    doc.set("Port", ssh_port)
    doc.set("PermitRootLogin", "no")
    doc.set("MaxAuthTries", 2)
    doc.set("PermitEmptyPasswords", "no")
    doc.set("PasswordAuthentication", "no")
    doc.set("X11Forwarding", "no")
    doc.set("Compression", "delayed")
    doc.set("Protocol", 2)
    return doc
