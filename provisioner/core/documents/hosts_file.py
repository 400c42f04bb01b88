"""
Hosts table document — ``/etc/hosts`` as an ordered list of lines.

Only the alias line is ever rewritten. Every other line (comments,
blank lines, IPv6 entries, cloud-provider entries) is kept verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field

LOOPBACK_ALIAS = "127.0.1.1"


@dataclass
class HostsFile:
    lines: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> HostsFile:
        return cls(lines=text.splitlines())

    def render(self) -> str:
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"

    def find(self, address: str) -> list[int]:
        """Indexes of lines whose first field is ``address``."""
        matches = []
        for index, line in enumerate(self.lines):
            fields = line.split()
            if fields and fields[0] == address:
                matches.append(index)
        return matches

    def names_for(self, address: str) -> list[str]:
        """Names of the first line mapping ``address``, empty if none."""
        matches = self.find(address)
        if not matches:
            return []
        return self.lines[matches[0]].split()[1:]

    def upsert(self, address: str, names: list[str]) -> bool:
        """Map ``address`` to ``names``.

        Existing lines for the address get their name list replaced;
        otherwise a new line is appended.

        Returns:
            True if the document changed.
        """
        entry = " ".join([address, *names])
        matches = self.find(address)
        if not matches:
            self.lines.append(entry)
            return True

        changed = False
        for index in matches:
            if self.lines[index] != entry:
                self.lines[index] = entry
                changed = True
        return changed


def alias_names(fqdns: list[str] | tuple[str, ...], hostname_short: str) -> list[str]:
    """Names for the loopback alias line: every FQDN, then the short name."""
    return [*fqdns, hostname_short]
