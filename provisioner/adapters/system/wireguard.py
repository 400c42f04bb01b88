"""WireGuard ``wg`` key tool adapter."""

from __future__ import annotations

from provisioner.adapters.base import CommandRunner, WireGuardTool


class WgTool(WireGuardTool):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return self._runner.which("wg")

    def genkey(self) -> str:
        return self._runner.run(["wg", "genkey"]).check("wg").stdout.strip()

    def pubkey(self, private_key: str) -> str:
        result = self._runner.run(["wg", "pubkey"], input_text=private_key.strip() + "\n")
        return result.check("wg").stdout.strip()
