"""
Tailscale mesh VPN adapter.

Installation uses the vendor install script. ``tailscale up`` on an
interface that is already up re-applies the settings and exits zero.
"""

from __future__ import annotations

from provisioner.adapters.base import CommandRunner, MeshVpn

INSTALL_SCRIPT_URL = "https://tailscale.com/install.sh"


class TailscaleVpn(MeshVpn):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return self._runner.which("tailscale") or self._runner.which("curl")

    def installed(self) -> bool:
        return self._runner.which("tailscale")

    def install(self) -> None:
        self._runner.run(
            ["sh", "-c", f"curl -fsSL {INSTALL_SCRIPT_URL} | sh"],
        ).check("tailscale-install")

    def up(self, auth_key: str, hostname: str) -> None:
        result = self._runner.run(
            ["tailscale", "up", f"--authkey={auth_key}", f"--hostname={hostname}"],
        )
        if not result.ok:
            # keep the auth key out of the failure report
            result = result.model_copy(
                update={"argv": ["tailscale", "up", "--authkey=***", f"--hostname={hostname}"]}
            )
        result.check("tailscale")

    def is_up(self) -> bool:
        return self._runner.run(["tailscale", "status"]).ok
