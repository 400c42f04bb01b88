"""UFW firewall adapter."""

from __future__ import annotations

import logging
import shutil

from provisioner.adapters.base import CommandRunner, Firewall
from provisioner.core.documents.firewall import FirewallRuleSet

logger = logging.getLogger(__name__)


class UfwFirewall(Firewall):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("ufw") is not None

    def _ufw(self, *args: str) -> str:
        return self._runner.run(["ufw", *args]).check("ufw").stdout

    def apply_rules(self, rules: FirewallRuleSet) -> None:
        self._ufw("--force", "reset")
        self._ufw("default", rules.default_incoming, "incoming")
        self._ufw("default", rules.default_outgoing, "outgoing")
        for rule in rules.rules:
            logger.debug("ufw rule: %s", rule.label())
            self._ufw(*rule.ufw_args())
        self._ufw("--force", "enable")

    def status(self) -> str:
        return self._ufw("status", "verbose")
