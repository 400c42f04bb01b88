"""
Host fact gathering — values derived from configuration and the host.

Facts are computed once, before the first step runs. Steps read them
and never write them back.
"""

from __future__ import annotations

import logging

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.config.resolver import SUPERUSER
from provisioner.core.errors import AmbiguousTargetUserError
from provisioner.core.models.config import Configuration
from provisioner.core.models.facts import HostFacts

logger = logging.getLogger(__name__)

SUPERUSER_HOME = "/root"


def build_fqdns(config: Configuration) -> list[str]:
    """Primary FQDN first, then one alias per extra domain, in input order.

    Extra domains are trimmed again here so hand-built configurations
    behave like resolved ones.
    """
    fqdns = [f"{config.hostname_short}.{config.primary_domain}"]
    for domain in config.extra_domains:
        domain = domain.strip()
        if not domain:
            continue
        fqdns.append(f"{config.hostname_short}.{domain}")
    return fqdns


def resolve_target_user(config: Configuration) -> str:
    """Account that receives the authorized keys.

    Raises:
        AmbiguousTargetUserError: user management is off, no explicit
            target is set, and the run was not started via sudo by a
            regular user.
    """
    if config.manage_user:
        return config.new_user
    if config.target_user:
        return config.target_user
    if config.invoking_user and config.invoking_user != SUPERUSER:
        return config.invoking_user
    raise AmbiguousTargetUserError(
        "TARGET_USER is empty and SUDO_USER is not set. "
        "Run via sudo or set TARGET_USER explicitly."
    )


class HostFactGatherer:
    """Computes HostFacts through the registry's accounts and files adapters."""

    def __init__(self, adapters: AdapterRegistry):
        self._adapters = adapters

    def discover_local_keys(self, config: Configuration) -> str | None:
        """First existing authorized_keys: invoking user's, then root's."""
        candidates = []
        invoking = config.invoking_user
        if invoking and invoking != SUPERUSER:
            home = self._adapters.accounts.home_of(invoking) or f"/home/{invoking}"
            candidates.append(f"{home}/.ssh/authorized_keys")
        root_home = self._adapters.accounts.home_of(SUPERUSER) or SUPERUSER_HOME
        candidates.append(f"{root_home}/.ssh/authorized_keys")

        for path in candidates:
            if self._adapters.files.is_file(path):
                return path
        return None

    def gather(self, config: Configuration) -> HostFacts:
        target_user = resolve_target_user(config)
        facts = HostFacts(
            fqdns=tuple(build_fqdns(config)),
            target_user=target_user,
            target_home=self._adapters.accounts.home_of(target_user),
            local_keys_file=self.discover_local_keys(config),
        )
        logger.debug(
            "Host facts: fqdns=%s user=%s home=%s local_keys=%s",
            ",".join(facts.fqdns),
            facts.target_user,
            facts.target_home,
            facts.local_keys_file,
        )
        return facts
