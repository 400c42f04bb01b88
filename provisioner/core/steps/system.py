"""
System-level steps: packages, hostname/FQDN aliases, unattended upgrades.
"""

from __future__ import annotations

import logging

from provisioner.core.documents.hosts_file import LOOPBACK_ALIAS, HostsFile, alias_names
from provisioner.core.errors import ExternalToolError, NonCriticalServiceError
from provisioner.core.steps.base import Step, StepContext, backup_file, read_or_empty

logger = logging.getLogger(__name__)

BASE_PACKAGES = ["curl", "ca-certificates", "ufw", "unattended-upgrades"]

HOSTS_FILE = "/etc/hosts"
HOSTNAME_FILE = "/etc/hostname"
CLOUD_INIT_DIR = "/etc/cloud/cloud.cfg.d"
CLOUD_INIT_DROPIN = f"{CLOUD_INIT_DIR}/99_preserve_hostname.cfg"
CLOUD_INIT_CONTENT = "preserve_hostname: true\n"

UNATTENDED_UNIT = "unattended-upgrades"


class UpdatePackagesStep(Step):
    name = "Update packages"

    def apply(self, ctx: StepContext) -> str:
        packages = ctx.adapters.packages
        packages.update_and_upgrade()
        packages.install(BASE_PACKAGES)
        return f"installed {', '.join(BASE_PACKAGES)}"


class SetHostnameStep(Step):
    """Hostname, cloud-init preservation, and the 127.0.1.1 alias line."""

    name = "Set hostname & FQDN aliases"

    def _names(self, ctx: StepContext) -> list[str]:
        return alias_names(ctx.facts.fqdns, ctx.config.hostname_short)

    def _hosts(self, ctx: StepContext) -> tuple[HostsFile, bool]:
        doc = HostsFile.parse(read_or_empty(ctx.adapters.files, HOSTS_FILE))
        changed = doc.upsert(LOOPBACK_ALIAS, self._names(ctx))
        return doc, changed

    def _current_hostname(self, ctx: StepContext) -> str:
        return read_or_empty(ctx.adapters.files, HOSTNAME_FILE).strip()

    def satisfied(self, ctx: StepContext) -> bool:
        files = ctx.adapters.files
        _, hosts_changed = self._hosts(ctx)
        return (
            self._current_hostname(ctx) == ctx.config.hostname_short
            and read_or_empty(files, CLOUD_INIT_DROPIN) == CLOUD_INIT_CONTENT
            and not hosts_changed
        )

    def apply(self, ctx: StepContext) -> str:
        files = ctx.adapters.files
        short = ctx.config.hostname_short

        logger.info("Set hostname: %s", short)
        ctx.adapters.hostname.set_hostname(short)

        logger.info("Configure cloud-init preserve_hostname: true")
        files.mkdir(CLOUD_INIT_DIR)
        files.write_text(CLOUD_INIT_DROPIN, CLOUD_INIT_CONTENT, mode=0o644)

        doc, changed = self._hosts(ctx)
        names = " ".join(self._names(ctx))
        if changed:
            logger.info("Update %s (%s -> %s)", HOSTS_FILE, LOOPBACK_ALIAS, names)
            backup_file(files, HOSTS_FILE)
            files.write_text(HOSTS_FILE, doc.render())
        return f"{LOOPBACK_ALIAS} -> {names}"

    def verify(self, ctx: StepContext) -> bool:
        doc = HostsFile.parse(read_or_empty(ctx.adapters.files, HOSTS_FILE))
        return doc.names_for(LOOPBACK_ALIAS) == self._names(ctx)


class UnattendedUpgradesStep(Step):
    """Best effort: a failure here never fails the run."""

    name = "Enable unattended security upgrades"
    critical = False

    def apply(self, ctx: StepContext) -> str:
        try:
            ctx.adapters.services.enable_now(UNATTENDED_UNIT)
        except ExternalToolError as e:
            raise NonCriticalServiceError(f"Could not enable {UNATTENDED_UNIT}: {e}") from e
        return f"{UNATTENDED_UNIT} enabled"

    def verify(self, ctx: StepContext) -> bool:
        return ctx.adapters.services.is_active(UNATTENDED_UNIT)
