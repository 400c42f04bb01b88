"""
SSH daemon hardening via a drop-in file.

The main config is only touched to make sure it includes the drop-in
directory. The merged config is validated before a reload. If either
validation or the reload fails, the files are put back the way they were,
so what is on disk matches what the daemon runs and a re-run applies the
step again.
"""

from __future__ import annotations

import logging

from provisioner.core.documents.sshd_config import (
    HARDENING_DROPIN,
    SSHD_CONFIG,
    SSHD_DROPIN_DIR,
    SshdMainConfig,
    hardening_dropin,
)
from provisioner.core.errors import ExternalToolError
from provisioner.core.steps.base import Step, StepContext, backup_file, read_or_empty

logger = logging.getLogger(__name__)


class HardenSshStep(Step):
    name = "Harden SSH daemon"

    def _dropin(self, ctx: StepContext) -> str:
        return hardening_dropin(ctx.config.ssh_port).render()

    def satisfied(self, ctx: StepContext) -> bool:
        files = ctx.adapters.files
        main = SshdMainConfig.parse(read_or_empty(files, SSHD_CONFIG))
        return main.has_dropin_include() and read_or_empty(files, HARDENING_DROPIN) == self._dropin(ctx)

    def apply(self, ctx: StepContext) -> str:
        files = ctx.adapters.files
        sshd = ctx.adapters.sshd
        logger.info("Harden SSH (drop-in) and set port to %d", ctx.config.ssh_port)

        if not files.is_file(SSHD_CONFIG):
            raise ExternalToolError(
                tool="sshd",
                message=f"{SSHD_CONFIG} not found; is openssh-server installed?",
            )

        backup_file(files, SSHD_CONFIG)
        previous_main = files.read_text(SSHD_CONFIG)
        main = SshdMainConfig.parse(previous_main)
        main_changed = main.ensure_dropin_include()
        if main_changed:
            logger.info("Ensuring sshd_config includes %s/*.conf", SSHD_DROPIN_DIR)
            files.write_text(SSHD_CONFIG, main.render())
        files.mkdir(SSHD_DROPIN_DIR)

        previous = files.read_text(HARDENING_DROPIN) if files.is_file(HARDENING_DROPIN) else None
        files.write_text(HARDENING_DROPIN, self._dropin(ctx), mode=0o644)

        try:
            sshd.check_config()
        except ExternalToolError:
            logger.error("sshd -t rejected the new configuration; restoring previous drop-in")
            self._restore(ctx, previous, previous_main if main_changed else None)
            raise

        try:
            sshd.reload()
        except ExternalToolError:
            logger.error("sshd reload failed; the daemon still runs its previous configuration")
            self._restore(ctx, previous, previous_main if main_changed else None)
            raise
        return f"port {ctx.config.ssh_port}, root and password login disabled"

    def _restore(self, ctx: StepContext, dropin: str | None, main: str | None) -> None:
        files = ctx.adapters.files
        if dropin is None:
            files.remove(HARDENING_DROPIN)
        else:
            files.write_text(HARDENING_DROPIN, dropin, mode=0o644)
        if main is not None:
            files.write_text(SSHD_CONFIG, main)

    def verify(self, ctx: StepContext) -> bool:
        return self.satisfied(ctx)
