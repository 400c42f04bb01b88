"""
Subprocess runner — the single place where external commands are run.

Every system adapter is built on top of this: it runs an argv list,
captures output, and returns a CommandResult. No timeout is imposed;
a hanging tool hangs the run.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from provisioner.adapters.base import CommandRunner
from provisioner.core.models.command import CommandResult

logger = logging.getLogger(__name__)


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run`` and capture output."""

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def which(self, program: str) -> bool:
        return shutil.which(program) is not None

    def run(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        logger.debug("Executing: %s", " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                input=input_text,
                env=full_env,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return CommandResult(
                argv=list(argv),
                returncode=127,
                stderr=f"{argv[0]}: command not found",
            )
        except OSError as e:
            return CommandResult(
                argv=list(argv),
                returncode=126,
                stderr=f"Command execution error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            logger.debug("Command exited %d: %s", result.returncode, result.stderr.strip())

        return CommandResult(
            argv=list(argv),
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=elapsed_ms,
        )
