"""
Error taxonomy for provisioning runs.

Pre-flight errors (configuration, privilege, ambiguous user) are raised
before any host state is touched. Mid-run errors are raised by steps and
converted into step outcomes by the orchestrator.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for every error the orchestrator knows how to report."""

    fatal: bool = True


class ConfigurationError(ProvisioningError):
    """A required setting is missing or a setting is invalid."""


class AmbiguousTargetUserError(ConfigurationError):
    """Cannot decide which account receives the authorized keys."""


class PrivilegeError(ProvisioningError):
    """The run needs root privileges and does not have them."""


class UserResolutionError(ProvisioningError):
    """The home directory of the resolved user cannot be determined."""


class NoKeySourceError(ProvisioningError):
    """No URL, GitHub user or local authorized_keys file is available."""


class InvalidKeyDataError(ProvisioningError):
    """Downloaded or copied key data holds no recognized public key."""


class ExternalToolError(ProvisioningError):
    """A shelled-out command exited non-zero.

    Carries the tool name, the full argv, the exit code and captured
    output so the failure report can point at the exact command.
    """

    def __init__(
        self,
        tool: str,
        argv: list[str] | tuple[str, ...] = (),
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
        message: str = "",
    ):
        self.tool = tool
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        detail = message or stderr.strip() or stdout.strip()
        command = " ".join(self.argv) if self.argv else tool
        text = f"{command} failed"
        if exit_code is not None:
            text += f" (exit {exit_code})"
        if detail:
            text += f": {detail}"
        super().__init__(text)


class NonCriticalServiceError(ProvisioningError):
    """A best-effort service could not be enabled. Logged, never fatal."""

    fatal = False
