"""
Command results — what the subprocess runner hands back.

The runner never raises. Capability adapters decide whether a non-zero
exit is an error by calling ``check()``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from provisioner.core.errors import ExternalToolError


class CommandResult(BaseModel):
    argv: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)

    def check(self, tool: str = "") -> CommandResult:
        """Return self on success, raise ExternalToolError otherwise."""
        if self.ok:
            return self
        raise ExternalToolError(
            tool=tool or (self.argv[0] if self.argv else "command"),
            argv=self.argv,
            exit_code=self.returncode,
            stdout=self.stdout,
            stderr=self.stderr,
        )

    @classmethod
    def success(cls, argv: list[str], stdout: str = "") -> CommandResult:
        return cls(argv=list(argv), returncode=0, stdout=stdout)

    @classmethod
    def failure(cls, argv: list[str], returncode: int = 1, stderr: str = "") -> CommandResult:
        return cls(argv=list(argv), returncode=returncode, stderr=stderr)
