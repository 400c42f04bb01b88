"""
Step outcomes and provisioning reports — the audit trail of a run.

Outcomes are appended by the orchestrator and never mutated. The report
is created once at the end of a run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepOutcome(BaseModel):
    """Result of one step in one run."""

    model_config = ConfigDict(frozen=True)

    ordinal: int
    step: str
    status: Literal["skipped", "applied", "failed"]
    message: str = ""
    fatal: bool = False
    timestamp: str = Field(default_factory=now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @classmethod
    def applied(cls, ordinal: int, step: str, message: str = "", **kwargs: Any) -> StepOutcome:
        return cls(ordinal=ordinal, step=step, status="applied", message=message, **kwargs)

    @classmethod
    def skipped(cls, ordinal: int, step: str, reason: str = "", **kwargs: Any) -> StepOutcome:
        return cls(ordinal=ordinal, step=step, status="skipped", message=reason, **kwargs)

    @classmethod
    def failure(
        cls,
        ordinal: int,
        step: str,
        error: str,
        fatal: bool = True,
        **kwargs: Any,
    ) -> StepOutcome:
        return cls(
            ordinal=ordinal,
            step=step,
            status="failed",
            message=error,
            fatal=fatal,
            **kwargs,
        )


class ProvisioningReport(BaseModel):
    """Final aggregate of a provisioning run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    profile: str
    status: Literal["success", "failed"]
    failed_step: int | None = None
    failed_step_name: str | None = None
    error: str | None = None
    dry_run: bool = False

    outcomes: tuple[StepOutcome, ...] = ()
    summary: dict[str, Any] = Field(default_factory=dict)
    follow_ups: tuple[str, ...] = ()

    started_at: str = Field(default_factory=now_iso)
    ended_at: str = Field(default_factory=now_iso)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def status_label(self) -> str:
        if self.ok:
            return "success"
        return f"failed-at-step {self.failed_step}"

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "applied")

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def warnings(self) -> list[StepOutcome]:
        """Non-fatal failures recorded during an otherwise complete run."""
        return [o for o in self.outcomes if o.status == "failed" and not o.fatal]
