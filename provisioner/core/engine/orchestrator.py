"""
Orchestrator — the sequential provisioning loop.

Runs a profile's steps strictly in order, one at a time. Each step is
checked for applicability and existing state, applied, then verified.
The first fatal failure halts the run; nothing is rolled back. The
report is always produced, and appended to the audit ledger when one
is configured.

Flow:
    for each step → applicable? → satisfied? → apply → verify → outcome
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import UTC, datetime

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.errors import ProvisioningError
from provisioner.core.models.outcome import ProvisioningReport, StepOutcome, now_iso
from provisioner.core.persistence.audit import AuditEntry, AuditWriter
from provisioner.core.steps.base import Step, StepContext
from provisioner.core.steps.registry import Profile

logger = logging.getLogger(__name__)

_MARKERS = {"applied": "✓", "skipped": "⊘", "failed": "✗"}


class Orchestrator:
    """Drives one profile against one host through the adapter registry."""

    def __init__(
        self,
        adapters: AdapterRegistry,
        dry_run: bool = False,
        audit_writer: AuditWriter | None = None,
    ):
        self._adapters = adapters
        self._dry_run = dry_run
        self._audit_writer = audit_writer

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def run(self, profile: Profile, ctx: StepContext) -> ProvisioningReport:
        run_id = generate_run_id()
        started_at = now_iso()
        start = time.monotonic()
        total = len(profile.steps)
        outcomes: list[StepOutcome] = []
        failed: StepOutcome | None = None

        logger.info(
            "Starting %s run %s (%d steps)%s",
            profile.name,
            run_id,
            total,
            " [dry-run]" if self._dry_run else "",
        )
        if self._adapters.mock_mode:
            logger.info("Adapters are simulated; no host state is changed")

        for ordinal, step in enumerate(profile.steps, start=1):
            logger.info("==> [%d/%d] %s", ordinal, total, step.name)
            outcome = self._run_step(ordinal, step, ctx)
            outcomes.append(outcome)
            logger.info("%s %s → %s %s", _MARKERS[outcome.status], step.name, outcome.status, outcome.message)

            if outcome.status == "failed":
                if outcome.fatal:
                    logger.error("Step %d (%s) failed: %s", ordinal, step.name, outcome.message)
                    failed = outcome
                    break
                logger.warning("Step %d (%s) failed (non-fatal): %s", ordinal, step.name, outcome.message)

        report = ProvisioningReport(
            run_id=run_id,
            profile=profile.name,
            status="failed" if failed else "success",
            failed_step=failed.ordinal if failed else None,
            failed_step_name=failed.step if failed else None,
            error=failed.message if failed else None,
            dry_run=self._dry_run,
            outcomes=tuple(outcomes),
            summary=profile.summarize(ctx),
            follow_ups=tuple(profile.follow_ups(ctx)) if not failed else (),
            started_at=started_at,
            ended_at=now_iso(),
        )

        logger.info("Run %s finished: %s", run_id, report.status_label)
        if self._audit_writer is not None:
            write_audit_entry(report, self._audit_writer, int((time.monotonic() - start) * 1000))
        return report

    def _run_step(self, ordinal: int, step: Step, ctx: StepContext) -> StepOutcome:
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        try:
            if not step.applicable(ctx):
                return StepOutcome.skipped(ordinal, step.name, step.skip_reason(ctx), duration_ms=elapsed())
            if step.satisfied(ctx):
                return StepOutcome.skipped(ordinal, step.name, "already satisfied", duration_ms=elapsed())
            if self._dry_run:
                return StepOutcome.skipped(ordinal, step.name, "[dry-run] would apply", duration_ms=elapsed())

            message = step.apply(ctx) or ""
            if not step.verify(ctx):
                return StepOutcome.failure(
                    ordinal,
                    step.name,
                    "postcondition not met after apply",
                    fatal=step.critical,
                    duration_ms=elapsed(),
                )
            return StepOutcome.applied(ordinal, step.name, message, duration_ms=elapsed())

        except ProvisioningError as e:
            return StepOutcome.failure(
                ordinal,
                step.name,
                str(e),
                fatal=step.critical and e.fatal,
                duration_ms=elapsed(),
            )
        except Exception as e:
            logger.exception("Unexpected error in step %d (%s)", ordinal, step.name)
            return StepOutcome.failure(
                ordinal,
                step.name,
                f"Unexpected error: {e}",
                fatal=step.critical,
                duration_ms=elapsed(),
            )


def write_audit_entry(report: ProvisioningReport, audit_writer: AuditWriter, duration_ms: int = 0) -> None:
    """Append one ledger entry summarizing the run."""
    entry = AuditEntry(
        run_id=report.run_id,
        profile=report.profile,
        hostname=str(report.summary.get("hostname", "")),
        dry_run=report.dry_run,
        status=report.status_label,
        steps_total=len(report.outcomes),
        steps_applied=report.applied,
        steps_skipped=report.skipped,
        steps_failed=sum(1 for o in report.outcomes if o.status == "failed"),
        duration_ms=duration_ms,
        errors=[f"{o.ordinal} {o.step}: {o.message}" for o in report.outcomes if o.status == "failed"],
        context={"failed_step": report.failed_step} if report.failed_step else {},
    )
    audit_writer.write(entry)


def generate_run_id() -> str:
    """Unique run ID, sortable by start time."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
