"""
Summary reporter — end-of-run output for the operator.

Pure presentation: reads a ProvisioningReport and writes it through
click. Success goes to stdout, a halted run's diagnostics to stderr.
"""

from __future__ import annotations

import json

import click

from provisioner.core.models.outcome import ProvisioningReport, StepOutcome

_STATUS_STYLE = {
    "applied": ("✓", "green"),
    "skipped": ("⊘", "white"),
    "failed": ("✗", "red"),
}

_LABELS = {
    "hostname": "Hostname",
    "fqdns": "FQDNs",
    "ssh_port": "SSH port",
    "user_mode": "User mode",
    "target_user": "Target user",
    "key_source": "Key source",
    "interface": "Interface",
    "server_address": "Server address",
    "listen_port": "Listen port",
    "server_public_key": "Server public key",
    "client_config": "Client config",
}


class SummaryReporter:
    """Renders one report, as text or as JSON."""

    def __init__(self, report: ProvisioningReport, quiet: bool = False):
        self._report = report
        self._quiet = quiet

    def render_json(self) -> None:
        click.echo(json.dumps(self._report.model_dump(mode="json"), indent=2))

    def render(self) -> None:
        report = self._report
        if report.ok:
            self._render_success()
        else:
            self._render_failure()

    def _render_outcome(self, outcome: StepOutcome, err: bool = False) -> None:
        marker, color = _STATUS_STYLE[outcome.status]
        click.secho(f"   {marker} [{outcome.ordinal}] {outcome.step}", fg=color, nl=False, err=err)
        click.echo(f"  {outcome.message}" if outcome.message else "", err=err)

    def _render_success(self) -> None:
        report = self._report
        title = "Dry run complete" if report.dry_run else "Provisioning complete"
        click.echo()
        click.secho(f"✅ {title} ({report.profile})", fg="green", bold=True)

        for key, value in report.summary.items():
            label = _LABELS.get(key, key)
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value) or "-"
            click.echo(f"   {label + ':':<20}{value}")

        if not self._quiet:
            click.echo()
            click.secho("   Steps:", fg="white", bold=True)
            for outcome in report.outcomes:
                self._render_outcome(outcome)

        if report.warnings:
            click.echo()
            click.secho("⚠️  Warnings:", fg="yellow")
            for outcome in report.warnings:
                click.echo(f"   • {outcome.step}: {outcome.message}")

        if report.follow_ups:
            click.echo()
            click.secho("📌 Next:", fg="cyan", bold=True)
            for note in report.follow_ups:
                click.echo(f"   • {note}")
        click.echo()

    def _render_failure(self) -> None:
        report = self._report
        click.echo(err=True)
        click.secho(
            f"❌ Step {report.failed_step} ({report.failed_step_name}) failed",
            fg="red",
            bold=True,
            err=True,
        )
        click.echo(f"   {report.error}", err=True)
        if not self._quiet:
            click.echo(err=True)
            for outcome in report.outcomes:
                self._render_outcome(outcome, err=True)
        click.echo(err=True)
        click.echo(f"   Run {report.run_id} halted; steps after {report.failed_step} did not run.", err=True)
