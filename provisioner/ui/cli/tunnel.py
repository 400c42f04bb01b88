"""
CLI commands for the WireGuard point-to-point tunnel.

Thin wrappers over ``provisioner.core.use_cases.tunnel``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


@click.group("tunnel")
def tunnel() -> None:
    """WireGuard tunnel — one server, one split-tunnel client."""


@tunnel.command("setup")
@click.option("--dry-run", is_flag=True, help="Evaluate every step without changing the host.")
@click.option("--mock", "mock_mode", is_flag=True, help="Run against simulated adapters.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--audit-log",
    type=click.Path(dir_okay=False),
    default=None,
    help="Append the run to this NDJSON audit ledger.",
)
@click.pass_context
def setup(ctx: click.Context, dry_run: bool, mock_mode: bool, as_json: bool, audit_log: str | None) -> None:
    """Install WireGuard, generate keys, write server and client configs."""
    from provisioner.core.reporting.summary import SummaryReporter
    from provisioner.core.use_cases.tunnel import run_tunnel_setup

    result = run_tunnel_setup(
        settings_file=ctx.obj.get("settings_file"),
        dry_run=dry_run,
        mock_mode=mock_mode,
        audit_path=Path(audit_log) if audit_log else None,
    )

    if as_json:
        if result.report is not None:
            SummaryReporter(result.report).render_json()
        else:
            click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    assert result.report is not None
    SummaryReporter(result.report, quiet=ctx.obj.get("quiet", False)).render()
    if not result.report.ok:
        sys.exit(1)
