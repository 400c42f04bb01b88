"""
Host Provisioner — CLI entrypoint.

Usage:
    provisioner --help
    sudo -E provisioner run
    provisioner run --dry-run
    provisioner config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    console_level,
    setup_logging,
)

EXIT_INTERRUPTED = 130


@click.group()
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors and the final summary.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--env-file",
    "settings_file",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="YAML settings file; environment variables override it.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    settings_file: str | None,
) -> None:
    """Host Provisioner — bring a fresh Ubuntu host to a hardened baseline."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["settings_file"] = Path(settings_file) if settings_file else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=console_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


@cli.command()
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
def run(ctx: click.Context, dry_run: bool, mock_mode: bool, as_json: bool, audit_log: str | None) -> None:
    """Provision this host: packages, hostname, VPN, user, keys, firewall, SSH."""
    from provisioner.core.reporting.summary import SummaryReporter
    from provisioner.core.use_cases.provision import run_provision

    result = run_provision(
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

    assert result.report is not None  # guaranteed after error check above
    SummaryReporter(result.report, quiet=ctx.obj.get("quiet", False)).render()
    if not result.report.ok:
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool) -> None:
    """Show the resolved profile and its steps without executing."""
    from provisioner.core.use_cases.provision import plan_provision

    result = plan_provision(settings_file=ctx.obj.get("settings_file"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if not result.error else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"\n📋 Profile: {result.profile}", fg="cyan", bold=True)
    for ordinal, name in enumerate(result.steps, start=1):
        click.echo(f"   {ordinal}. {name}")
    click.echo()


@cli.command()
@click.option("--mock", "mock_mode", is_flag=True, help="Read facts from simulated adapters.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def facts(ctx: click.Context, mock_mode: bool, as_json: bool) -> None:
    """Print the host facts a run would use."""
    from provisioner.core.use_cases.provision import gather_facts

    result = gather_facts(settings_file=ctx.obj.get("settings_file"), mock_mode=mock_mode)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if not result.error else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    host = result.facts
    assert host is not None
    click.secho("\n🖥️  Host facts:", fg="cyan", bold=True)
    click.echo(f"   FQDNs:        {', '.join(host.fqdns)}")
    click.echo(f"   Target user:  {host.target_user}")
    click.echo(f"   Home:         {host.target_home or '(not created yet)'}")
    click.echo(f"   Local keys:   {host.local_keys_file or '(none found)'}")
    click.echo()


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the provisioning settings."""
    from provisioner.core.use_cases.config_check import check_config

    result = check_config(settings_file=ctx.obj.get("settings_file"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        cfg = result.config
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Hostname:   {cfg.hostname_short}.{cfg.primary_domain}")
        click.echo(f"   User mode:  {cfg.user_mode}")
        click.echo(f"   SSH port:   {cfg.ssh_port}")
        click.echo(f"   Keys:       {cfg.key_source.describe()}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.option("--mock", "mock_mode", is_flag=True, help="Show the simulated adapters instead.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def adapters(mock_mode: bool, as_json: bool) -> None:
    """Show availability of each system adapter."""
    from provisioner.adapters.registry import build_mock_registry, build_system_registry

    registry = build_mock_registry() if mock_mode else build_system_registry()
    status = registry.adapter_status()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    click.secho("🔌 Adapters:", fg="cyan", bold=True)
    for name, info in status.items():
        icon = "✅" if info["available"] else "❌"
        click.echo(f"   {icon} {name:<10} {info['type']}")
    click.echo()


# ── Register sub-command groups from provisioner/ui/cli/ ────────────

from provisioner.ui.cli.tunnel import tunnel  # noqa: E402

cli.add_command(tunnel)


def main() -> None:
    """Console entry point. Ctrl-C exits 130."""
    try:
        code = cli.main(standalone_mode=False)
    except click.exceptions.Abort:
        click.secho("Interrupted.", fg="yellow", err=True)
        sys.exit(EXIT_INTERRUPTED)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    sys.exit(code if isinstance(code, int) else 0)


if __name__ == "__main__":
    main()
