"""
Provision use case — configure a fresh host end to end.

The full vertical slice: merge settings, resolve configuration, pick the
adapter registry, gather host facts, resolve the profile, run the
orchestrator, and hand back a result the CLI can render.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry, SAMPLE_PUBLIC_KEY, build_mock_registry
from provisioner.core.config.loader import merged_settings
from provisioner.core.config.resolver import SUPERUSER, ConfigResolver
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.errors import ProvisioningError, PrivilegeError
from provisioner.core.models.config import Configuration
from provisioner.core.models.facts import HostFacts
from provisioner.core.models.outcome import ProvisioningReport
from provisioner.core.persistence.audit import AuditWriter
from provisioner.core.services.host_facts import HostFactGatherer
from provisioner.core.steps.base import StepContext
from provisioner.core.steps.registry import StepRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    report: ProvisioningReport | None = None
    config: Configuration | None = None
    facts: HostFacts | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        result: dict = {}
        if self.report:
            result["report"] = self.report.model_dump(mode="json")
        return result


@dataclass
class PlanResult:
    """Resolved profile and step list, without executing anything."""

    profile: str = ""
    steps: list[str] = field(default_factory=list)
    config: Configuration | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "profile": self.profile,
            "steps": [{"ordinal": i, "name": name} for i, name in enumerate(self.steps, start=1)],
            "config": self.config.model_dump(mode="json") if self.config else None,
        }


@dataclass
class FactsResult:
    facts: HostFacts | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return self.facts.model_dump(mode="json") if self.facts else {}


# ── Shared helpers ───────────────────────────────────────────────────


def load_settings(environ: Mapping[str, str] | None = None, settings_file: Path | None = None) -> dict[str, str]:
    return merged_settings(os.environ if environ is None else environ, settings_file)


def require_root(dry_run: bool = False, mock_mode: bool = False, euid: int | None = None) -> None:
    """Real runs change system state and need root.

    Raises:
        PrivilegeError: not root and neither dry-run nor mock mode.
    """
    if dry_run or mock_mode:
        return
    if euid is None:
        euid = os.geteuid()
    if euid != 0:
        raise PrivilegeError("Run as root (sudo -E ...), or use --dry-run / --mock.")


def mock_registry_for(config: Configuration) -> AdapterRegistry:
    """Fake host seeded with the accounts and keys this configuration expects."""
    users = {SUPERUSER: "/root"}
    for user in (config.target_user, config.invoking_user):
        if user and user != SUPERUSER and not config.manage_user:
            users[user] = f"/home/{user}"
    files = {"/root/.ssh/authorized_keys": SAMPLE_PUBLIC_KEY + "\n"}
    return build_mock_registry(files=files, users=users)


def _registry(config: Configuration, mock_mode: bool, registry: AdapterRegistry | None) -> AdapterRegistry:
    if registry is not None:
        return registry
    if mock_mode:
        return mock_registry_for(config)
    from provisioner.adapters.registry import build_system_registry

    return build_system_registry()


# ── Use cases ────────────────────────────────────────────────────────


def run_provision(
    environ: Mapping[str, str] | None = None,
    settings_file: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    audit_path: Path | None = None,
    euid: int | None = None,
) -> ProvisionResult:
    """Provision the host described by the settings.

    Args:
        environ: Settings mapping; defaults to the process environment.
        settings_file: Optional YAML settings file, overridden by environ.
        dry_run: Evaluate applicability and preconditions only.
        mock_mode: Run against in-memory fakes instead of the host.
        registry: Optional pre-configured adapter registry.
        audit_path: Append the run to this NDJSON ledger.
        euid: Effective uid override for the root check.

    Returns:
        ProvisionResult with the report, or an error for pre-flight failures.
    """
    result = ProvisionResult()

    try:
        config = ConfigResolver(load_settings(environ, settings_file)).resolve()
        result.config = config
        require_root(dry_run=dry_run, mock_mode=mock_mode or registry is not None, euid=euid)

        adapters = _registry(config, mock_mode, registry)
        facts = HostFactGatherer(adapters).gather(config)
        result.facts = facts
    except ProvisioningError as e:
        logger.error("Pre-flight failed: %s", e)
        result.error = str(e)
        return result

    profile = StepRegistry.resolve(config)
    audit_writer = AuditWriter(audit_path) if audit_path else None
    orchestrator = Orchestrator(adapters, dry_run=dry_run, audit_writer=audit_writer)
    result.report = orchestrator.run(profile, StepContext(config=config, adapters=adapters, facts=facts))
    return result


def plan_provision(
    environ: Mapping[str, str] | None = None,
    settings_file: Path | None = None,
) -> PlanResult:
    """Resolve configuration and profile; execute nothing."""
    result = PlanResult()
    try:
        config = ConfigResolver(load_settings(environ, settings_file)).resolve()
    except ProvisioningError as e:
        result.error = str(e)
        return result

    profile = StepRegistry.resolve(config)
    result.config = config
    result.profile = profile.name
    result.steps = profile.step_names()
    return result


def gather_facts(
    environ: Mapping[str, str] | None = None,
    settings_file: Path | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
) -> FactsResult:
    """Compute HostFacts without touching the host."""
    result = FactsResult()
    try:
        config = ConfigResolver(load_settings(environ, settings_file)).resolve()
        adapters = _registry(config, mock_mode, registry)
        result.facts = HostFactGatherer(adapters).gather(config)
    except ProvisioningError as e:
        result.error = str(e)
    return result
