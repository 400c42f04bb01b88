"""
Tunnel use case — set up the WireGuard point-to-point tunnel.

Same shape as the host provisioning use case, with the tunnel
configuration and the wireguard-server profile. No host facts are
needed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.registry import AdapterRegistry, build_mock_registry
from provisioner.core.config.resolver import ConfigResolver
from provisioner.core.engine.orchestrator import Orchestrator
from provisioner.core.errors import ProvisioningError
from provisioner.core.models.config import TunnelConfiguration
from provisioner.core.models.outcome import ProvisioningReport
from provisioner.core.persistence.audit import AuditWriter
from provisioner.core.steps.base import StepContext
from provisioner.core.steps.registry import StepRegistry
from provisioner.core.use_cases.provision import load_settings, require_root

logger = logging.getLogger(__name__)


@dataclass
class TunnelResult:
    report: ProvisioningReport | None = None
    config: TunnelConfiguration | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {"report": self.report.model_dump(mode="json")} if self.report else {}


def run_tunnel_setup(
    environ: Mapping[str, str] | None = None,
    settings_file: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    audit_path: Path | None = None,
    euid: int | None = None,
) -> TunnelResult:
    """Install WireGuard, generate keys, and write both tunnel ends."""
    result = TunnelResult()

    try:
        config = ConfigResolver(load_settings(environ, settings_file)).resolve_tunnel()
        result.config = config
        require_root(dry_run=dry_run, mock_mode=mock_mode or registry is not None, euid=euid)
    except ProvisioningError as e:
        result.error = str(e)
        return result

    if registry is None:
        if mock_mode:
            registry = build_mock_registry()
        else:
            from provisioner.adapters.registry import build_system_registry

            registry = build_system_registry()

    audit_writer = AuditWriter(audit_path) if audit_path else None
    orchestrator = Orchestrator(registry, dry_run=dry_run, audit_writer=audit_writer)
    result.report = orchestrator.run(StepRegistry.tunnel(), StepContext(config=config, adapters=registry))
    return result
