"""
Config check use case — validate settings before a run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.resolver import AUTHORIZED_KEYS_URL, GITHUB_KEYS_USER, ConfigResolver
from provisioner.core.documents.firewall import LEGACY_SSH_PORT
from provisioner.core.errors import ProvisioningError
from provisioner.core.models.config import Configuration
from provisioner.core.use_cases.provision import load_settings


@dataclass
class ConfigCheckResult:
    """Result of validating the provisioning settings."""

    valid: bool = False
    config: Configuration | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config": self.config.model_dump(mode="json") if self.config else None,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def check_config(
    environ: Mapping[str, str] | None = None,
    settings_file: Path | None = None,
) -> ConfigCheckResult:
    result = ConfigCheckResult()

    try:
        settings = load_settings(environ, settings_file)
        config = ConfigResolver(settings).resolve()
    except ProvisioningError as e:
        result.errors.append(str(e))
        return result

    result.valid = True
    result.config = config

    if settings.get(AUTHORIZED_KEYS_URL) and settings.get(GITHUB_KEYS_USER):
        result.warnings.append(f"{AUTHORIZED_KEYS_URL} and {GITHUB_KEYS_USER} both set; the URL wins.")
    if config.key_source.kind == "local":
        result.warnings.append(
            "No remote key source configured; keys will be copied from an existing authorized_keys file."
        )
    if config.keep_legacy_port and config.ssh_port != LEGACY_SSH_PORT:
        result.warnings.append(f"Port {LEGACY_SSH_PORT}/tcp stays open (KEEP_SSH_PORT_22=true).")

    return result
