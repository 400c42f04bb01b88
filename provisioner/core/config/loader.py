"""
Settings file loader — reads a YAML mapping of provisioning settings.

The file holds the same keys as the environment (``HOSTNAME_SHORT``,
``SSH_PORT``, ...). Environment values take precedence over the file;
the merge itself happens in ``merged_settings``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml

from provisioner.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def load_settings_file(path: Path) -> dict[str, str]:
    """Load and normalize a YAML settings file.

    Lists become comma-separated strings (``EXTRA_DOMAINS``), booleans
    become ``true``/``false``, keys are upper-cased.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    return {str(key).upper(): _stringify(value) for key, value in data.items()}


def merged_settings(environ: Mapping[str, str], settings_file: Path | None = None) -> dict[str, str]:
    """Environment over settings file. Empty environment values do not mask the file."""
    merged: dict[str, str] = {}
    if settings_file is not None:
        merged.update(load_settings_file(settings_file))
    for key, value in environ.items():
        if value != "" or key not in merged:
            merged[key] = value
    return merged
