"""
ConfigResolver — turns key/value settings into validated configuration.

The resolver is handed an explicit mapping (the CLI passes the process
environment merged over an optional settings file) and produces an
immutable Configuration. It performs no side effects: every failure is
a ConfigurationError raised before any host state is touched.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from provisioner.core.errors import AmbiguousTargetUserError, ConfigurationError
from provisioner.core.models.config import Configuration, KeySource, TunnelConfiguration

logger = logging.getLogger(__name__)

SUPERUSER = "root"

# Environment keys and defaults
HOSTNAME_SHORT = "HOSTNAME_SHORT"
TS_AUTHKEY = "TS_AUTHKEY"
PRIMARY_DOMAIN = "PRIMARY_DOMAIN"
EXTRA_DOMAINS = "EXTRA_DOMAINS"
MANAGE_USER = "MANAGE_USER"
NEW_USER = "NEW_USER"
TARGET_USER = "TARGET_USER"
SSH_PORT = "SSH_PORT"
KEEP_SSH_PORT_22 = "KEEP_SSH_PORT_22"
GITHUB_KEYS_USER = "GITHUB_KEYS_USER"
AUTHORIZED_KEYS_URL = "AUTHORIZED_KEYS_URL"
SUDO_USER = "SUDO_USER"

DEFAULTS: dict[str, str] = {
    PRIMARY_DOMAIN: "example.com",
    EXTRA_DOMAINS: "",
    MANAGE_USER: "false",
    NEW_USER: "superadmin",
    TARGET_USER: "",
    SSH_PORT: "22222",
    KEEP_SSH_PORT_22: "true",
    GITHUB_KEYS_USER: "",
    AUTHORIZED_KEYS_URL: "",
}

TUNNEL_DEFAULTS: dict[str, str] = {
    "WG_IF": "wg0",
    "WG_PORT": "51820",
    "WG_SERVER_ADDR": "10.66.66.1/24",
    "WG_CLIENT_ADDR": "10.66.66.2/32",
    "WG_ALLOWED_TO_SERVER_ONLY": "10.66.66.1/32",
    "WG_ENDPOINT": "",
    "CLIENT_NAME": "client1",
}

_TRUE_VALUES = {"1", "true", "yes", "y"}
_HOSTNAME_LABEL = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
_USERNAME = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
_FILE_COMPONENT = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_bool(value: str | None) -> bool:
    """``1|true|yes|y`` in any case is true; everything else is false."""
    return (value or "").strip().lower() in _TRUE_VALUES


def split_domains(value: str) -> tuple[str, ...]:
    """Comma-separated domains, trimmed, empty entries dropped, order kept."""
    return tuple(d.strip() for d in value.split(",") if d.strip())


def resolve_key_source(url: str, github_user: str) -> KeySource:
    """URL > GitHub user > local discovery."""
    if url:
        if github_user:
            logger.info("Both AUTHORIZED_KEYS_URL and GITHUB_KEYS_USER set; using the URL")
        return KeySource(kind="url", value=url)
    if github_user:
        return KeySource(kind="github", value=github_user)
    return KeySource(kind="local")


def _parse_port(key: str, raw: str) -> int:
    try:
        port = int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"{key} must be between 1 and 65535, got {port}")
    return port


class ConfigResolver:
    """Reads settings from a mapping with documented defaults."""

    def __init__(self, environ: Mapping[str, str]):
        self._environ = environ

    def _get(self, key: str, defaults: Mapping[str, str] = DEFAULTS) -> str:
        value = self._environ.get(key, "")
        if value == "":
            value = defaults.get(key, "")
        return value.strip()

    def resolve(self) -> Configuration:
        """Build the host Configuration.

        Raises:
            ConfigurationError: A required value is empty or a value is invalid.
            AmbiguousTargetUserError: No account can be chosen for key install.
        """
        hostname_short = self._get(HOSTNAME_SHORT)
        if not hostname_short:
            raise ConfigurationError(f"{HOSTNAME_SHORT} is required.")
        if not _HOSTNAME_LABEL.match(hostname_short):
            raise ConfigurationError(
                f"{HOSTNAME_SHORT} must be a single DNS label (letters, digits, hyphens), "
                f"got {hostname_short!r}"
            )

        auth_key = self._get(TS_AUTHKEY)
        if not auth_key:
            raise ConfigurationError(f"{TS_AUTHKEY} is required.")

        primary_domain = self._get(PRIMARY_DOMAIN).strip(".")
        if not primary_domain:
            raise ConfigurationError(f"{PRIMARY_DOMAIN} must not be empty.")

        manage_user = parse_bool(self._get(MANAGE_USER))
        new_user = self._get(NEW_USER)
        target_user = self._get(TARGET_USER)
        invoking_user = self._environ.get(SUDO_USER, "").strip() or None

        for key, user in ((NEW_USER, new_user), (TARGET_USER, target_user)):
            if user and not _USERNAME.match(user):
                raise ConfigurationError(f"{key} is not a valid user name: {user!r}")

        if manage_user and not new_user:
            raise ConfigurationError(f"{NEW_USER} must not be empty when {MANAGE_USER}=true.")

        if not manage_user and not target_user and (
            invoking_user is None or invoking_user == SUPERUSER
        ):
            raise AmbiguousTargetUserError(
                f"{TARGET_USER} is empty and {SUDO_USER} is not set. "
                f"Run via sudo or set {TARGET_USER} explicitly."
            )

        config = Configuration(
            hostname_short=hostname_short,
            mesh_auth_key=auth_key,
            primary_domain=primary_domain,
            extra_domains=split_domains(self._get(EXTRA_DOMAINS)),
            manage_user=manage_user,
            new_user=new_user,
            target_user=target_user,
            invoking_user=invoking_user,
            ssh_port=_parse_port(SSH_PORT, self._get(SSH_PORT)),
            keep_legacy_port=parse_bool(self._get(KEEP_SSH_PORT_22)),
            key_source=resolve_key_source(
                self._get(AUTHORIZED_KEYS_URL),
                self._get(GITHUB_KEYS_USER),
            ),
        )
        logger.debug(
            "Resolved configuration for %s (user mode %s, ssh port %d)",
            config.hostname_short,
            config.user_mode,
            config.ssh_port,
        )
        return config

    def resolve_tunnel(self) -> TunnelConfiguration:
        """Build the WireGuard tunnel configuration."""

        def get(key: str) -> str:
            return self._get(key, TUNNEL_DEFAULTS)

        interface = get("WG_IF")
        client_name = get("CLIENT_NAME")
        for key, value in (("WG_IF", interface), ("CLIENT_NAME", client_name)):
            if not _FILE_COMPONENT.match(value) or value in {".", ".."}:
                raise ConfigurationError(f"{key} must be a plain file name component, got {value!r}")

        for key in ("WG_SERVER_ADDR", "WG_CLIENT_ADDR", "WG_ALLOWED_TO_SERVER_ONLY"):
            if not get(key):
                raise ConfigurationError(f"{key} must not be empty.")

        return TunnelConfiguration(
            interface=interface,
            listen_port=_parse_port("WG_PORT", get("WG_PORT")),
            server_address=get("WG_SERVER_ADDR"),
            client_address=get("WG_CLIENT_ADDR"),
            client_allowed_ips=get("WG_ALLOWED_TO_SERVER_ONLY"),
            endpoint=get("WG_ENDPOINT"),
            client_name=client_name,
        )
