"""
authorized_keys content checks.

A file is usable when at least one line starts with a recognized
public-key algorithm followed by whitespace. Comments and blank lines
are allowed anywhere.
"""

from __future__ import annotations

import re

from provisioner.core.errors import InvalidKeyDataError

KEY_ALGORITHMS = (
    "ssh-rsa",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
)

_KEY_LINE = re.compile(r"^(ssh-(rsa|ed25519)|ecdsa-sha2-nistp(256|384|521))\s")


def recognized_keys(text: str) -> list[str]:
    """Lines of ``text`` that hold a recognized public key."""
    return [line for line in text.splitlines() if _KEY_LINE.match(line)]


def validate_authorized_keys(text: str, source: str = "") -> int:
    """Raise InvalidKeyDataError unless ``text`` holds at least one key.

    Returns:
        Number of recognized key lines.
    """
    keys = recognized_keys(text)
    if not keys:
        origin = f" from {source}" if source else ""
        raise InvalidKeyDataError(
            f"authorized_keys data{origin} looks empty or invalid: "
            f"no line starts with one of {', '.join(KEY_ALGORITHMS)}"
        )
    return len(keys)
