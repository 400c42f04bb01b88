"""Passwordless sudo grant drop-in, scoped to a single user."""

from __future__ import annotations

SUDOERS = "/etc/sudoers"
SUDOERS_DIR = "/etc/sudoers.d"
GRANT_MODE = 0o440


def grant_path(user: str) -> str:
    return f"{SUDOERS_DIR}/90-{user}-nopasswd"


def staging_path(user: str) -> str:
    # sudo ignores files in sudoers.d whose name contains a dot
    return f"{SUDOERS_DIR}/.90-{user}-nopasswd.new"


def render_grant(user: str) -> str:
    return f"{user} ALL=(ALL) NOPASSWD:ALL\n"
