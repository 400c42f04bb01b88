"""
Host facts — values derived from configuration plus live host inspection.

Computed once at the start of a run and shared read-only by every step.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HostFacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    fqdns: tuple[str, ...] = ()
    target_user: str = ""
    target_home: str | None = None          # None until the account exists
    local_keys_file: str | None = None      # discovered authorized_keys copy source
