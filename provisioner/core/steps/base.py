"""
Step base — the unit of work the orchestrator runs.

A step answers four questions, in this order:

    applicable(ctx)   does this step apply to this configuration at all?
    satisfied(ctx)    is the host already in the state this step produces?
    apply(ctx)        make it so (external side effects)
    verify(ctx)       did it work?

Steps are stateless: everything they need comes from the context, and
nothing they learn survives the run. ``apply`` raises a
ProvisioningError subclass on failure; the orchestrator turns that into
a StepOutcome.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from provisioner.adapters.base import FileSystem
from provisioner.adapters.registry import AdapterRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """Everything a step may read: configuration, facts, adapters."""

    config: Any                  # Configuration or TunnelConfiguration
    adapters: AdapterRegistry
    facts: Any = None            # HostFacts for host profiles


class Step(ABC):
    """Abstract base class for provisioning steps."""

    name: str = ""
    critical: bool = True        # False: failures are logged, the run continues

    def applicable(self, ctx: StepContext) -> bool:
        return True

    def skip_reason(self, ctx: StepContext) -> str:
        return "not applicable"

    def satisfied(self, ctx: StepContext) -> bool:
        return False

    @abstractmethod
    def apply(self, ctx: StepContext) -> str | None:
        """Perform the change. Returns an optional message for the outcome."""

    def verify(self, ctx: StepContext) -> bool:
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def backup_file(files: FileSystem, path: str) -> str | None:
    """Copy ``path`` to ``path.bak.YYYYMMDD_HHMMSS`` before editing it.

    Returns:
        The backup path, or None if ``path`` does not exist.
    """
    if not files.is_file(path):
        logger.debug("backup: path does not exist, skipping: %s", path)
        return None
    ts = time.strftime("%Y%m%d_%H%M%S")
    dest = f"{path}.bak.{ts}"
    files.copy(path, dest)
    logger.info("Backed up %s → %s", path, dest)
    return dest


def read_or_empty(files: FileSystem, path: str) -> str:
    return files.read_text(path) if files.is_file(path) else ""
