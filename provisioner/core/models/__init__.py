"""
Domain models — Pydantic types for provisioning runs.

All models are re-exported here for convenient access:

    from provisioner.core.models import Configuration, HostFacts, StepOutcome
"""

from provisioner.core.models.command import CommandResult
from provisioner.core.models.config import Configuration, KeySource, TunnelConfiguration
from provisioner.core.models.facts import HostFacts
from provisioner.core.models.outcome import ProvisioningReport, StepOutcome

__all__ = [
    # command.py
    "CommandResult",
    # config.py
    "Configuration",
    "KeySource",
    "TunnelConfiguration",
    # facts.py
    "HostFacts",
    # outcome.py
    "ProvisioningReport",
    "StepOutcome",
]
