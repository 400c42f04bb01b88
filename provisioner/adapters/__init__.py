"""Adapters — host capability bindings.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import Adapter, CommandRunner, FileSystem
from provisioner.adapters.registry import (
    AdapterRegistry,
    build_mock_registry,
    build_system_registry,
)

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandRunner",
    "FileSystem",
    "build_mock_registry",
    "build_system_registry",
]
