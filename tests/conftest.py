"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable

import pytest

from provisioner.adapters.registry import AdapterRegistry, build_mock_registry
from provisioner.core.config.resolver import ConfigResolver
from provisioner.core.models.config import Configuration
from provisioner.core.services.host_facts import HostFactGatherer
from provisioner.core.steps.base import StepContext

BASE_SETTINGS = {
    "HOSTNAME_SHORT": "web1",
    "TS_AUTHKEY": "tskey-auth-secret",
    "PRIMARY_DOMAIN": "example.com",
    "MANAGE_USER": "true",
    "NEW_USER": "superadmin",
    "GITHUB_KEYS_USER": "octocat",
}


@pytest.fixture
def settings() -> dict[str, str]:
    """A complete manage-mode settings mapping."""
    return dict(BASE_SETTINGS)


@pytest.fixture
def make_config() -> Callable[..., Configuration]:
    """Build a Configuration from the base settings plus overrides."""

    def _make(**overrides: str) -> Configuration:
        env = dict(BASE_SETTINGS)
        env.update(overrides)
        return ConfigResolver(env).resolve()

    return _make


@pytest.fixture
def registry() -> AdapterRegistry:
    """Fresh in-memory host."""
    return build_mock_registry()


@pytest.fixture
def host_context() -> Callable[[AdapterRegistry, Configuration], StepContext]:
    """StepContext with facts gathered from the given registry."""

    def _ctx(adapters: AdapterRegistry, config: Configuration) -> StepContext:
        facts = HostFactGatherer(adapters).gather(config)
        return StepContext(config=config, adapters=adapters, facts=facts)

    return _ctx
