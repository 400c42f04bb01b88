"""APT package manager adapter."""

from __future__ import annotations

import logging
import shutil

from provisioner.adapters.base import CommandRunner, PackageManager

logger = logging.getLogger(__name__)

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageManager(PackageManager):
    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def _apt(self, *args: str) -> None:
        self._runner.run(["apt-get", *args], env=_NONINTERACTIVE).check("apt-get")

    def update_index(self) -> None:
        self._apt("update", "-y")

    def update_and_upgrade(self) -> None:
        self._apt("update")
        self._apt("upgrade", "-y")

    def install(self, packages: list[str]) -> None:
        logger.info("Installing packages: %s", " ".join(packages))
        self._apt("install", "-y", *packages)
