"""
Local filesystem adapter — real reads and writes on the host.

Writes that carry a mode go through a temp file created with that mode
and an atomic rename, so secrets never exist with wider permissions.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from provisioner.adapters.base import FileSystem

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def is_file(self, path: str) -> bool:
        return Path(path).is_file()

    def read_text(self, path: str) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: str, content: str, mode: int | None = None) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            if mode is not None:
                os.fchmod(fd, mode)
            elif target.exists():
                os.fchmod(fd, target.stat().st_mode & 0o7777)
            else:
                os.fchmod(fd, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(content), target)

    def mkdir(self, path: str, mode: int | None = None) -> None:
        target = Path(path)
        target.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            target.chmod(mode)

    def copy(self, src: str, dst: str) -> None:
        shutil.copy2(src, dst)

    def replace(self, src: str, dst: str) -> None:
        os.replace(src, dst)

    def remove(self, path: str) -> None:
        Path(path).unlink(missing_ok=True)

    def chmod(self, path: str, mode: int) -> None:
        Path(path).chmod(mode)

    def chown(self, path: str, user: str, group: str | None = None, recursive: bool = False) -> None:
        group = group or user
        shutil.chown(path, user=user, group=group)
        if recursive and Path(path).is_dir():
            for root, dirs, files in os.walk(path):
                for entry in (*dirs, *files):
                    shutil.chown(os.path.join(root, entry), user=user, group=group)

    def mode_of(self, path: str) -> int | None:
        try:
            return Path(path).stat().st_mode & 0o777
        except FileNotFoundError:
            return None
