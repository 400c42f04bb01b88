"""
Logging setup for the provisioner CLI.

main.py calls ``setup_logging()`` once; every module then logs through
``logging.getLogger(__name__)``. Step progress is written at INFO, which
is why INFO is the default console level. Setting ``PROVISIONER_LOG_FILE``
adds a file log that always carries file:line detail.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

DEFAULT_LEVEL = "INFO"

ENV_LEVEL = "PROVISIONER_LOG_LEVEL"
ENV_FILE = "PROVISIONER_LOG_FILE"
ENV_FILE_LEVEL = "PROVISIONER_LOG_FILE_LEVEL"

_DETAIL_FMT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"


def console_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """A CLI flag wins, then ``PROVISIONER_LOG_LEVEL``, then INFO."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(ENV_LEVEL) or DEFAULT_LEVEL


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_DETAIL_FMT, datefmt="%H:%M:%S")
    if level <= logging.INFO:
        # operator log lines: "2026-01-01 12:00:00 Update packages"
        return logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with a stderr console handler
    and, when ``log_file`` is given, a file handler.

    The file handler may be more verbose than the console; the root level
    is the lower of the two so its records are not filtered early.
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_console_formatter(numeric_level))
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(_parse_level(log_file_level) if log_file_level else numeric_level)
        file_handler.setFormatter(logging.Formatter(_DETAIL_FMT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown or empty names mean INFO."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO
