"""
Audit ledger — append-only record of provisioning runs.

Each run appends one entry to an NDJSON (newline-delimited JSON) file
so an operator can see which runs touched the host, in which profile,
and where a failed run stopped.

Entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_PATH = "/var/log/provisioner/audit.ndjson"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    profile: str = ""
    hostname: str = ""
    dry_run: bool = False

    # Results
    status: str = ""               # success, failed-at-step N
    steps_total: int = 0
    steps_applied: int = 0
    steps_skipped: int = 0
    steps_failed: int = 0
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only audit ledger writer.

    The file and its parent directory are created on first write.
    """

    def __init__(self, path: Path | None = None):
        self._path = path if path is not None else Path(DEFAULT_AUDIT_PATH)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry to the ledger.

        A ledger that cannot be written is logged, never fatal to the run.
        """
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.profile, entry.run_id)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        with self._path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(AuditEntry.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
