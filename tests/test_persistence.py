"""
Tests for persistence — the audit ledger.
"""

import json
import logging
from pathlib import Path

from provisioner.core.persistence.audit import DEFAULT_AUDIT_PATH, AuditEntry, AuditWriter


class TestAuditWriter:
    """Tests for the audit ledger."""

    def test_write_and_read(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        entry = AuditEntry(
            run_id="run-001",
            profile="classic-user-management",
            status="success",
            steps_total=8,
            steps_applied=8,
        )
        writer.write(entry)

        entries = writer.read_all()
        assert len(entries) == 1
        assert entries[0].run_id == "run-001"
        assert entries[0].status == "success"

    def test_append_multiple(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(run_id=f"run-{i:03d}", profile="wireguard-server"))

        entries = writer.read_all()
        assert len(entries) == 5
        assert entries[0].run_id == "run-000"
        assert entries[4].run_id == "run-004"

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        for i in range(10):
            writer.write(AuditEntry(run_id=f"run-{i:03d}"))

        recent = writer.read_recent(3)
        assert [e.run_id for e in recent] == ["run-007", "run-008", "run-009"]

    def test_read_empty_ledger(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "nonexistent.ndjson")
        assert writer.read_all() == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        """Corrupt lines in the ledger are skipped gracefully."""
        path = tmp_path / "audit.ndjson"
        path.write_text(
            '{"run_id": "good-1", "profile": "test"}\n'
            "this is not json\n"
            '{"run_id": "bad", "steps_total": "many"}\n'
            "\n"
            '{"run_id": "good-2", "profile": "test"}\n'
        )
        entries = AuditWriter(path=path).read_all()
        assert [e.run_id for e in entries] == ["good-1", "good-2"]

    def test_creates_parent_directories(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "deep" / "nested" / "audit.ndjson")
        writer.write(AuditEntry(run_id="test"))
        assert writer.path.is_file()

    def test_unwritable_ledger_is_not_fatal(self, tmp_path: Path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        writer = AuditWriter(path=blocker / "audit.ndjson")

        with caplog.at_level(logging.ERROR):
            writer.write(AuditEntry(run_id="test"))

        assert "Failed to write audit entry" in caplog.text

    def test_ndjson_format(self, tmp_path: Path):
        """Each entry is a single line of valid JSON."""
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path=path)
        writer.write(AuditEntry(run_id="run-1"))
        writer.write(AuditEntry(run_id="run-2"))

        lines = path.read_text().strip().split("\n")
        assert len(lines) == 2
        for line in lines:
            data = json.loads(line)
            assert "run_id" in data

    def test_entry_fields_serialized(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "audit.ndjson")
        writer.write(
            AuditEntry(
                run_id="full-test",
                profile="classic-user-management",
                hostname="web1",
                dry_run=True,
                status="failed-at-step 3",
                steps_total=3,
                steps_applied=2,
                steps_failed=1,
                duration_ms=1234,
                errors=["3 Install & activate mesh VPN agent: invalid auth key"],
                context={"failed_step": 3},
            )
        )

        loaded = writer.read_all()[0]
        assert loaded.hostname == "web1"
        assert loaded.dry_run is True
        assert loaded.errors == ["3 Install & activate mesh VPN agent: invalid auth key"]
        assert loaded.context == {"failed_step": 3}

    def test_default_path(self):
        assert str(AuditWriter().path) == DEFAULT_AUDIT_PATH
