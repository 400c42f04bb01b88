"""
Tests for the orchestrator — ordering, halting, dry-run, idempotency, audit.
"""

import re
from pathlib import Path

from provisioner.core.engine.orchestrator import Orchestrator, generate_run_id
from provisioner.core.errors import ProvisioningError
from provisioner.core.persistence.audit import AuditWriter
from provisioner.core.steps.base import Step, StepContext
from provisioner.core.steps.registry import Profile, StepRegistry


def _summary(ctx):
    return {"hostname": "test"}


class _RecordingStep(Step):
    def __init__(self, name, calls, satisfied=False, applicable=True, verify=True, critical=True, error=None):
        self.name = name
        self.critical = critical
        self._calls = calls
        self._satisfied = satisfied
        self._applicable = applicable
        self._verify = verify
        self._error = error

    def applicable(self, ctx):
        return self._applicable

    def satisfied(self, ctx):
        return self._satisfied

    def apply(self, ctx):
        self._calls.append(self.name)
        if self._error is not None:
            raise self._error
        return "done"

    def verify(self, ctx):
        return self._verify


def _profile(*steps):
    return Profile(name="test", steps=tuple(steps), summarize=_summary)


def _ctx(registry):
    return StepContext(config=None, adapters=registry)


# ── Step lifecycle ───────────────────────────────────────────────────


class TestStepLifecycle:
    def test_outcome_per_state(self, registry):
        calls = []
        profile = _profile(
            _RecordingStep("a", calls),
            _RecordingStep("b", calls, applicable=False),
            _RecordingStep("c", calls, satisfied=True),
        )
        report = Orchestrator(registry).run(profile, _ctx(registry))

        assert report.ok
        assert calls == ["a"]
        assert [o.status for o in report.outcomes] == ["applied", "skipped", "skipped"]
        assert report.outcomes[1].message == "not applicable"
        assert report.outcomes[2].message == "already satisfied"
        assert [o.ordinal for o in report.outcomes] == [1, 2, 3]

    def test_failed_postcondition(self, registry):
        calls = []
        report = Orchestrator(registry).run(
            _profile(_RecordingStep("a", calls, verify=False), _RecordingStep("b", calls)),
            _ctx(registry),
        )
        assert report.status_label == "failed-at-step 1"
        assert report.error == "postcondition not met after apply"
        assert calls == ["a"]

    def test_unexpected_exception_becomes_failure(self, registry):
        calls = []
        report = Orchestrator(registry).run(
            _profile(_RecordingStep("a", calls, error=KeyError("boom"))),
            _ctx(registry),
        )
        assert not report.ok
        assert report.error.startswith("Unexpected error:")

    def test_non_critical_step_does_not_halt(self, registry):
        calls = []
        report = Orchestrator(registry).run(
            _profile(
                _RecordingStep("a", calls, critical=False, error=ProvisioningError("meh")),
                _RecordingStep("b", calls),
            ),
            _ctx(registry),
        )
        assert report.ok
        assert calls == ["a", "b"]
        assert len(report.warnings) == 1

    def test_run_ids_unique(self):
        ids = {generate_run_id() for _ in range(20)}
        assert len(ids) == 20
        assert all(re.fullmatch(r"run-\d{8}-\d{6}-[0-9a-f]{6}", i) for i in ids)


# ── Host profile ─────────────────────────────────────────────────────


class TestHostRun:
    """Full host profile against the in-memory host."""

    def test_fresh_host(self, registry, make_config, host_context):
        ctx = host_context(registry, make_config())
        report = Orchestrator(registry).run(StepRegistry.resolve(ctx.config), ctx)

        assert report.ok, report.error
        assert report.applied == 8
        assert report.summary["hostname"] == "web1"
        assert report.summary["fqdns"] == ["web1.example.com"]
        assert report.summary["ssh_port"] == 22222
        assert any("KEEP_SSH_PORT_22=false" in n for n in report.follow_ups)

    def test_halts_at_first_fatal_failure(self, registry, make_config, host_context):
        registry.mesh_vpn.set_failure("up", "invalid auth key")
        ctx = host_context(registry, make_config())
        report = Orchestrator(registry).run(StepRegistry.resolve(ctx.config), ctx)

        assert report.status_label == "failed-at-step 3"
        assert report.failed_step_name == "Install & activate mesh VPN agent"
        assert len(report.outcomes) == 3
        assert "invalid auth key" in report.error
        assert report.follow_ups == ()

        # nothing after step 3 touched the host
        assert registry.mesh_vpn.events[-1] == "mesh_vpn:up web1"
        assert registry.firewall.operations == []
        assert not registry.accounts.exists("superadmin")

    def test_unattended_failure_is_a_warning(self, registry, make_config, host_context):
        registry.services.set_failure("enable_now", "unit not found")
        ctx = host_context(registry, make_config())
        report = Orchestrator(registry).run(StepRegistry.resolve(ctx.config), ctx)

        assert report.ok
        assert report.status_label == "success"
        assert [w.ordinal for w in report.warnings] == [8]

    def test_dry_run_changes_nothing(self, registry, make_config, host_context):
        before = registry.files.snapshot()
        ctx = host_context(registry, make_config())
        report = Orchestrator(registry, dry_run=True).run(StepRegistry.resolve(ctx.config), ctx)

        assert report.ok
        assert report.dry_run
        assert report.applied == 0
        assert registry.files.snapshot() == before
        assert list(registry.packages.events) == []
        assert report.outcomes[0].message == "[dry-run] would apply"

    def test_rerun_is_idempotent(self, registry, make_config, host_context):
        config = make_config()
        Orchestrator(registry).run(StepRegistry.resolve(config), host_context(registry, config))
        first = registry.files.snapshot()

        report = Orchestrator(registry).run(StepRegistry.resolve(config), host_context(registry, config))

        assert report.ok
        assert registry.files.snapshot() == first
        satisfied = {o.step for o in report.outcomes if o.message == "already satisfied"}
        assert {"Set hostname & FQDN aliases", "User management", "Harden SSH daemon"} <= satisfied
        assert len(registry.files.backups_of("/etc/ssh/sshd_config")) == 1

    def test_rerun_after_failed_reload_reloads_sshd(self, registry, make_config, host_context):
        config = make_config()
        registry.sshd.set_failure("reload", "Job for ssh.service failed")
        first = Orchestrator(registry).run(StepRegistry.resolve(config), host_context(registry, config))
        assert first.status_label == "failed-at-step 7"
        assert registry.sshd.reloads == 0

        registry.sshd.clear_failures()
        report = Orchestrator(registry).run(StepRegistry.resolve(config), host_context(registry, config))

        assert report.status_label == "success"
        assert registry.sshd.reloads == 1
        sshd_outcome = next(o for o in report.outcomes if o.step == "Harden SSH daemon")
        assert sshd_outcome.status == "applied"

    def test_cloud_mode_skips_user_management(self, make_config, host_context):
        from provisioner.adapters.registry import build_mock_registry

        registry = build_mock_registry(users={"root": "/root", "ubuntu": "/home/ubuntu"})
        ctx = host_context(registry, make_config(MANAGE_USER="false", TARGET_USER="ubuntu"))
        report = Orchestrator(registry).run(StepRegistry.resolve(ctx.config), ctx)

        assert report.ok
        assert report.profile == "cloud-managed-user"
        assert report.outcomes[3].status == "skipped"
        assert report.outcomes[3].message == "user management disabled (MANAGE_USER=false)"
        assert registry.files.is_file("/home/ubuntu/.ssh/authorized_keys")


# ── Audit ────────────────────────────────────────────────────────────


class TestAudit:
    def test_entry_written(self, registry, make_config, host_context, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        ctx = host_context(registry, make_config())
        report = Orchestrator(registry, audit_writer=writer).run(StepRegistry.resolve(ctx.config), ctx)

        entries = writer.read_all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.run_id == report.run_id
        assert entry.profile == "classic-user-management"
        assert entry.hostname == "web1"
        assert entry.status == "success"
        assert entry.steps_total == 8
        assert entry.steps_applied == 8

    def test_failed_run_entry(self, registry, make_config, host_context, tmp_path: Path):
        registry.firewall.set_failure("enable")
        writer = AuditWriter(tmp_path / "audit.ndjson")
        ctx = host_context(registry, make_config())
        Orchestrator(registry, audit_writer=writer).run(StepRegistry.resolve(ctx.config), ctx)

        entry = writer.read_all()[0]
        assert entry.status == "failed-at-step 6"
        assert entry.steps_failed == 1
        assert entry.context == {"failed_step": 6}
        assert entry.errors[0].startswith("6 Configure firewall:")
