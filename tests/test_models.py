"""
Tests for domain models — steps, outcomes, settings.
"""

from conftest import Spy, make_step

from provisioner.core.errors import ApplyFailure, ConfigConflict, InvalidRegistry
from provisioner.core.models import OutcomeStatus, RunOutcome, SatisfactionState, SkipReason
from provisioner.core.models.step import Category


class TestStep:
    def test_depends_on_is_frozenset(self):
        step = make_step("b", depends_on=["a", "a"])
        assert step.depends_on == frozenset({"a"})

    def test_defaults(self):
        step = make_step("a")
        assert step.category is Category.APPLICATION
        assert not step.critical
        assert step.update is None

    def test_action_for(self):
        apply, update = Spy(), Spy()
        step = make_step("a", apply=apply, update=update)
        assert step.action_for(SatisfactionState.MISSING) is apply
        assert step.action_for(SatisfactionState.STALE) is update

    def test_evolve_returns_copy(self):
        step = make_step("a")
        critical = step.evolve(critical=True)
        assert critical.critical
        assert not step.critical


class TestRunOutcome:
    def test_applied(self):
        outcome = RunOutcome.applied(make_step("a", description="A", category=Category.SHELL))
        assert outcome.status is OutcomeStatus.APPLIED
        assert outcome.description == "A"
        assert outcome.category is Category.SHELL
        assert outcome.ok

    def test_failure_blocks_dependents(self):
        outcome = RunOutcome.failure(make_step("a"), "boom")
        assert not outcome.ok
        assert outcome.blocks_dependents

    def test_dependency_skip_blocks_dependents(self):
        outcome = RunOutcome.skipped(make_step("a"), SkipReason.DEPENDENCY_FAILED)
        assert outcome.blocks_dependents

    def test_other_skips_do_not_block(self):
        for reason in (SkipReason.SATISFIED, SkipReason.DRY_RUN, SkipReason.CANCELLED):
            assert not RunOutcome.skipped(make_step("a"), reason).blocks_dependents

    def test_conflict_does_not_block(self):
        outcome = RunOutcome.conflict(make_step("a"), "differs")
        assert not outcome.ok
        assert not outcome.blocks_dependents

    def test_serializes(self):
        data = RunOutcome.skipped(make_step("a"), SkipReason.SATISFIED).model_dump(mode="json")
        assert data["status"] == "skipped"
        assert data["reason"] == "satisfied"
        assert data["finished_at"]


class TestErrors:
    def test_apply_failure_includes_stderr(self):
        error = ApplyFailure("Command failed (exit 1): brew install x", stderr="Error: no formula")
        assert str(error) == "Command failed (exit 1): brew install x\nError: no formula"

    def test_invalid_registry_joins_errors(self):
        error = InvalidRegistry(["one", "two"])
        assert error.errors == ["one", "two"]
        assert str(error) == "one; two"

    def test_config_conflict_mentions_replace_option(self):
        error = ConfigConflict("# Android SDK", "/home/u/.zshrc")
        assert "--replace-conflicts" in str(error)
        assert error.marker == "# Android SDK"
