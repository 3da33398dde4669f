"""
Run report — the aggregated, ordered outcome of one executor run.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from provisioner.core.models.outcome import OutcomeStatus, RunOutcome

# Process exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


@dataclass
class RunReport:
    """Outcomes of a run, in the order steps were processed."""

    outcomes: list[RunOutcome] = field(default_factory=list)
    dry_run: bool = False
    cancelled: bool = False
    halted_by: str | None = None  # id of the critical step that stopped the run

    def add(self, outcome: RunOutcome) -> None:
        self.outcomes.append(outcome)

    def get(self, step_id: str) -> RunOutcome | None:
        for outcome in self.outcomes:
            if outcome.step_id == step_id:
                return outcome
        return None

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def applied(self) -> int:
        return self._count(OutcomeStatus.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def conflicts(self) -> int:
        return self._count(OutcomeStatus.CONFLICT)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def summary(self) -> dict[str, int]:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "failed": self.failed,
            "conflicts": self.conflicts,
        }

    def by_category(self) -> dict[str, list[RunOutcome]]:
        """Outcomes grouped by step category, groups in first-seen order."""
        groups: dict[str, list[RunOutcome]] = {}
        for outcome in self.outcomes:
            groups.setdefault(outcome.category.value, []).append(outcome)
        return groups

    @property
    def critical_problems(self) -> list[RunOutcome]:
        return [
            o
            for o in self.outcomes
            if o.critical and o.status in (OutcomeStatus.FAILED, OutcomeStatus.CONFLICT)
        ]

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if self.halted_by:
            return "halted"
        if self.failed or self.conflicts:
            return "partial"
        return "ok"

    @property
    def exit_code(self) -> int:
        """0 unless a critical step failed or conflicted, or the run was cancelled."""
        if self.critical_problems:
            return EXIT_FAILED
        if self.cancelled:
            return EXIT_CANCELLED
        return EXIT_OK

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "halted_by": self.halted_by,
            "summary": self.summary(),
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
