"""
RunOutcome — the result of processing one step.

Outcomes are created by the executor when it finishes with a step
and are immutable afterwards. Like adapter receipts, they capture
failures as data: the executor never lets a step error escape.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from provisioner.core.models.step import Category, SatisfactionState, Step


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class OutcomeStatus(str, Enum):
    SKIPPED = "skipped"
    APPLIED = "applied"
    FAILED = "failed"
    CONFLICT = "conflict"


class SkipReason(str, Enum):
    SATISFIED = "satisfied"
    DEPENDENCY_FAILED = "dependency-failed"
    CANCELLED = "cancelled"
    HALTED = "halted"
    DRY_RUN = "dry-run"


class RunOutcome(BaseModel):
    """Per-step result, retaining the step's label and category for display."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    status: OutcomeStatus
    description: str = ""
    category: Category = Category.APPLICATION
    critical: bool = False

    reason: SkipReason | None = None
    error: str | None = None
    state: SatisfactionState | None = None  # what the probe saw, if it ran

    finished_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the step needs no operator attention."""
        return self.status in (OutcomeStatus.SKIPPED, OutcomeStatus.APPLIED)

    @property
    def blocks_dependents(self) -> bool:
        """Whether steps depending on this one must not run."""
        return self.status is OutcomeStatus.FAILED or (
            self.status is OutcomeStatus.SKIPPED
            and self.reason is SkipReason.DEPENDENCY_FAILED
        )

    @classmethod
    def _for(cls, step: Step, status: OutcomeStatus, **kwargs: Any) -> RunOutcome:
        return cls(
            step_id=step.id,
            status=status,
            description=step.description,
            category=step.category,
            critical=step.critical,
            **kwargs,
        )

    @classmethod
    def applied(cls, step: Step, **kwargs: Any) -> RunOutcome:
        """Create an applied outcome."""
        return cls._for(step, OutcomeStatus.APPLIED, **kwargs)

    @classmethod
    def skipped(cls, step: Step, reason: SkipReason, **kwargs: Any) -> RunOutcome:
        """Create a skipped outcome."""
        return cls._for(step, OutcomeStatus.SKIPPED, reason=reason, **kwargs)

    @classmethod
    def failure(cls, step: Step, error: str, **kwargs: Any) -> RunOutcome:
        """Create a failed outcome."""
        return cls._for(step, OutcomeStatus.FAILED, error=error, **kwargs)

    @classmethod
    def conflict(cls, step: Step, error: str, **kwargs: Any) -> RunOutcome:
        """Create a conflict outcome."""
        return cls._for(step, OutcomeStatus.CONFLICT, error=error, **kwargs)
