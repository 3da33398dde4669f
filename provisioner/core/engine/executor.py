"""
Engine executor — the idempotent provisioning loop.

For each step, in declared order (deferring steps whose dependencies
have not been processed yet):

    cancelled?          → skipped (cancelled), and so is everything after
    dependency failed?  → skipped (dependency-failed), nothing runs
    probe satisfied?    → skipped (satisfied)
    otherwise           → apply / update → applied | conflict | failed

A failed critical step halts the run. Nothing a step raises ever
escapes: failures are recorded as outcomes, and the report is always
returned.
"""

from __future__ import annotations

import logging
import threading
import time

from provisioner.core.engine.registry import ActionRegistry, next_ready
from provisioner.core.engine.report import RunReport
from provisioner.core.errors import ConfigConflict, ProbeError
from provisioner.core.models.outcome import OutcomeStatus, RunOutcome, SkipReason
from provisioner.core.models.step import SatisfactionState, Step

logger = logging.getLogger(__name__)

_MARKERS = {
    OutcomeStatus.APPLIED: "✓",
    OutcomeStatus.SKIPPED: "⊘",
    OutcomeStatus.FAILED: "✗",
    OutcomeStatus.CONFLICT: "≠",
}


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _failed_dependencies(step: Step, outcomes: dict[str, RunOutcome]) -> list[str]:
    return sorted(
        dep for dep in step.depends_on if dep in outcomes and outcomes[dep].blocks_dependents
    )


def process_step(
    step: Step,
    outcomes: dict[str, RunOutcome],
    dry_run: bool = False,
) -> RunOutcome:
    """Probe one step and apply it if needed. Never raises."""
    failed_deps = _failed_dependencies(step, outcomes)
    if failed_deps:
        return RunOutcome.skipped(
            step,
            SkipReason.DEPENDENCY_FAILED,
            error=f"Depends on failed step(s): {', '.join(failed_deps)}",
        )

    start = time.monotonic()

    # ── Probe ────────────────────────────────────────────────────
    try:
        state = step.probe()
    except ProbeError as e:
        return RunOutcome.failure(step, f"Probe error: {e}", duration_ms=_elapsed_ms(start))
    except Exception as e:
        logger.error("Probe for %s raised unexpectedly: %s", step.id, e)
        return RunOutcome.failure(
            step, f"Unexpected probe error: {e}", duration_ms=_elapsed_ms(start)
        )

    if state is SatisfactionState.SATISFIED:
        return RunOutcome.skipped(
            step, SkipReason.SATISFIED, state=state, duration_ms=_elapsed_ms(start)
        )

    if dry_run:
        return RunOutcome.skipped(
            step, SkipReason.DRY_RUN, state=state, duration_ms=_elapsed_ms(start)
        )

    # ── Apply ────────────────────────────────────────────────────
    action = step.action_for(state)
    logger.debug("%s is %s, running %s", step.id, state.value, getattr(action, "__name__", action))
    try:
        action()
    except ConfigConflict as e:
        return RunOutcome.conflict(step, str(e), state=state, duration_ms=_elapsed_ms(start))
    except Exception as e:
        return RunOutcome.failure(step, str(e), state=state, duration_ms=_elapsed_ms(start))

    return RunOutcome.applied(step, state=state, duration_ms=_elapsed_ms(start))


def _log_outcome(outcome: RunOutcome) -> None:
    marker = _MARKERS[outcome.status]
    label = outcome.status.value
    if outcome.reason is not None:
        label = f"{label} ({outcome.reason.value})"
    if outcome.status is OutcomeStatus.FAILED:
        logger.warning("%s %s → %s: %s", marker, outcome.step_id, label, outcome.error)
    else:
        logger.info("%s %s → %s", marker, outcome.step_id, label)


def _close_out(
    pending: list[Step],
    outcomes: dict[str, RunOutcome],
    report: RunReport,
    reason: SkipReason,
) -> None:
    """Record every pending step without probing it."""
    while pending:
        step = next_ready(pending, outcomes)
        assert step is not None  # guaranteed acyclic by validation
        pending.remove(step)
        failed_deps = _failed_dependencies(step, outcomes)
        if failed_deps:
            outcome = RunOutcome.skipped(
                step,
                SkipReason.DEPENDENCY_FAILED,
                error=f"Depends on failed step(s): {', '.join(failed_deps)}",
            )
        else:
            outcome = RunOutcome.skipped(step, reason)
        outcomes[step.id] = outcome
        report.add(outcome)
        _log_outcome(outcome)


def execute(
    registry: ActionRegistry,
    dry_run: bool = False,
    cancel: threading.Event | None = None,
) -> RunReport:
    """Run every step of a registry and report the outcomes.

    Args:
        registry: Validated steps.
        dry_run: Probe only; unsatisfied steps are recorded as dry-run skips.
        cancel: Checked between steps; once set, remaining steps are
            recorded as cancelled.

    Returns:
        The RunReport, partial if the run was halted or cancelled.
    """
    report = RunReport(dry_run=dry_run)
    outcomes: dict[str, RunOutcome] = {}
    pending = list(registry.steps())

    while pending:
        if cancel is not None and cancel.is_set():
            logger.warning("Cancelled — %d step(s) not run", len(pending))
            report.cancelled = True
            _close_out(pending, outcomes, report, SkipReason.CANCELLED)
            break

        step = next_ready(pending, outcomes)
        assert step is not None  # guaranteed acyclic by validation
        pending.remove(step)

        outcome = process_step(step, outcomes, dry_run=dry_run)
        outcomes[step.id] = outcome
        report.add(outcome)
        _log_outcome(outcome)

        if step.critical and outcome.status is OutcomeStatus.FAILED:
            logger.error("Critical step %s failed — halting", step.id)
            report.halted_by = step.id
            _close_out(pending, outcomes, report, SkipReason.HALTED)
            break

    return report
