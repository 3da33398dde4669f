"""
Action registry — the validated, ordered list of provisioning steps.

Validation happens once, at construction:
    - duplicate step ids
    - ``depends_on`` references to unknown steps
    - dependency cycles (Kahn's algorithm)

Every problem found is reported in a single InvalidRegistry. After
construction the registry is immutable; narrowing it (``select``,
``without``) returns a new, re-validated registry.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping

from provisioner.core.errors import InvalidRegistry
from provisioner.core.models.step import Step

logger = logging.getLogger(__name__)


def validate_steps(steps: list[Step]) -> list[str]:
    """Validate the step dependency DAG.

    Returns:
        List of error strings (empty = valid).
    """
    errors: list[str] = []
    ids = {s.id for s in steps}

    # Duplicate IDs
    seen: set[str] = set()
    for s in steps:
        if s.id in seen:
            errors.append(f"Duplicate step ID: {s.id}")
        seen.add(s.id)

    # Missing refs
    for s in steps:
        for dep in sorted(s.depends_on):
            if dep not in ids:
                errors.append(f"Step '{s.id}' depends on unknown step '{dep}'")

    if errors:
        return errors

    # Cycle detection (Kahn's algorithm)
    in_degree: dict[str, int] = {s.id: len(s.depends_on) for s in steps}
    adj: dict[str, list[str]] = {s.id: [] for s in steps}
    for s in steps:
        for dep in s.depends_on:
            adj[dep].append(s.id)

    queue = [sid for sid, deg in in_degree.items() if deg == 0]
    processed = 0
    while queue:
        node = queue.pop(0)
        processed += 1
        for successor in adj[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if processed < len(steps):
        stuck = sorted(sid for sid, deg in in_degree.items() if deg > 0)
        errors.append(f"Dependency cycle detected among steps: {', '.join(stuck)}")

    return errors


def next_ready(pending: list[Step], resolved: Mapping[str, object] | set[str]) -> Step | None:
    """First pending step (declared order) whose dependencies are all resolved."""
    for step in pending:
        if all(dep in resolved for dep in step.depends_on):
            return step
    return None


class ActionRegistry:
    """Immutable, validated collection of steps in declared order."""

    def __init__(self, steps: Iterable[Step]):
        self._steps: tuple[Step, ...] = tuple(steps)
        errors = validate_steps(list(self._steps))
        if errors:
            raise InvalidRegistry(errors)
        self._by_id = {s.id: s for s in self._steps}
        logger.debug("Registry validated with %d steps", len(self._steps))

    def steps(self) -> tuple[Step, ...]:
        """All steps in declared order."""
        return self._steps

    def ids(self) -> list[str]:
        return [s.id for s in self._steps]

    def get(self, step_id: str) -> Step | None:
        return self._by_id.get(step_id)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._by_id

    def execution_order(self) -> list[Step]:
        """Order the executor processes steps in when nothing fails.

        Declared order, except that a step is deferred until all of its
        dependencies have been processed.
        """
        pending = list(self._steps)
        done: set[str] = set()
        order: list[Step] = []
        while pending:
            step = next_ready(pending, done)
            assert step is not None  # guaranteed acyclic by validation
            pending.remove(step)
            done.add(step.id)
            order.append(step)
        return order

    def dependencies_of(self, step_id: str) -> set[str]:
        """Transitive dependencies of a step."""
        found: set[str] = set()
        stack = list(self._by_id[step_id].depends_on)
        while stack:
            dep = stack.pop()
            if dep in found:
                continue
            found.add(dep)
            stack.extend(self._by_id[dep].depends_on)
        return found

    def select(self, step_ids: Iterable[str]) -> ActionRegistry:
        """Registry restricted to the given steps plus their dependencies."""
        wanted = list(step_ids)
        unknown = [sid for sid in wanted if sid not in self._by_id]
        if unknown:
            raise InvalidRegistry([f"Unknown step: {sid}" for sid in unknown])

        keep: set[str] = set(wanted)
        for sid in wanted:
            keep |= self.dependencies_of(sid)
        return ActionRegistry(s for s in self._steps if s.id in keep)

    def without(self, step_ids: Iterable[str]) -> ActionRegistry:
        """Registry with the given steps removed.

        Other steps stop depending on the removed ones: the operator has
        taken responsibility for them.
        """
        drop = set(step_ids)
        unknown = sorted(drop - set(self._by_id))
        if unknown:
            raise InvalidRegistry([f"Unknown step: {sid}" for sid in unknown])

        kept = []
        for s in self._steps:
            if s.id in drop:
                continue
            if s.depends_on & drop:
                s = s.evolve(depends_on=s.depends_on - drop)
            kept.append(s)
        return ActionRegistry(kept)

    def with_critical(self, step_ids: Iterable[str]) -> ActionRegistry:
        """Registry with additional steps marked critical."""
        mark = set(step_ids)
        unknown = sorted(mark - set(self._by_id))
        if unknown:
            raise InvalidRegistry([f"Unknown step: {sid}" for sid in unknown])
        return ActionRegistry(
            s.evolve(critical=True) if s.id in mark else s for s in self._steps
        )
