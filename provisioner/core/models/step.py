"""
Step model — one declarative provisioning unit.

A step pairs a read-only probe with a side-effecting apply action.
Steps hold callables, so they are frozen dataclasses rather than
pydantic models; they are built once when the catalog is assembled
and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable


class SatisfactionState(str, Enum):
    """What a probe observed about a unit."""

    SATISFIED = "satisfied"
    MISSING = "missing"
    STALE = "stale"  # installed, but an update path exists


class Category(str, Enum):
    """Grouping tag used when reporting."""

    PACKAGE_MANAGER = "package-manager"
    SHELL = "shell"
    EDITOR = "editor"
    APPLICATION = "application"
    LANGUAGE_RUNTIME = "language-runtime"
    MOBILE_TOOLING = "mobile-tooling"
    CONTAINER = "container"


Probe = Callable[[], SatisfactionState]
Apply = Callable[[], None]


@dataclass(frozen=True)
class Step:
    """A provisioning unit: probe it, apply it when not satisfied."""

    id: str
    description: str
    probe: Probe
    apply: Apply
    category: Category = Category.APPLICATION
    depends_on: frozenset[str] = field(default_factory=frozenset)
    critical: bool = False
    update: Apply | None = None  # used instead of apply when the probe says stale

    def __post_init__(self) -> None:
        # Accept any iterable of ids for convenience.
        if not isinstance(self.depends_on, frozenset):
            object.__setattr__(self, "depends_on", frozenset(self.depends_on))

    def action_for(self, state: SatisfactionState) -> Apply:
        """The callable to run for an unsatisfied probe result."""
        if state is SatisfactionState.STALE and self.update is not None:
            return self.update
        return self.apply

    def evolve(self, **changes) -> Step:
        return replace(self, **changes)
