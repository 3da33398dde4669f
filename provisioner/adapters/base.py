"""
Adapter base — the contract between the catalog and external tools.

Catalog steps never call external tools directly; they go through an
adapter, which itself goes through a CommandRunner. Swapping the runner
for a mock is how every step is tested without touching the machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.adapters.shell.command import CommandRunner


class Adapter(ABC):
    """Abstract base class for tool adapters.

    Query methods never raise for "not installed"; they return None or
    an empty collection. Mutating methods raise ApplyFailure when the
    underlying command fails.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'homebrew', 'asdf')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is installed. Never raises."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
