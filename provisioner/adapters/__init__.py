"""Adapters — bindings for the external tools the provisioner drives.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import Adapter
from provisioner.adapters.mock import MockRunner
from provisioner.adapters.shell.command import CommandResult, CommandRunner

__all__ = [
    "Adapter",
    "CommandResult",
    "CommandRunner",
    "MockRunner",
]
