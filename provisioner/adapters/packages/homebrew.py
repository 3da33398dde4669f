"""
Homebrew adapter — the package manager every other unit is installed with.

Right after a fresh install brew is not on PATH yet (the current process
never sourced ``brew shellenv``), so the binary is also looked up at the
default prefix for the machine's architecture.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandResult, CommandRunner
from provisioner.core.errors import ApplyFailure

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Default prefixes: Apple Silicon vs Intel
ARM64_BREW = "/opt/homebrew/bin/brew"
INTEL_BREW = "/usr/local/bin/brew"


def default_brew_path(machine: str | None = None) -> str:
    """Where the installer puts brew on this architecture."""
    machine = machine or platform.machine()
    return ARM64_BREW if machine == "arm64" else INTEL_BREW


class Homebrew(Adapter):
    """Install, query and update Homebrew formulae and casks."""

    def __init__(self, runner: CommandRunner, machine: str | None = None):
        super().__init__(runner)
        self._machine = machine

    @property
    def name(self) -> str:
        return "homebrew"

    def binary(self) -> str | None:
        """Path to brew, or None if it isn't installed."""
        found = self.runner.which("brew")
        if found:
            return found
        fallback = default_brew_path(self._machine)
        if Path(fallback).is_file():
            return fallback
        return None

    def is_available(self) -> bool:
        return self.binary() is not None

    def _brew(self) -> str:
        brew = self.binary()
        if brew is None:
            raise ApplyFailure("Homebrew is not installed", command="brew")
        return brew

    def bootstrap(self) -> CommandResult:
        """Run the official install script."""
        logger.info("Installing Homebrew from %s", INSTALL_SCRIPT_URL)
        return self.runner.check(f'/bin/bash -c "$(curl -fsSL {INSTALL_SCRIPT_URL})"')

    def update(self) -> CommandResult:
        return self.runner.check([self._brew(), "update"])

    def install(self, package: str, cask: bool = False) -> CommandResult:
        cmd = [self._brew(), "install"]
        if cask:
            cmd.append("--cask")
        cmd.append(package)
        return self.runner.check(cmd)

    def upgrade(self, package: str, cask: bool = False) -> CommandResult:
        cmd = [self._brew(), "upgrade"]
        if cask:
            cmd.append("--cask")
        cmd.append(package)
        return self.runner.check(cmd)

    def query(self, package: str, cask: bool = False) -> str | None:
        """Installed version of a formula or cask, or None when absent.

        ``brew list --versions`` prints ``name 1.2.3 [1.2.4 ...]`` and
        exits non-zero when the package isn't installed.
        """
        brew = self.binary()
        if brew is None:
            return None

        cmd = [brew, "list", "--versions"]
        if cask:
            cmd.append("--cask")
        cmd.append(package)

        result = self.runner.run(cmd)
        if not result.ok:
            return None
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] == package:
                return parts[-1]
        return None
