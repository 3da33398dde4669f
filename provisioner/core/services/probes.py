"""
Probes — read-only checks of the current machine state.

Each factory returns a zero-argument callable producing a
SatisfactionState. Probes never change anything, and "not found" is
always a normal MISSING result. Only failures to inspect the
environment at all (unreadable files, non-executable binaries) raise
ProbeError.

Factories for installable units take an ``updatable`` flag: when set,
an installed unit reports STALE so the step's update path runs;
otherwise it reports SATISFIED and the step is skipped.
"""

from __future__ import annotations

import functools
import getpass
import os
from pathlib import Path
from typing import Callable, Sequence

from provisioner.adapters.packages.asdf import Asdf
from provisioner.adapters.packages.homebrew import Homebrew
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.errors import ProbeError
from provisioner.core.models.config_block import ConfigBlock
from provisioner.core.models.step import Probe, SatisfactionState
from provisioner.core.services.config_blocks import BlockState, has_line, inspect_block

SATISFIED = SatisfactionState.SATISFIED
MISSING = SatisfactionState.MISSING
STALE = SatisfactionState.STALE


def installed(present: bool, updatable: bool = False) -> SatisfactionState:
    """Map "is it there?" onto the tri-state."""
    if not present:
        return MISSING
    return STALE if updatable else SATISFIED


def _guarded(fn: Callable[[], SatisfactionState]) -> Probe:
    """Turn environment-access errors into ProbeError."""

    @functools.wraps(fn)
    def probe() -> SatisfactionState:
        try:
            return fn()
        except ProbeError:
            raise
        except OSError as e:
            raise ProbeError(f"Cannot inspect environment: {e}") from e

    return probe


def command_available(runner: CommandRunner, name: str, updatable: bool = False) -> Probe:
    """Satisfied when an executable is on PATH."""
    return _guarded(lambda: installed(runner.which(name) is not None, updatable))


def directory_exists(path: str | Path, updatable: bool = False) -> Probe:
    """Satisfied when a directory (or .app bundle) exists."""
    target = Path(path).expanduser()
    return _guarded(lambda: installed(target.is_dir(), updatable))


def file_has_line(path: str | Path, line: str) -> Probe:
    """Satisfied when a file contains a line exactly equal to ``line``."""
    target = Path(path).expanduser()
    return _guarded(lambda: installed(has_line(target, line)))


def block_in_sync(block: ConfigBlock) -> Probe:
    """Satisfied when the block is present verbatim; stale when it diverged."""

    def probe() -> SatisfactionState:
        state = inspect_block(block)
        if state is BlockState.IN_SYNC:
            return SATISFIED
        if state is BlockState.ABSENT:
            return MISSING
        return STALE

    return _guarded(probe)


def command_succeeds(
    runner: CommandRunner,
    cmd: str | Sequence[str],
    expect_output: str | None = None,
) -> Probe:
    """Satisfied when a query command exits 0 (and prints ``expect_output``)."""

    def probe() -> SatisfactionState:
        result = runner.run(cmd)
        if not result.ok:
            return MISSING
        if expect_output is not None and expect_output not in result.stdout:
            return MISSING
        return SATISFIED

    return _guarded(probe)


def package_installed(
    brew: Homebrew,
    package: str,
    cask: bool = False,
    updatable: bool = False,
) -> Probe:
    """Satisfied when Homebrew reports the formula or cask as installed."""
    return _guarded(lambda: installed(brew.query(package, cask=cask) is not None, updatable))


def tool_installed(brew: Homebrew, updatable: bool = False) -> Probe:
    """Satisfied when the package manager itself is installed."""
    return _guarded(lambda: installed(brew.is_available(), updatable))


def plugin_registered(asdf: Asdf, plugin: str, updatable: bool = False) -> Probe:
    """Satisfied when an asdf plugin is registered."""
    return _guarded(lambda: installed(plugin in asdf.plugin_list(), updatable))


def runtime_selected(asdf: Asdf, tool: str, version: str) -> Probe:
    """Satisfied when the desired version is the selected one.

    ``latest`` is resolved through asdf first; if it can't be resolved
    the runtime counts as missing.
    """

    def probe() -> SatisfactionState:
        wanted = asdf.resolve(tool, version)
        if wanted is None:
            return MISSING
        return installed(asdf.current(tool) == wanted)

    return _guarded(probe)


def login_shell_is(runner: CommandRunner, shell: str) -> Probe:
    """Satisfied when the user's login shell is the given shell.

    Reads the directory service record, since $SHELL only changes at the
    next login; falls back to $SHELL where dscl is unavailable.
    """

    def probe() -> SatisfactionState:
        result = runner.run(["dscl", ".", "-read", f"/Users/{getpass.getuser()}", "UserShell"])
        fields = result.stdout.split() if result.ok else []
        current = fields[-1] if fields else os.environ.get("SHELL", "")
        return installed(Path(current).name == shell)

    return _guarded(probe)
