"""
Command runner — the single place where subprocess is called.

``run`` is for queries: it never raises on a non-zero exit or a missing
binary, it just reports what happened. ``check`` is for actions: any
failure becomes an ApplyFailure that the executor records against the
step.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

from provisioner.core.errors import ApplyFailure

logger = logging.getLogger(__name__)

Command = str | Sequence[str]

# Exit code reported when the executable does not exist (as the shell does)
EXIT_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    command: str
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.return_code == 0


def render_command(cmd: Command) -> str:
    """Human-readable form of a command for logs and errors."""
    if isinstance(cmd, str):
        return cmd
    return shlex.join(cmd)


class CommandRunner:
    """Run external commands.

    Args:
        timeout: Seconds before a command is abandoned (None = wait forever).
        stream: If True, ``check`` lets command output go straight to the
            terminal so installers can show progress and prompt for
            passwords. Queries are always captured.
    """

    def __init__(self, timeout: int | None = None, stream: bool = False):
        self.timeout = timeout
        self.stream = stream

    def which(self, name: str) -> str | None:
        """Path of an executable on PATH, or None."""
        return shutil.which(name)

    def run(
        self,
        cmd: Command,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a query command and capture its output."""
        return self._execute(cmd, cwd=cwd, env=env, capture=True)

    def check(
        self,
        cmd: Command,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run an action command; raise ApplyFailure unless it exits 0."""
        result = self._execute(cmd, cwd=cwd, env=env, capture=not self.stream)
        if not result.ok:
            raise ApplyFailure(
                f"Command failed (exit {result.return_code}): {result.command}",
                command=result.command,
                return_code=result.return_code,
                stderr=result.stderr.strip()[-2000:],
            )
        return result

    def _execute(
        self,
        cmd: Command,
        *,
        cwd: str | None,
        env: dict[str, str] | None,
        capture: bool,
    ) -> CommandResult:
        rendered = render_command(cmd)
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        logger.debug("Executing: %s (cwd=%s)", rendered, cwd)
        start = time.monotonic()
        try:
            proc = subprocess.run(
                cmd,
                shell=isinstance(cmd, str),
                cwd=cwd,
                env=full_env,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(
                command=rendered,
                return_code=EXIT_NOT_FOUND,
                stderr=str(e),
            )
        except subprocess.TimeoutExpired:
            raise ApplyFailure(
                f"Command timed out after {self.timeout}s: {rendered}",
                command=rendered,
            ) from None

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("Exit %d after %dms: %s", proc.returncode, elapsed_ms, rendered)
        return CommandResult(
            command=rendered,
            return_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=elapsed_ms,
        )
