"""
Mock command runner — test double for every external command.

Commands succeed with empty output unless a response has been
configured. ``which`` only finds executables that were registered
with ``set_available``.
"""

from __future__ import annotations

from provisioner.adapters.shell.command import (
    Command,
    CommandResult,
    CommandRunner,
    render_command,
)


class MockRunner(CommandRunner):
    """CommandRunner that records commands instead of executing them."""

    def __init__(self, default_return_code: int = 0):
        super().__init__()
        self._default_return_code = default_return_code
        self._responses: dict[str, CommandResult] = {}
        self._executables: dict[str, str] = {}
        self._call_log: list[str] = []

    @property
    def call_log(self) -> list[str]:
        """Every command this mock has been asked to run, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def set_available(self, name: str, path: str | None = None) -> None:
        """Make ``which(name)`` find an executable."""
        self._executables[name] = path or f"/usr/local/bin/{name}"

    def set_response(
        self,
        cmd: Command,
        return_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Set a custom result for an exact command."""
        rendered = render_command(cmd)
        self._responses[rendered] = CommandResult(
            command=rendered,
            return_code=return_code,
            stdout=stdout,
            stderr=stderr,
        )

    def set_failure(self, cmd: Command, stderr: str = "Mock failure") -> None:
        """Configure a command to exit 1."""
        self.set_response(cmd, return_code=1, stderr=stderr)

    def ran(self, cmd: Command) -> bool:
        """Whether an exact command was executed."""
        return render_command(cmd) in self._call_log

    def which(self, name: str) -> str | None:
        return self._executables.get(name)

    def _execute(
        self,
        cmd: Command,
        *,
        cwd: str | None,
        env: dict[str, str] | None,
        capture: bool,
    ) -> CommandResult:
        rendered = render_command(cmd)
        self._call_log.append(rendered)

        if rendered in self._responses:
            return self._responses[rendered]

        return CommandResult(command=rendered, return_code=self._default_return_code)

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
