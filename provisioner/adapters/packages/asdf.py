"""
asdf adapter — the version manager behind every language runtime.

Every runtime (Ruby, Python, Node.js, Java, Flutter) is driven through
the same five operations: register the plugin, update it, install a
version, and select it as the home-wide default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from provisioner.adapters.base import Adapter
from provisioner.adapters.shell.command import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class Asdf(Adapter):
    """Plugin and version management through the asdf CLI.

    Args:
        runner: Command runner.
        search_dirs: Extra directories to look for the asdf binary in
            when it is not on PATH (e.g. the Homebrew bin directory).
    """

    def __init__(self, runner: CommandRunner, search_dirs: Iterable[str] = ()):
        super().__init__(runner)
        self._search_dirs = list(search_dirs)

    @property
    def name(self) -> str:
        return "asdf"

    def binary(self) -> str | None:
        found = self.runner.which("asdf")
        if found:
            return found
        for directory in self._search_dirs:
            candidate = Path(directory) / "asdf"
            if candidate.is_file():
                return str(candidate)
        return None

    def is_available(self) -> bool:
        return self.binary() is not None

    def _asdf(self) -> str:
        # An unresolved binary still runs and fails with exit 127.
        return self.binary() or "asdf"

    # ── Plugins ─────────────────────────────────────────────────

    def plugin_list(self) -> set[str]:
        """Names of registered plugins (empty if none or asdf is missing)."""
        result = self.runner.run([self._asdf(), "plugin", "list"])
        if not result.ok:
            return set()
        return {line.split()[0] for line in result.stdout.splitlines() if line.strip()}

    def plugin_add(self, plugin: str, source_url: str | None = None) -> CommandResult:
        cmd = [self._asdf(), "plugin", "add", plugin]
        if source_url:
            cmd.append(source_url)
        return self.runner.check(cmd)

    def plugin_update(self, plugin: str) -> CommandResult:
        return self.runner.check([self._asdf(), "plugin", "update", plugin])

    # ── Versions ────────────────────────────────────────────────

    def install(self, tool: str, version: str) -> CommandResult:
        logger.info("Installing %s %s", tool, version)
        return self.runner.check([self._asdf(), "install", tool, version])

    def set_global(self, tool: str, version: str) -> CommandResult:
        return self.runner.check([self._asdf(), "set", "--home", tool, version])

    def latest(self, tool: str) -> str | None:
        """Latest available version of a tool, or None if it can't be resolved."""
        result = self.runner.run([self._asdf(), "latest", tool])
        if not result.ok:
            return None
        value = result.stdout.strip()
        return value.splitlines()[-1].strip() if value else None

    def current(self, tool: str) -> str | None:
        """Version currently selected for a tool, or None.

        Handles both output styles: ``ruby 3.3.0 /path`` and the tabular
        ``Name Version Source Installed`` form.
        """
        result = self.runner.run([self._asdf(), "current", tool])
        if not result.ok:
            return None
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] == tool:
                version = parts[1]
                if version.lower() in ("______", "none", "system"):
                    return None
                return version
        return None

    def resolve(self, tool: str, version: str) -> str | None:
        """Turn ``latest`` into a concrete version; pass others through."""
        if version == "latest":
            return self.latest(tool)
        return version
