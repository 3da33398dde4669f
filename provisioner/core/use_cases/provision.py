"""
Provision use case — from operator intent to a run report.

Loads settings, applies command-line overrides, builds the registry
from the catalog, and executes it. Configuration and registry errors
are returned as ``error`` rather than raised, so every entry point can
report them the same way.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.config.loader import load_settings
from provisioner.core.engine.executor import execute
from provisioner.core.engine.registry import ActionRegistry
from provisioner.core.engine.report import RunReport
from provisioner.core.errors import ConfigError, InvalidRegistry
from provisioner.core.models.settings import Settings
from provisioner.core.services.catalog import build_registry

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of planning or running a provisioning pass."""

    settings: Settings | None = None
    registry: ActionRegistry | None = None
    report: RunReport | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        if self.settings:
            result["shell_rc"] = str(self.settings.rc_path)
            result["profiles"] = self.settings.profiles
        if self.registry is not None and self.report is None:
            result["steps"] = [
                {
                    "id": step.id,
                    "description": step.description,
                    "category": step.category.value,
                    "critical": step.critical,
                    "depends_on": sorted(step.depends_on),
                }
                for step in self.registry.execution_order()
            ]
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def prepare(
    config_path: Path | None = None,
    profiles: list[str] | None = None,
    only: list[str] | None = None,
    update: bool | None = None,
    replace_conflicts: bool | None = None,
    runner: CommandRunner | None = None,
    machine: str | None = None,
) -> ProvisionResult:
    """Load settings and build the registry, without running anything."""
    result = ProvisionResult()

    try:
        settings = load_settings(config_path)
        overrides: dict = {}
        if profiles:
            overrides["profiles"] = list(profiles)
        if update is not None:
            overrides["update_existing"] = update
        if replace_conflicts is not None:
            overrides["replace_conflicts"] = replace_conflicts
        if overrides:
            settings = Settings.model_validate({**settings.model_dump(), **overrides})
        result.settings = settings
    except ConfigError as e:
        result.error = str(e)
        return result
    except ValueError as e:  # pydantic ValidationError from overrides
        result.error = f"Invalid option: {e}"
        return result

    try:
        result.registry = build_registry(settings, runner=runner, machine=machine, only=only)
    except InvalidRegistry as e:
        result.error = f"Invalid step selection: {e}"

    return result


def run_provision(
    config_path: Path | None = None,
    profiles: list[str] | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    update: bool | None = None,
    replace_conflicts: bool | None = None,
    runner: CommandRunner | None = None,
    machine: str | None = None,
    cancel: threading.Event | None = None,
) -> ProvisionResult:
    """Provision the workstation.

    Args:
        config_path: Explicit provisioner.yml (default: search).
        profiles: Override the profiles from settings.
        only: Run just these steps (plus their dependencies).
        dry_run: Probe only; nothing is applied.
        update: Override ``update_existing``.
        replace_conflicts: Override ``replace_conflicts``.
        runner: Command runner override (tests use a mock).
        machine: Architecture override.
        cancel: Cooperative cancellation flag, checked between steps.

    Returns:
        ProvisionResult with the run report, or an error.
    """
    result = prepare(
        config_path=config_path,
        profiles=profiles,
        only=only,
        update=update,
        replace_conflicts=replace_conflicts,
        runner=runner,
        machine=machine,
    )
    if result.error or result.registry is None:
        return result

    logger.info(
        "%s %d step(s)", "Checking" if dry_run else "Provisioning", len(result.registry)
    )
    result.report = execute(result.registry, dry_run=dry_run, cancel=cancel)
    return result
