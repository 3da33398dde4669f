"""
Step templates — parameterized factories for recurring kinds of step.

The catalog is mostly data: a Homebrew formula, a cask, an application
bundle, a config block, or an asdf-managed runtime. Each has exactly one
factory here, so every unit of the same kind is probed and applied the
same way.
"""

from __future__ import annotations

from typing import Iterable

from provisioner.adapters.packages.asdf import Asdf
from provisioner.adapters.packages.homebrew import Homebrew
from provisioner.core.errors import ConfigConflict
from provisioner.core.models.config_block import ConfigBlock
from provisioner.core.models.settings import RuntimeSpec
from provisioner.core.models.step import Category, Step
from provisioner.core.services import probes
from provisioner.core.services.config_blocks import BlockResult, ensure_block


def formula_step(
    step_id: str,
    brew: Homebrew,
    formula: str,
    description: str,
    category: Category,
    depends_on: Iterable[str] = ("homebrew",),
    updatable: bool = False,
    **kwargs,
) -> Step:
    """A Homebrew formula, probed with ``brew list --versions``."""
    return Step(
        id=step_id,
        description=description,
        category=category,
        depends_on=frozenset(depends_on),
        probe=probes.package_installed(brew, formula, updatable=updatable),
        apply=lambda: brew.install(formula),
        update=lambda: brew.upgrade(formula),
        **kwargs,
    )


def cask_step(
    step_id: str,
    brew: Homebrew,
    cask: str,
    description: str,
    category: Category,
    depends_on: Iterable[str] = ("homebrew",),
    updatable: bool = False,
    app_bundle: str | None = None,
    **kwargs,
) -> Step:
    """A Homebrew cask.

    When ``app_bundle`` is given (e.g. ``/Applications/Docker.app``) the
    probe checks for the bundle instead, so apps installed outside
    Homebrew are not reinstalled.
    """
    if app_bundle:
        probe = probes.directory_exists(app_bundle, updatable=updatable)
    else:
        probe = probes.package_installed(brew, cask, cask=True, updatable=updatable)
    return Step(
        id=step_id,
        description=description,
        category=category,
        depends_on=frozenset(depends_on),
        probe=probe,
        apply=lambda: brew.install(cask, cask=True),
        update=lambda: brew.upgrade(cask, cask=True),
        **kwargs,
    )


def block_step(
    step_id: str,
    block: ConfigBlock,
    description: str,
    category: Category,
    depends_on: Iterable[str] = (),
    replace: bool = False,
    **kwargs,
) -> Step:
    """A config block in the shell startup file.

    A diverged block probes as stale; applying it without ``replace``
    raises ConfigConflict, which the executor records as a conflict.
    """

    def apply() -> None:
        if ensure_block(block, replace=replace) is BlockResult.CONFLICT:
            raise ConfigConflict(block.marker, str(block.path))

    return Step(
        id=step_id,
        description=description,
        category=category,
        depends_on=frozenset(depends_on),
        probe=probes.block_in_sync(block),
        apply=apply,
        **kwargs,
    )


def runtime_steps(
    runtime: RuntimeSpec,
    asdf: Asdf,
    category: Category = Category.LANGUAGE_RUNTIME,
    depends_on: Iterable[str] = ("asdf",),
    updatable: bool = False,
) -> list[Step]:
    """The two steps every asdf runtime needs.

    ``<name>-plugin`` registers (or updates) the plugin; ``<name>``
    installs the requested version and selects it home-wide.
    """
    name = runtime.name
    plugin_id = f"{name}-plugin"

    def install_runtime() -> None:
        asdf.install(name, runtime.version)
        selected = asdf.resolve(name, runtime.version) or runtime.version
        asdf.set_global(name, selected)

    plugin = Step(
        id=plugin_id,
        description=f"asdf {name} plugin",
        category=category,
        depends_on=frozenset(depends_on),
        probe=probes.plugin_registered(asdf, name, updatable=updatable),
        apply=lambda: asdf.plugin_add(name, runtime.source_url),
        update=lambda: asdf.plugin_update(name),
    )
    version = Step(
        id=name,
        description=f"{name} {runtime.version} (asdf)",
        category=category,
        depends_on=frozenset({plugin_id}),
        probe=probes.runtime_selected(asdf, name, runtime.version),
        apply=install_runtime,
    )
    return [plugin, version]
