"""
Workstation Provisioner — CLI entrypoint.

Usage:
    provision --help
    provision run
    provision run --profile app-dev --dry-run
    provision status
    provision plan
    provision config check
"""

from __future__ import annotations

import json
import signal
import sys
import threading
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.engine.report import EXIT_USAGE, RunReport
from provisioner.core.models.outcome import OutcomeStatus, RunOutcome, SkipReason
from provisioner.core.models.settings import PROFILES
from provisioner.core.observability.logging_config import resolve_level, setup_from_env

_STATUS_STYLE = {
    OutcomeStatus.APPLIED: ("✓", "green"),
    OutcomeStatus.SKIPPED: ("⊘", "white"),
    OutcomeStatus.FAILED: ("✗", "red"),
    OutcomeStatus.CONFLICT: ("≠", "yellow"),
}


@click.group()
@click.version_option(version=__version__, prog_name="provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provisioner.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Workstation Provisioner — idempotent developer machine setup."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_from_env(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


# ── Rendering ───────────────────────────────────────────────────


def _would_apply(outcome: RunOutcome) -> bool:
    return outcome.reason is SkipReason.DRY_RUN


def _outcome_label(outcome: RunOutcome) -> str:
    if _would_apply(outcome):
        state = outcome.state.value if outcome.state else "missing"
        return f"would apply ({state})"
    if outcome.reason is not None:
        return outcome.reason.value
    return outcome.status.value


def _print_report(report: RunReport, verbose: bool = False) -> None:
    for category, outcomes in report.by_category().items():
        click.secho(f"   {category}", fg="white", bold=True)
        for outcome in outcomes:
            icon, color = ("•", "cyan") if _would_apply(outcome) else _STATUS_STYLE[outcome.status]
            click.secho(f"     {icon} {outcome.step_id:<24}", fg=color, nl=False)
            label = _outcome_label(outcome)
            critical = " [critical]" if outcome.critical else ""
            timing = f" ({outcome.duration_ms}ms)" if verbose and outcome.duration_ms else ""
            click.echo(f" {outcome.description} — {label}{critical}{timing}")
            if outcome.error and outcome.status is not OutcomeStatus.SKIPPED:
                for line in outcome.error.split("\n")[:8]:
                    click.echo(f"       │ {line}")
            elif outcome.error and verbose:
                click.echo(f"       │ {outcome.error}")
        click.echo()

    summary = report.summary()
    status_color = {"ok": "green", "partial": "yellow"}.get(report.status, "red")
    click.secho(
        f"   Result: {summary['applied']} applied · {summary['skipped']} skipped · "
        f"{summary['failed']} failed · {summary['conflicts']} conflicts",
        fg=status_color,
        bold=True,
    )
    if report.halted_by:
        click.secho(f"   Halted: critical step '{report.halted_by}' failed", fg="red")
    if report.cancelled:
        click.secho("   Cancelled: remaining steps were not run", fg="yellow")
    if report.conflicts:
        click.echo("   Conflicting blocks were left untouched; re-run with "
                   "--replace-conflicts to overwrite them.")


def _install_cancel_handler(cancel: threading.Event):
    """First Ctrl-C finishes the current step, then stops. Returns the old handler."""

    def handler(signum, frame):  # noqa: ARG001
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()
        click.secho("\n   Stopping after the current step (Ctrl-C again to abort)…",
                    fg="yellow", err=True)

    return signal.signal(signal.SIGINT, handler)


# ── Commands ────────────────────────────────────────────────────


_profile_option = click.option(
    "--profile",
    "-p",
    "profiles",
    multiple=True,
    type=click.Choice(PROFILES),
    help="Profile(s) to provision (default: from settings).",
)
_only_option = click.option(
    "--only", "only", multiple=True, help="Run only these step ids (plus dependencies)."
)
_json_option = click.option(
    "--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."
)


@cli.command()
@_profile_option
@_only_option
@click.option("--dry-run", is_flag=True, help="Probe only; change nothing.")
@click.option("--update/--no-update", "update", default=None,
              help="Run update paths for already-installed units.")
@click.option("--replace-conflicts", is_flag=True,
              help="Overwrite config blocks whose content diverged.")
@_json_option
@click.pass_context
def run(
    ctx: click.Context,
    profiles: tuple[str, ...],
    only: tuple[str, ...],
    dry_run: bool,
    update: bool | None,
    replace_conflicts: bool,
    as_json: bool,
) -> None:
    """Provision the workstation.

    Examples:

        provision run

        provision run --profile app-dev

        provision run --only flutter --dry-run
    """
    from provisioner.core.use_cases.provision import run_provision

    cancel = threading.Event()
    previous = _install_cancel_handler(cancel)
    try:
        result = run_provision(
            config_path=ctx.obj.get("config_path"),
            profiles=list(profiles) or None,
            only=list(only) or None,
            dry_run=dry_run,
            update=update,
            replace_conflicts=True if replace_conflicts else None,
            cancel=cancel,
        )
    finally:
        signal.signal(signal.SIGINT, previous)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(EXIT_USAGE)
        assert result.report is not None
        sys.exit(result.report.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_USAGE)

    report = result.report
    assert report is not None and result.settings is not None

    mode_label = "[dry-run] " if dry_run else ""
    click.secho(f"\n⚡ {mode_label}Provisioning — {result.settings.rc_path}", fg="cyan", bold=True)
    click.echo(f"   Profiles: {', '.join(result.settings.profiles)} | Steps: {report.total}")
    click.echo()
    _print_report(report, verbose=ctx.obj.get("verbose", False))
    click.echo()

    sys.exit(report.exit_code)


@cli.command()
@_profile_option
@_only_option
@_json_option
@click.pass_context
def status(ctx: click.Context, profiles: tuple[str, ...], only: tuple[str, ...],
           as_json: bool) -> None:
    """Probe every step and show what a run would do."""
    from provisioner.core.use_cases.provision import run_provision

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        profiles=list(profiles) or None,
        only=list(only) or None,
        dry_run=True,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(EXIT_USAGE if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_USAGE)

    report = result.report
    assert report is not None
    pending = sum(1 for o in report.outcomes if _would_apply(o))

    click.secho("\n🔍 Workstation status", fg="cyan", bold=True)
    click.echo()
    _print_report(report, verbose=ctx.obj.get("verbose", False))
    click.echo()
    if pending:
        click.secho(f"   {pending} step(s) would be applied by 'provision run'", fg="cyan")
    else:
        click.secho("   ✅ Everything is provisioned", fg="green")
    click.echo()


@cli.command()
@_profile_option
@_only_option
@_json_option
@click.pass_context
def plan(ctx: click.Context, profiles: tuple[str, ...], only: tuple[str, ...],
         as_json: bool) -> None:
    """List the steps a run would process, in order (no probing)."""
    from provisioner.core.use_cases.provision import prepare

    result = prepare(
        config_path=ctx.obj.get("config_path"),
        profiles=list(profiles) or None,
        only=list(only) or None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(EXIT_USAGE if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(EXIT_USAGE)

    registry = result.registry
    assert registry is not None

    click.secho(f"\n📋 Plan — {len(registry)} step(s)", fg="cyan", bold=True)
    for index, step in enumerate(registry.execution_order(), start=1):
        critical = click.style(" [critical]", fg="red") if step.critical else ""
        deps = f"  ← {', '.join(sorted(step.depends_on))}" if step.depends_on else ""
        click.echo(f"   {index:>2}. {step.id:<24} {step.description}{critical}{deps}")
    click.echo()


@cli.group()
def config() -> None:
    """Settings commands."""


@config.command("check")
@_json_option
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate provisioner.yml and the resulting step selection."""
    from provisioner.core.use_cases.provision import prepare

    result = prepare(config_path=ctx.obj.get("config_path"))
    valid = result.error is None

    if as_json:
        data = {"valid": valid}
        if result.error:
            data["error"] = result.error
        else:
            assert result.settings is not None and result.registry is not None
            data["settings"] = result.settings.model_dump(mode="json")
            data["steps"] = len(result.registry)
        click.echo(json.dumps(data, indent=2))
        sys.exit(0 if valid else EXIT_USAGE)

    if not valid:
        click.secho("❌ Configuration error:", fg="red", bold=True)
        click.echo(f"   • {result.error}")
        click.echo()
        sys.exit(EXIT_USAGE)

    assert result.settings is not None and result.registry is not None
    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   Shell startup file: {result.settings.rc_path}")
    click.echo(f"   Profiles: {', '.join(result.settings.profiles)}")
    click.echo(f"   Steps: {len(result.registry)}")
    click.echo()


if __name__ == "__main__":
    cli()
