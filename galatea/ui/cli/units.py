"""
Shared helpers for the ``tasks`` and ``stacks`` command groups.

Both groups have the same shape: list, show, and one command per
lifecycle phase. The phase commands are built here so the two groups
stay in step.
"""

from __future__ import annotations

import json
import sys

import click

from galatea.core.models.unit import Phase

_PHASE_HELP = {
    Phase.INSTALL: "Install",
    Phase.UNINSTALL: "Uninstall",
    Phase.RESET: "Reset",
    Phase.REMEDIATE: "Remediate",
}

_PHASE_ICON = {
    Phase.INSTALL: "📦",
    Phase.UNINSTALL: "🗑️",
    Phase.RESET: "🔄",
    Phase.REMEDIATE: "🩹",
}


def load_workspace_or_exit(ctx: click.Context, mock: bool = False):
    """Open the workspace, printing the error and exiting 1 on failure."""
    from galatea.core.errors import ConfigError
    from galatea.core.use_cases.workspace import open_workspace

    try:
        return open_workspace(ctx.obj.get("config_path"), mock_mode=mock)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def operation_command(kind: str, phase: Phase) -> click.Command:
    """Build the ``<phase> NAME...`` command for ``kind``."""

    @click.command(name=phase.value)
    @click.argument("names", nargs=-1)
    @click.option("--all", "select_all", is_flag=True, help=f"Target every {kind}.")
    @click.option("--mock", is_flag=True, help="Dry run: mock runner, no payload downloads, state not saved.")
    @click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def command(
        ctx: click.Context,
        names: tuple[str, ...],
        select_all: bool,
        mock: bool,
        as_json: bool,
    ) -> None:
        from galatea.core.use_cases.run import run_operation

        if not names and not select_all:
            click.secho(f"❌ Name at least one {kind}, or pass --all", fg="red")
            sys.exit(1)

        if mock and not as_json:
            click.secho("   Mode: mock (no real execution)", fg="yellow")

        result = run_operation(
            kind,
            phase.value,
            names=list(names),
            select_all=select_all,
            config_path=ctx.obj.get("config_path"),
            mock_mode=mock,
        )

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
            sys.exit(0 if result.ok else 1)

        print_run_result(result, phase)
        if not result.ok:
            sys.exit(1)

    command.help = f"{_PHASE_HELP[phase]} one or more {kind}s."
    return command


def print_run_result(result, phase: Phase) -> None:
    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        return

    batch = result.batch
    click.secho(
        f"{_PHASE_ICON[phase]} {phase.value.capitalize()}: {', '.join(result.selected)}",
        fg="cyan", bold=True,
    )
    if batch.skipped_count:
        click.secho(f"   ⏭️  {batch.skipped_count} skipped (not applicable)", fg="yellow")
    for err in batch.errors:
        label = err.unit_name or f"#{err.index}"
        click.secho(f"   ❌ {label}: {err.message}", fg="red")

    color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(batch.status, "white")
    click.secho(f"\nResult: {batch.success_count}/{batch.total} succeeded", fg=color, bold=True)


def add_operation_commands(group: click.Group, kind: str) -> None:
    for phase in Phase:
        group.add_command(operation_command(kind, phase))
