"""
CLI commands for tasks.

Thin wrappers over the workspace and run use cases.
"""

from __future__ import annotations

import json
import sys

import click

from galatea.ui.cli.units import add_operation_commands, load_workspace_or_exit


@click.group()
def tasks() -> None:
    """Tasks — list, show, install, uninstall, reset, remediate."""


@tasks.command("list")
@click.option("--tag", default=None, help="Only tasks carrying this tag.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_tasks(ctx: click.Context, tag: str | None, as_json: bool) -> None:
    """List every task with its installation state."""
    workspace = load_workspace_or_exit(ctx)
    items = workspace.catalog.tasks()
    if tag:
        items = [t for t in items if tag in t.tags]

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in items], indent=2))
        return

    if not items:
        click.secho("⚠️  No tasks defined", fg="yellow")
        return

    click.secho(f"🧩 Tasks ({len(items)}):", fg="cyan", bold=True)
    for task in items:
        color = "green" if task.installed else "white"
        click.secho(f"   {task.status_marker} [{task.script_kind.letter}] {task.name}", fg=color, nl=False)
        if task.description:
            click.echo(f"  {task.description}")
        else:
            click.echo()
    click.echo()


@tasks.command("show")
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show_task(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show one task's definition and state."""
    workspace = load_workspace_or_exit(ctx)
    task = workspace.catalog.find_task(name)
    if task is None:
        click.secho(f"❌ Unknown task: {name}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(task.to_dict(), indent=2))
        return

    click.secho(f"\n🧩 {task.name}", fg="cyan", bold=True)
    if task.description:
        click.echo(f"   {task.description}")
    click.echo(f"   Type:      {task.script_kind.value}")
    click.echo(f"   Source:    {task.url}")
    click.echo(f"   Installed: {'yes' if task.installed else 'no'}")
    if task.cleanup_command:
        click.echo(f"   Cleanup:   {task.cleanup_command}")
    if task.dependencies:
        click.echo(f"   Depends:   {', '.join(task.dependencies)}")
    if task.tags:
        click.echo(f"   Tags:      {', '.join(task.tags)}")
    if task.requires_reboot:
        click.secho("   ⚠️  Requires reboot", fg="yellow")
    click.echo()


add_operation_commands(tasks, "task")
