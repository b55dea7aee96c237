"""
CLI commands for stacks.

Thin wrappers over the workspace and run use cases.
"""

from __future__ import annotations

import json
import sys

import click

from galatea.ui.cli.units import add_operation_commands, load_workspace_or_exit


@click.group()
def stacks() -> None:
    """Stacks — list, show, install, uninstall, reset, remediate."""


@stacks.command("list")
@click.option("--tag", default=None, help="Only stacks carrying this tag.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_stacks(ctx: click.Context, tag: str | None, as_json: bool) -> None:
    """List every stack with its installation state."""
    workspace = load_workspace_or_exit(ctx)
    items = workspace.catalog.stacks()
    if tag:
        items = [s for s in items if tag in s.tags]

    if as_json:
        click.echo(json.dumps([s.to_dict() for s in items], indent=2))
        return

    if not items:
        click.secho("⚠️  No stacks defined", fg="yellow")
        return

    click.secho(f"📚 Stacks ({len(items)}):", fg="cyan", bold=True)
    for stack in items:
        color = "green" if stack.fully_installed else "yellow" if stack.partially_installed else "white"
        click.secho(f"   {stack.status_marker} {stack.name}", fg=color, nl=False)
        click.echo(f"  ({len(stack.task_names)} tasks) {stack.description}".rstrip())
    click.echo()


@stacks.command("show")
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show_stack(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show one stack and the state of its members."""
    workspace = load_workspace_or_exit(ctx)
    stack = workspace.catalog.find_stack(name)
    if stack is None:
        click.secho(f"❌ Unknown stack: {name}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(stack.to_dict(), indent=2))
        return

    click.secho(f"\n📚 {stack.name}", fg="cyan", bold=True)
    if stack.description:
        click.echo(f"   {stack.description}")
    click.echo(f"   Status: {stack.status_label}")
    click.echo("   Tasks:")
    for task_name in stack.task_names:
        task = workspace.catalog.find_task(task_name)
        if task is None:
            click.secho(f"     ❓ {task_name} (not defined)", fg="red")
        else:
            click.echo(f"     {task.status_marker} {task_name}")
    if stack.tags:
        click.echo(f"   Tags:   {', '.join(stack.tags)}")
    if stack.requires_reboot:
        click.secho("   ⚠️  Requires reboot", fg="yellow")
    click.echo()


add_operation_commands(stacks, "stack")
