"""
CLI commands for the configuration file.

Thin wrappers over ``galatea.core.config.loader``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

SOURCE_KINDS = ("task", "stack")


def _load_or_exit(ctx: click.Context):
    from galatea.core.config.loader import load_config
    from galatea.core.errors import ConfigError

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _save_or_exit(config) -> None:
    from galatea.core.config.loader import save_config
    from galatea.core.errors import ConfigError

    if config.config_file_path is None:
        click.secho("❌ No configuration file to save to (use --config)", fg="red")
        sys.exit(1)
    try:
        save_config(config, config.config_file_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


@click.group()
def config() -> None:
    """Configuration — show, init, manage sources."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, as_json: bool) -> None:
    """Show the active configuration."""
    cfg = _load_or_exit(ctx)
    data = cfg.to_dict()

    if as_json:
        click.echo(json.dumps({"config_path": str(cfg.config_file_path or ""), **data}, indent=2))
        return

    click.secho(f"⚙️  {cfg.config_file_path or '(in-memory default)'}", fg="cyan", bold=True)
    for key in ("tasks_dir", "stacks_dir", "state_dir", "log_dir", "download_timeout", "ui_theme"):
        click.echo(f"   {key}: {data[key]}")
    for key in ("task_sources", "stack_sources"):
        click.echo(f"   {key}:")
        for url in data[key]:
            click.echo(f"     • {url}")
        if not data[key]:
            click.echo("     (none)")


@config.command("init")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def init(path: Path, force: bool) -> None:
    """Write an example configuration to PATH."""
    from galatea.core.config.loader import create_example_config
    from galatea.core.errors import ConfigError

    if path.exists() and not force:
        click.secho(f"❌ {path} already exists (use --force to overwrite)", fg="red")
        sys.exit(1)
    try:
        create_example_config(path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    click.secho(f"✅ Example configuration written to {path}", fg="green")


@config.command("add-source")
@click.argument("kind", type=click.Choice(SOURCE_KINDS))
@click.argument("url")
@click.pass_context
def add_source(ctx: click.Context, kind: str, url: str) -> None:
    """Add a task or stack source URL."""
    cfg = _load_or_exit(ctx)
    changed = cfg.add_task_source(url) if kind == "task" else cfg.add_stack_source(url)
    if not changed:
        click.secho(f"⚠️  {kind} source already present: {url}", fg="yellow")
        return
    _save_or_exit(cfg)
    click.secho(f"✅ Added {kind} source: {url}", fg="green")


@config.command("remove-source")
@click.argument("kind", type=click.Choice(SOURCE_KINDS))
@click.argument("url")
@click.pass_context
def remove_source(ctx: click.Context, kind: str, url: str) -> None:
    """Remove a task or stack source URL."""
    cfg = _load_or_exit(ctx)
    changed = cfg.remove_task_source(url) if kind == "task" else cfg.remove_stack_source(url)
    if not changed:
        click.secho(f"⚠️  {kind} source not found: {url}", fg="yellow")
        sys.exit(1)
    _save_or_exit(cfg)
    click.secho(f"✅ Removed {kind} source: {url}", fg="green")
