"""
Galatea — CLI entrypoint.

Usage:
    python -m galatea.main --help
    python -m galatea.main status
    python -m galatea.main tasks list
    python -m galatea.main stacks install web_server
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from galatea import __version__
from galatea.core.observability.logging_config import FILE_ENV_VAR, configure_cli_logging


@click.group()
@click.version_option(version=__version__, prog_name="galatea")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option("--log-to-file", is_flag=True, help="Also log to a timestamped file in log_dir.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to galatea.yaml (default: search standard locations).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    log_to_file: bool,
    config_path: str | None,
) -> None:
    """Galatea — install and manage tasks and stacks on this machine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    log_dir = None
    if log_to_file and not os.environ.get(FILE_ENV_VAR):
        log_dir = _log_dir(ctx.obj["config_path"])
    configure_cli_logging(debug=debug, verbose=verbose, quiet=quiet, log_dir=log_dir)


def _log_dir(config_path: Path | None) -> Path:
    from galatea.core.config.loader import load_config
    from galatea.core.errors import ConfigError

    try:
        return load_config(config_path).log_dir
    except ConfigError:
        return Path.cwd() / "logs"


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show catalog, runner and host status."""
    from galatea.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    quiet = ctx.obj.get("quiet", False)
    counts = result.counts
    system = result.system

    if not quiet:
        click.secho(f"\n🛠️  Galatea {__version__}", fg="cyan", bold=True)
        click.echo(f"   Config: {result.config_path or '(in-memory default)'}")
        click.echo(f"   Host:   {system.get('os', '?')}")
        if not system.get("root"):
            click.secho("   ⚠️  Not running as root: some tasks may fail", fg="yellow")
        click.echo()

    click.secho(
        f"   Tasks:  {counts.get('tasks', 0)} ({counts.get('tasks_installed', 0)} installed)",
        fg="white", bold=True,
    )
    click.secho(
        f"   Stacks: {counts.get('stacks', 0)} "
        f"({counts.get('stacks_installed', 0)} installed, {counts.get('stacks_partial', 0)} partial)",
        fg="white", bold=True,
    )

    click.echo()
    click.secho("   Runners:", fg="white", bold=True)
    for name, info in result.runners.items():
        icon = "✅" if info["available"] else "❌"
        click.echo(f"     {icon} {name}")
    click.echo()


# ── Register sub-command groups from galatea/ui/cli/ ──────────────

from galatea.ui.cli.config import config  # noqa: E402
from galatea.ui.cli.stacks import stacks  # noqa: E402
from galatea.ui.cli.tasks import tasks  # noqa: E402

cli.add_command(tasks)
cli.add_command(stacks)
cli.add_command(config)


if __name__ == "__main__":
    cli()
