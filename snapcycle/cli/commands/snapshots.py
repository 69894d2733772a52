"""Snapshot commands: ``list``, ``purge`` and ``validate``.

``list`` and ``purge`` act only on snapshots carrying the provenance label.
``purge`` is destructive and asks for confirmation unless ``--yes`` is given.
"""

from __future__ import annotations

import typer

from snapcycle.cli import common
from snapcycle.core.packer import PackerRunner
from snapcycle.errors import ConfigurationError
from snapcycle.monitor.renderer import RunRenderer
from snapcycle.stages.reconcile import list_owned, purge


def list_cmd(
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Show the snapshots this tool created, newest first."""
    renderer = RunRenderer(console=common.console)
    with common.exit_on_failure():
        config = common.load_config(log_level)
        common.require_token(config)
        with common.make_client(config) as client:
            owned = list_owned(client, config)
    renderer.print_snapshots(owned, title=f"Snapshots ({config.provenance_label})")


def purge_cmd(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Delete ALL tagged snapshots (destructive)."""
    renderer = RunRenderer(console=common.console)
    with common.exit_on_failure():
        config = common.load_config(log_level)
        common.require_token(config)
        if not yes and not typer.confirm("Delete ALL automated snapshots?", default=False):
            common.console.print("Cancelled")
            raise typer.Exit(code=0)
        with common.make_client(config) as client:
            report = purge(client, config, common.console)
    renderer.print_reconcile(report)
    if report.ok:
        common.console.print("[green]✓ All snapshots deleted[/green]")


def validate_cmd(
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Initialize Packer plugins and validate the template."""
    with common.exit_on_failure():
        config = common.load_config(log_level)
        packer = PackerRunner(
            config.template_dir,
            binary=config.packer_binary,
            prepare_timeout=config.prepare_timeout_seconds,
        )
        if not packer.available():
            raise ConfigurationError([f"{config.packer_binary} is required but not installed"])
        common.console.log("Initializing Packer plugins...")
        packer.init()
        common.console.log("Validating Packer configuration...")
        packer.validate()
    common.console.print("[green]✓ Configuration valid[/green]")
