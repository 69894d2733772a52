"""Pipeline commands: ``all``, ``build``, ``test`` and ``clean``.

Each command runs one stage plan through the Orchestrator and prints a run
summary.  Any fatal stage failure exits with code 1.
"""

from __future__ import annotations

from typing import Any

import typer

from snapcycle.cli import common
from snapcycle.models.config import PipelineConfig
from snapcycle.monitor.renderer import RunRenderer


def _run_plan(
    plan: str,
    config_overrides: dict[str, Any],
    *,
    dry_run: bool = False,
    log_level: str | None = None,
) -> tuple[PipelineConfig, dict[str, Any]]:
    console = common.console
    renderer = RunRenderer(console=console)
    with common.exit_on_failure():
        config = common.load_config(log_level, **config_overrides)
        orchestrator = common.make_orchestrator(config, dry_run=dry_run)
        try:
            run_context = orchestrator.run(plan)
        finally:
            if orchestrator.stage_machine is not None:
                console.print()
                console.print(
                    renderer.render_stages(orchestrator.run_id, orchestrator.stage_machine)
                )
            orchestrator.close()

    if "verification" in run_context:
        renderer.print_verification(run_context["verification"])
    if "reconcile" in run_context:
        renderer.print_reconcile(run_context["reconcile"])
    return config, run_context


def all_cmd(
    image_name: str = typer.Option(
        None, "--image-name", help="Name for the new image (default: timestamped)."
    ),
    keep: int = typer.Option(
        None, "--keep", "-k", min=0, help="Number of tagged snapshots to retain."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Build, verify and clean up: the full cycle."""
    common.console.log("[bold]NixOS Hetzner Image Builder - Automated Build & Test[/bold]")
    config, run_context = _run_plan(
        "all", {"image_name": image_name, "retention_count": keep}, log_level=log_level
    )
    RunRenderer(console=common.console).print_deploy_summary(run_context["artifact"], config)
    common.console.log("[green]✓ All done![/green]")


def build_cmd(
    image_name: str = typer.Option(
        None, "--image-name", help="Name for the new image (default: timestamped)."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Build a new image with Packer and report the resulting snapshot."""
    _run_plan("build", {"image_name": image_name}, log_level=log_level)


def verify_cmd(
    boot_strategy: str = typer.Option(
        None, "--boot-strategy", help="'fixed' wait or 'poll' SSH until reachable."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Verify the latest snapshot on a temporary server."""
    _run_plan("test", {"boot_strategy": boot_strategy}, log_level=log_level)


def clean_cmd(
    keep: int = typer.Option(
        None, "--keep", "-k", min=0, help="Number of tagged snapshots to retain."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be deleted without deleting."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Delete old tagged snapshots, keeping the newest ones."""
    _run_plan("clean", {"retention_count": keep}, dry_run=dry_run, log_level=log_level)
