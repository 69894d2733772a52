"""Rich terminal rendering for runs, snapshots and reports.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
- bold red  : BLOCKED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from snapcycle.core.stage_machine import StageMachine
from snapcycle.models.config import PipelineConfig
from snapcycle.models.images import ImageArtifact
from snapcycle.models.reports import ReconcileReport, VerificationReport
from snapcycle.models.stages import STAGE_DISPLAY_NAMES, StageState

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}


class RunRenderer:
    """Renders snapcycle results as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Run summary
    # ------------------------------------------------------------------

    def render_stages(self, run_id: str, machine: StageMachine) -> Panel:
        """Table of every stage in the plan with its final state."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Stage", min_width=20)
        table.add_column("State", min_width=12, justify="center")
        table.add_column("Details")

        details: dict[str, str] = {}
        for transition in machine.history:
            if transition.detail:
                details[transition.stage_id] = transition.detail

        for i, (stage_id, state) in enumerate(machine.get_all_states().items()):
            table.add_row(
                str(i),
                STAGE_DISPLAY_NAMES.get(stage_id, stage_id),
                _STATE_ICONS.get(state, state.value),
                details.get(stage_id, "[dim]-[/dim]"),
            )

        return Panel(
            table,
            title=f"[bold]Run {run_id}[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def render_snapshots(self, artifacts: list[ImageArtifact], title: str) -> Table:
        table = Table(title=title, header_style="bold cyan")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Description")
        table.add_column("Size", justify="right")
        table.add_column("Created")
        for artifact in artifacts:
            size = f"{artifact.size}GB" if artifact.size is not None else "[dim]-[/dim]"
            table.add_row(
                str(artifact.id),
                artifact.description or "[dim]-[/dim]",
                size,
                artifact.created_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
            )
        return table

    def print_snapshots(self, artifacts: list[ImageArtifact], title: str = "Snapshots") -> None:
        if not artifacts:
            self.console.print("[dim]No snapshots found.[/dim]")
            return
        self.console.print(self.render_snapshots(artifacts, title))

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def print_verification(self, report: VerificationReport) -> None:
        phases = " -> ".join(p.value.upper() for p in report.phases)
        lines = [
            f"[bold]Snapshot:[/bold]  {report.artifact_id}",
            f"[bold]Server:[/bold]    {report.instance_id or '-'} ({report.instance_name or '-'})",
            f"[bold]Phases:[/bold]    {phases}",
        ]
        for warning in report.warnings:
            lines.append(f"[yellow]Warning:[/yellow]   {warning}")
        if report.cleanup_error:
            lines.append(f"[bold red]Cleanup failed:[/bold red] {report.cleanup_error}")
        border = "yellow" if report.warnings or report.cleanup_error else "green"
        self.console.print(
            Panel("\n".join(lines), title="[bold]Verification[/bold]", border_style=border)
        )

    def print_reconcile(self, report: ReconcileReport) -> None:
        verb = "Would delete" if report.dry_run else "Deleted"
        count = len(report.planned) if report.dry_run else len(report.deleted)
        lines = [
            f"[bold]Kept:[/bold]      {len(report.kept)} (retention {report.retention_count})",
            f"[bold]{verb}:[/bold]   {count}",
        ]
        for failure in report.failed:
            lines.append(f"[bold red]Failed:[/bold red]    {failure.artifact_id}: {failure.error}")
        border = "green" if report.ok else "red"
        self.console.print(
            Panel("\n".join(lines), title="[bold]Snapshot Cleanup[/bold]", border_style=border)
        )

    # ------------------------------------------------------------------
    # Deployment summary
    # ------------------------------------------------------------------

    def print_deploy_summary(self, artifact: ImageArtifact, config: PipelineConfig) -> None:
        """Show how to launch a server from the new snapshot."""
        cli = (
            f"hcloud server create --type {config.server_type} "
            f"--image {artifact.id} --name my-server --location {config.location}"
        )
        terraform = (
            'resource "hcloud_server" "nixos" {\n'
            '  name        = "my-server"\n'
            f'  image       = "{artifact.id}"\n'
            f'  server_type = "{config.server_type}"\n'
            f'  location    = "{config.location}"\n'
            "}"
        )
        body = Group(
            Text.from_markup(f"[bold]Snapshot ID:[/bold] {artifact.id}\n"),
            Text.from_markup("[bold]Deploy with hcloud CLI:[/bold]"),
            Text(f"  {cli}\n"),
            Text.from_markup("[bold]Deploy with Terraform:[/bold]"),
            Syntax(terraform, "hcl", theme="ansi_dark", background_color="default"),
        )
        self.console.print(
            Panel(body, title="[bold]Build Summary[/bold]", border_style="green", padding=(1, 2))
        )
