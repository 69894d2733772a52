"""Stage: Reconcile, plus the operator-invoked purge.

Only snapshots carrying the provenance label are ever considered.  Each
delete is attempted independently; failures are collected on the report and
never stop the remaining deletes.
"""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console

from snapcycle.core import retention
from snapcycle.core.hcloud import HcloudClient
from snapcycle.errors import ApiError
from snapcycle.models.config import PipelineConfig
from snapcycle.models.images import ImageArtifact
from snapcycle.models.reports import DeleteFailure, ReconcileReport
from snapcycle.stages.base import BaseStage

logger = logging.getLogger(__name__)


def list_owned(client: HcloudClient, config: PipelineConfig) -> list[ImageArtifact]:
    """All provenance-tagged snapshots, newest first."""
    return retention.tagged(
        client.list_snapshots(),
        config.provenance_label_key,
        config.provenance_label_value,
    )


def delete_artifacts(
    client: HcloudClient,
    artifacts: list[ImageArtifact],
    report: ReconcileReport,
    console: Console,
) -> None:
    """Delete each artifact, recording successes and failures on *report*."""
    for artifact in artifacts:
        console.log(f"Deleting old snapshot: {artifact.id} ({artifact.description})")
        try:
            client.delete_image(artifact.id)
        except ApiError as exc:
            logger.error("Failed to delete snapshot %s: %s", artifact.id, exc)
            console.print(
                f"[bold red][ERROR][/bold red] Failed to delete snapshot {artifact.id}: {exc}"
            )
            report.failed.append(DeleteFailure(artifact_id=artifact.id, error=str(exc)))
            continue
        report.deleted.append(artifact.id)


def purge(
    client: HcloudClient, config: PipelineConfig, console: Console
) -> ReconcileReport:
    """Delete every provenance-tagged snapshot.  Callers must confirm first."""
    owned = list_owned(client, config)
    report = ReconcileReport(retention_count=0, planned=owned)
    delete_artifacts(client, owned, report, console)
    return report


class ReconcileStage(BaseStage):
    """Keeps the newest ``retention_count`` tagged snapshots, deletes the rest."""

    def __init__(
        self,
        config: PipelineConfig,
        client: HcloudClient,
        *,
        dry_run: bool = False,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.dry_run = dry_run
        self.console = console or Console()

    @property
    def stage_id(self) -> str:
        return "reconcile"

    @property
    def display_name(self) -> str:
        return "Reconcile"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        keep_count = self.config.retention_count
        self.console.log(f"Cleaning up old snapshots (keeping last {keep_count})...")

        plan = retention.partition(
            self.client.list_snapshots(),
            keep_count,
            self.config.provenance_label_key,
            self.config.provenance_label_value,
        )
        report = ReconcileReport(
            retention_count=keep_count,
            kept=plan.keep,
            planned=plan.delete,
            dry_run=self.dry_run,
        )
        run_context["reconcile"] = report

        if self.dry_run:
            for artifact in plan.delete:
                self.console.log(f"Would delete snapshot: {artifact.id} ({artifact.description})")
        else:
            delete_artifacts(self.client, plan.delete, report, self.console)

        if report.failed:
            self.console.print(
                f"[yellow][WARN][/yellow] {len(report.failed)} snapshot(s) could not be deleted"
            )
        else:
            self.console.log("[green]✓ Old snapshots cleaned up[/green]")
        return {"status": "passed", "report": report}
