"""Stage report models: outputs of the verify and reconcile stages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from snapcycle.models.images import ImageArtifact


class VerifierPhase(str, Enum):
    """Phases of a single verification run."""

    CREATING = "creating"
    BOOTING = "booting"
    SSH_PROBE = "ssh_probe"
    INSTALLATION_PROBE = "installation_probe"
    CLEANUP = "cleanup"
    DONE = "done"
    ERROR = "error"


class CommandOutput(BaseModel):
    """Result of one remote command."""

    model_config = ConfigDict(frozen=True)

    label: str
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProbeResult(BaseModel):
    """Outcome of a best-effort probe.  A failed probe is a warning."""

    model_config = ConfigDict(frozen=True)

    name: str
    ok: bool
    skipped: bool = False
    message: str = ""
    outputs: list[CommandOutput] = []


class VerificationReport(BaseModel):
    """Output of the verify stage.

    ``phases`` is the ordered list of phases actually entered.
    ``cleanup_error`` is set when deleting the test instance failed; the
    operator must then remove ``instance_id`` by hand.
    """

    artifact_id: int
    instance_id: int | None = None
    instance_name: str = ""
    public_address: str | None = None
    phases: list[VerifierPhase] = []
    ssh_probe: ProbeResult | None = None
    installation_probe: ProbeResult | None = None
    cleanup_attempted: bool = False
    cleanup_error: str | None = None
    error: str | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def warnings(self) -> list[str]:
        found: list[str] = []
        for probe in (self.ssh_probe, self.installation_probe):
            if probe is not None and not probe.ok and not probe.skipped:
                found.append(f"{probe.name}: {probe.message}")
        return found


class DeleteFailure(BaseModel):
    """A single artifact the reconciler failed to delete."""

    model_config = ConfigDict(frozen=True)

    artifact_id: int
    error: str


class ReconcileReport(BaseModel):
    """Output of the reconcile and purge operations."""

    retention_count: int
    kept: list[ImageArtifact] = []
    planned: list[ImageArtifact] = []
    deleted: list[int] = []
    failed: list[DeleteFailure] = []
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed
