"""Stage: Verify.

Proves a freshly built image boots, then releases everything it created.

Phases::

    CREATING -> BOOTING -> (SSH_PROBE -> INSTALLATION_PROBE)? -> CLEANUP -> DONE
                 \\-> ERROR -> CLEANUP (only if an instance id was returned)

The instance delete lives in a ``finally`` block that wraps every step after
the create call, so it runs exactly once whenever an instance id exists, no
matter how the probes end.  Probe failures are warnings; they never fail the
stage.  A failed delete is reported but not raised.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from rich.console import Console

from snapcycle.core.hcloud import HcloudClient
from snapcycle.core.remote_shell import RemoteShell, RemoteShellError
from snapcycle.errors import ApiError, InstanceCreationError
from snapcycle.models.config import PipelineConfig
from snapcycle.models.images import ImageArtifact
from snapcycle.models.reports import ProbeResult, VerificationReport, VerifierPhase
from snapcycle.stages.base import BaseStage

logger = logging.getLogger(__name__)

SSH_PROBE_COMMANDS: list[tuple[str, str]] = [
    ("SSH", 'echo "SSH OK"'),
]

INSTALLATION_PROBE_COMMANDS: list[tuple[str, str]] = [
    ("NixOS Version", "nixos-version"),
    ("Nix Store", 'du -sh /nix/store 2>/dev/null || echo "N/A"'),
    ("Swap", "free -h | grep Swap"),
    ("Channel", "nix-channel --list"),
    ("Cloud-init status", "cloud-init status"),
]

TEST_INSTANCE_LABELS: dict[str, str] = {
    "purpose": "testing",
    "auto_cleanup": "true",
}


def ephemeral_instance_name(now: float | None = None) -> str:
    """Time-derived name with a random suffix so concurrent runs don't collide."""
    ts = int(now if now is not None else time.time())
    return f"test-nixos-{ts}-{uuid.uuid4().hex[:4]}"


class VerifyStage(BaseStage):
    """Boots a throwaway instance from the artifact and smoke-tests it.

    Parameters
    ----------
    config:
        Pipeline configuration (placement, boot strategy, timeouts).
    client:
        Cloud API client used to create and delete the instance.
    shell:
        Remote shell used for the probes.
    sleep, monotonic:
        Injected clock functions; tests pass fakes.
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: HcloudClient,
        shell: RemoteShell,
        *,
        console: Console | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.client = client
        self.shell = shell
        self.console = console or Console()
        self._sleep = sleep
        self._monotonic = monotonic

    @property
    def stage_id(self) -> str:
        return "verify"

    @property
    def display_name(self) -> str:
        return "Verify"

    # ------------------------------------------------------------------
    # Core logic
    # ------------------------------------------------------------------

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        artifact: ImageArtifact = run_context["artifact"]
        report = VerificationReport(artifact_id=artifact.id)
        run_context["verification"] = report

        self.console.log("Testing image by creating a temporary server...")
        try:
            self._run_phases(artifact, report)
        except Exception as exc:
            report.phases.append(VerifierPhase.ERROR)
            report.error = str(exc)
            raise
        finally:
            if report.instance_id is not None:
                self._cleanup(report)

        report.phases.append(VerifierPhase.DONE)
        for warning in report.warnings:
            logger.warning("verification warning: %s", warning)
        return {
            "status": "passed",
            "report": report,
            "warnings": report.warnings,
        }

    def _run_phases(self, artifact: ImageArtifact, report: VerificationReport) -> None:
        # CREATING
        report.phases.append(VerifierPhase.CREATING)
        name = ephemeral_instance_name()
        report.instance_name = name
        self.console.log(f"Creating test server: {name}")
        try:
            instance = self.client.create_server(
                name,
                image_id=artifact.id,
                server_type=self.config.server_type,
                location=self.config.location,
                labels=TEST_INSTANCE_LABELS,
            )
        except InstanceCreationError as exc:
            report.instance_id = exc.instance_id
            raise

        report.instance_id = instance.id
        report.public_address = instance.public_address
        if instance.public_address is None:
            raise InstanceCreationError(
                f"Test server {instance.id} has no public IPv4 address",
                instance_id=instance.id,
            )
        self.console.log(
            f"[green]✓ Server created: {instance.id} (IP: {instance.public_address})[/green]"
        )

        # BOOTING, then SSH_PROBE
        report.phases.append(VerifierPhase.BOOTING)
        if self.config.boot_strategy == "poll":
            ssh = self._poll_until_reachable(instance.public_address)
        else:
            self.console.log(
                f"Waiting for server to boot ({self.config.boot_wait_seconds:g} seconds)..."
            )
            self._sleep(self.config.boot_wait_seconds)
            ssh = self._ssh_probe(instance.public_address)
        report.phases.append(VerifierPhase.SSH_PROBE)
        report.ssh_probe = ssh

        # INSTALLATION_PROBE
        if ssh.ok:
            report.phases.append(VerifierPhase.INSTALLATION_PROBE)
            report.installation_probe = self._installation_probe(instance.public_address)
        else:
            report.installation_probe = ProbeResult(
                name="installation", ok=False, skipped=True,
                message="skipped: SSH unavailable",
            )

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    def _ssh_probe(self, host: str) -> ProbeResult:
        self.console.log("Testing SSH connectivity...")
        try:
            outputs = self.shell.run(host, SSH_PROBE_COMMANDS)
        except RemoteShellError as exc:
            self._warn("SSH connection failed (this might be OK if SSH keys aren't configured)")
            return ProbeResult(name="ssh", ok=False, message=str(exc))

        ok = all(o.ok for o in outputs)
        if ok:
            self.console.log("[green]✓ SSH connection successful[/green]")
            return ProbeResult(name="ssh", ok=True, outputs=outputs)
        self._warn("SSH connected but the test command failed")
        return ProbeResult(
            name="ssh", ok=False, message="remote command failed", outputs=outputs
        )

    def _poll_until_reachable(self, host: str) -> ProbeResult:
        """Probe SSH every poll interval until it answers or the window closes."""
        window = self.config.boot_wait_seconds
        self.console.log(f"Waiting for SSH on {host} (up to {window:g} seconds)...")
        deadline = self._monotonic() + window
        while True:
            result = self._ssh_probe(host)
            if result.ok or self._monotonic() >= deadline:
                return result
            self._sleep(self.config.poll_interval_seconds)

    def _installation_probe(self, host: str) -> ProbeResult:
        self.console.log("Testing NixOS installation...")
        try:
            outputs = self.shell.run(host, INSTALLATION_PROBE_COMMANDS)
        except RemoteShellError as exc:
            self._warn("Could not verify NixOS installation (SSH access required)")
            return ProbeResult(name="installation", ok=False, message=str(exc))

        for output in outputs:
            value = output.stdout or output.stderr or "N/A"
            self.console.print(f"  {output.label}: {value}")

        failed = [o.label for o in outputs if not o.ok]
        if failed:
            self._warn(f"Could not verify NixOS installation ({', '.join(failed)} failed)")
            return ProbeResult(
                name="installation", ok=False,
                message=f"failed: {', '.join(failed)}", outputs=outputs,
            )
        self.console.log("[green]✓ NixOS installation verified[/green]")
        return ProbeResult(name="installation", ok=True, outputs=outputs)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def _cleanup(self, report: VerificationReport) -> None:
        report.phases.append(VerifierPhase.CLEANUP)
        report.cleanup_attempted = True
        self.console.log("Cleaning up test server...")
        try:
            self.client.delete_server(report.instance_id)
        except ApiError as exc:
            report.cleanup_error = str(exc)
            logger.error("Failed to delete test server %s: %s", report.instance_id, exc)
            self.console.print(
                f"[bold red][ERROR][/bold red] Failed to delete test server "
                f"{report.instance_id}; delete it manually: {exc}"
            )
            return
        self.console.log("[green]✓ Test server deleted[/green]")

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.console.print(f"[yellow][WARN][/yellow] {message}")
