"""Pipeline orchestrator: the central coordinator for snapcycle runs.

The Orchestrator wires the cloud API client, the Packer runner and the remote
shell into the stages of a plan, then drives them strictly forward through
the StageMachine.  A fatal stage failure marks the stage FAILED, blocks every
later stage and propagates to the caller.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from rich.console import Console

from snapcycle.core.hcloud import HcloudClient
from snapcycle.core.packer import PackerRunner
from snapcycle.core.remote_shell import ParamikoShell, RemoteShell
from snapcycle.core.stage_machine import StageMachine
from snapcycle.models.config import PipelineConfig
from snapcycle.models.stages import PLANS, StageState
from snapcycle.stages.base import BaseStage, StageExecutionError
from snapcycle.stages.build import BuildStage, DiscoverStage
from snapcycle.stages.preflight import PreflightStage
from snapcycle.stages.reconcile import ReconcileStage
from snapcycle.stages.verify import VerifyStage

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs a named plan of stages against one immutable configuration.

    Parameters
    ----------
    config:
        Pipeline configuration shared by every stage.
    client, packer, shell:
        Collaborators; defaults are built from *config*.  Tests inject fakes.
    console:
        Rich console for operator-facing output.
    sleep:
        Blocking wait used by the verifier; tests pass a no-op.
    dry_run:
        When set, the reconciler reports what it would delete.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        client: HcloudClient | None = None,
        packer: PackerRunner | None = None,
        shell: RemoteShell | None = None,
        console: Console | None = None,
        sleep: Callable[[float], None] = time.sleep,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.console = console or Console()
        self._owns_client = client is None
        self.client = client or HcloudClient.from_config(config)
        self.packer = packer or PackerRunner(
            config.template_dir,
            binary=config.packer_binary,
            timeout=config.build_timeout_seconds,
            prepare_timeout=config.prepare_timeout_seconds,
        )
        self.shell = shell or ParamikoShell(
            username=config.ssh_user,
            key_path=config.ssh_key_path,
            connect_timeout=config.ssh_connect_timeout,
            command_timeout=config.ssh_command_timeout,
        )
        self._sleep = sleep
        self.dry_run = dry_run

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = f"sc-{ts}-{uuid.uuid4().hex[:3]}"
        self.stage_machine: StageMachine | None = None

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Stage construction
    # ------------------------------------------------------------------

    def build_stage(self, stage_id: str, plan: list[str]) -> BaseStage:
        """Instantiate the stage for *stage_id* within *plan*."""
        if stage_id == "preflight":
            return PreflightStage(
                self.config,
                require_build_tool="build" in plan,
                require_ssh_key="verify" in plan,
                console=self.console,
            )
        if stage_id == "build":
            return BuildStage(self.config, self.client, self.packer, console=self.console)
        if stage_id == "discover":
            return DiscoverStage(self.config, self.client, console=self.console)
        if stage_id == "verify":
            return VerifyStage(
                self.config, self.client, self.shell,
                console=self.console, sleep=self._sleep,
            )
        if stage_id == "reconcile":
            return ReconcileStage(
                self.config, self.client, dry_run=self.dry_run, console=self.console
            )
        raise ValueError(f"Unknown stage: {stage_id}")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, plan_name: str) -> dict[str, Any]:
        """Execute every stage of *plan_name* in order.

        Returns the run context, which carries ``stage_results`` and the
        reports published by individual stages (``artifact``,
        ``verification``, ``reconcile``).  Raises ``StageExecutionError`` on
        the first fatal stage failure.
        """
        try:
            plan = PLANS[plan_name]
        except KeyError:
            raise ValueError(f"Unknown plan {plan_name!r}; expected one of {sorted(PLANS)}")

        machine = StageMachine(plan)
        self.stage_machine = machine

        run_context: dict[str, Any] = {
            "run_id": self.run_id,
            "plan": plan_name,
            "stage_results": {},
        }
        logger.info("Run %s: plan %s = %s", self.run_id, plan_name, plan)

        for stage_id in plan:
            stage = self.build_stage(stage_id, plan)
            machine.transition(stage_id, StageState.RUNNING)
            try:
                stage.run_stage(run_context)
            except StageExecutionError as exc:
                machine.transition(
                    stage_id, StageState.FAILED, detail=str(exc.__cause__ or exc)
                )
                raise
            machine.transition(stage_id, StageState.PASSED)

        return run_context

    def get_states(self) -> dict[str, StageState]:
        """Return current state of all stages of the last run."""
        if self.stage_machine is None:
            return {}
        return self.stage_machine.get_all_states()
