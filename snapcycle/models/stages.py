"""Stage state machine models and the standard pipeline plans."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """Strict state model for each pipeline stage."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    BLOCKED = "blocked"
    FAILED = "failed"
    PASSED = "passed"


# Valid state transitions, enforced structurally by StageMachine.
# Stages are never retried within a process, so FAILED is terminal too.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.BLOCKED: set(),
    StageState.FAILED: set(),
    StageState.PASSED: set(),
}


class StageTransition(BaseModel):
    """Records a single state transition for the run summary."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    from_state: StageState
    to_state: StageState
    detail: str = ""


STAGE_DISPLAY_NAMES: dict[str, str] = {
    "preflight": "Preflight",
    "build": "Build",
    "discover": "Artifact Discovery",
    "verify": "Verify",
    "reconcile": "Reconcile",
}

# Ordered stage plans, one per CLI command. Each stage depends on the one
# before it.
PLANS: dict[str, list[str]] = {
    "all": ["preflight", "build", "verify", "reconcile"],
    "build": ["preflight", "build"],
    "test": ["preflight", "discover", "verify"],
    "clean": ["preflight", "reconcile"],
}
