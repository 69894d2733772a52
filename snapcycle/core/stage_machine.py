"""Deterministic stage state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- A stage enters RUNNING only once the stage before it in the plan PASSED
- Cascade blocking on failure
- Every transition recorded in the in-memory history

Plans are ordered chains: each stage depends on its predecessor, so a failure
blocks every later stage that has not started.
"""

from __future__ import annotations

import logging

from snapcycle.models.stages import (
    STAGE_DISPLAY_NAMES,
    VALID_TRANSITIONS,
    StageState,
    StageTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PrerequisiteNotMetError(RuntimeError):
    """Raised when a stage cannot run because its predecessor has not passed."""


class StageMachine:
    """Tracks stage states for a single process-lifetime run.

    Parameters
    ----------
    plan:
        Ordered stage ids of the selected plan.
    """

    def __init__(self, plan: list[str]) -> None:
        if len(set(plan)) != len(plan):
            raise ValueError(f"Plan lists a stage more than once: {plan}")
        self._plan = list(plan)
        self._states: dict[str, StageState] = {
            sid: StageState.NOT_STARTED for sid in plan
        }
        self._history: list[StageTransition] = []

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def get_current_state(self, stage_id: str) -> StageState:
        return self._states.get(stage_id, StageState.NOT_STARTED)

    def get_all_states(self) -> dict[str, StageState]:
        """Return a snapshot of all stage states, in plan order."""
        return dict(self._states)

    @property
    def history(self) -> list[StageTransition]:
        return list(self._history)

    def prerequisite_of(self, stage_id: str) -> str | None:
        index = self._plan.index(stage_id)
        return self._plan[index - 1] if index else None

    def downstream_of(self, stage_id: str) -> list[str]:
        return self._plan[self._plan.index(stage_id) + 1:]

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self, stage_id: str, target_state: StageState, *, detail: str = ""
    ) -> StageTransition:
        """Move *stage_id* to *target_state*.

        Validates:
        1. The transition is allowed by VALID_TRANSITIONS.
        2. If target is RUNNING, the preceding stage has PASSED.
        3. If transition is to FAILED, later stages are cascade-blocked.
        """
        if stage_id not in self._states:
            raise InvalidTransitionError(f"Unknown stage {stage_id!r} for this plan")

        current = self._states[stage_id]
        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING:
            prereq = self.prerequisite_of(stage_id)
            if prereq is not None and self._states[prereq] != StageState.PASSED:
                name = STAGE_DISPLAY_NAMES.get(prereq, prereq)
                raise PrerequisiteNotMetError(
                    f"Cannot start {stage_id}: {name} ({prereq}) is "
                    f"{self._states[prereq].value}"
                )

        record = StageTransition(
            stage_id=stage_id,
            from_state=current,
            to_state=target_state,
            detail=detail,
        )
        self._history.append(record)
        self._states[stage_id] = target_state
        logger.debug("%s: %s -> %s", stage_id, current.value, target_state.value)

        if target_state == StageState.FAILED:
            self._cascade_block(stage_id)

        return record

    def _cascade_block(self, failed_stage_id: str) -> None:
        for blocked_id in self.downstream_of(failed_stage_id):
            if self._states[blocked_id] != StageState.NOT_STARTED:
                continue
            self._states[blocked_id] = StageState.BLOCKED
            self._history.append(
                StageTransition(
                    stage_id=blocked_id,
                    from_state=StageState.NOT_STARTED,
                    to_state=StageState.BLOCKED,
                    detail=f"upstream {failed_stage_id} failed",
                )
            )
