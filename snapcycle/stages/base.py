"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements only
``execute()``.  The ``run_stage()`` wrapper is **not overridable**; it
enforces the canonical ordering:

    execute -> record

so that every stage result lands in the run context under its ``stage_id``
regardless of subclass behaviour.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Any, final

logger = logging.getLogger(__name__)


class StageExecutionError(RuntimeError):
    """Raised when a stage's execute() method fails.

    The original exception is always chained as ``__cause__``.
    """

    def __init__(self, stage_id: str, cause: BaseException) -> None:
        self.stage_id = stage_id
        super().__init__(f"Stage {stage_id} failed: {cause}")


class BaseStage(abc.ABC):
    """Abstract base for all snapcycle pipeline stages.

    Subclasses **must** implement:
        * ``stage_id``: unique identifier (e.g. ``"verify"``).
        * ``display_name``: human-readable name for the run summary.
        * ``execute(run_context)``: the stage's core logic.

    Subclasses **must not** override ``run_stage()``.
    """

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        """Unique stage identifier (e.g. ``'build'``)."""
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        """Human-readable display name."""
        ...

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the stage's core logic.

        Parameters
        ----------
        run_context:
            Mutable dict carrying run-wide state: ``run_id``, ``plan``,
            prior ``stage_results`` and anything earlier stages published.

        Returns
        -------
        dict:
            Structured result dict appropriate to the stage's purpose.
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle (NOT overridable)
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the full stage lifecycle.  **Do not override.**

        Returns the result dict produced by ``execute()``, augmented with
        an ``_elapsed_seconds`` key.
        """
        logger.info("%s [%s] starting", self.display_name, self.stage_id)
        started = time.monotonic()
        try:
            result = self.execute(run_context)
        except Exception as exc:
            logger.error(
                "%s [%s] execution failed: %s",
                self.display_name,
                self.stage_id,
                exc,
            )
            raise StageExecutionError(self.stage_id, exc) from exc

        result["_elapsed_seconds"] = round(time.monotonic() - started, 3)
        self._record(run_context, result)
        return result

    @final
    def _record(self, run_context: dict[str, Any], result: dict[str, Any]) -> None:
        """Store the result in run_context for downstream stages."""
        run_context.setdefault("stage_results", {})[self.stage_id] = result
        logger.info(
            "%s [%s] recorded in %.1fs",
            self.display_name,
            self.stage_id,
            result["_elapsed_seconds"],
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
