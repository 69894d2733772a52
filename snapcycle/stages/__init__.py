"""snapcycle pipeline stages.

Each stage subclasses ``BaseStage`` and implements ``execute()``; the
orchestrator runs them in plan order through ``run_stage()``.
"""

from snapcycle.stages.base import BaseStage, StageExecutionError
from snapcycle.stages.build import BuildStage, DiscoverStage
from snapcycle.stages.preflight import PreflightStage
from snapcycle.stages.reconcile import ReconcileStage
from snapcycle.stages.verify import VerifyStage

__all__ = [
    "BaseStage",
    "StageExecutionError",
    "PreflightStage",
    "BuildStage",
    "DiscoverStage",
    "VerifyStage",
    "ReconcileStage",
]
