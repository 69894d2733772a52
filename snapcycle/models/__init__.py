"""snapcycle data models, all Pydantic v2."""

from snapcycle.models.config import PipelineConfig, default_image_name
from snapcycle.models.images import EphemeralInstance, ImageArtifact, InstanceState
from snapcycle.models.reports import (
    CommandOutput,
    DeleteFailure,
    ProbeResult,
    ReconcileReport,
    VerificationReport,
    VerifierPhase,
)
from snapcycle.models.stages import (
    PLANS,
    VALID_TRANSITIONS,
    StageState,
    StageTransition,
)

__all__ = [
    # images
    "ImageArtifact",
    "EphemeralInstance",
    "InstanceState",
    # stages
    "StageState",
    "StageTransition",
    "VALID_TRANSITIONS",
    "PLANS",
    # reports
    "VerifierPhase",
    "CommandOutput",
    "ProbeResult",
    "VerificationReport",
    "DeleteFailure",
    "ReconcileReport",
    # config
    "PipelineConfig",
    "default_image_name",
]
