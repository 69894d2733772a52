"""Remote resource models decoded from the cloud API.

Absent values in API responses decode to ``None``; callers test for
``None`` rather than comparing against serialised sentinels.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasPath, BaseModel, ConfigDict, Field, field_validator


class ImageArtifact(BaseModel):
    """A snapshot image registered with the cloud provider.

    Immutable once created.  ``size`` is the compressed image size in GB and
    is ``None`` while the snapshot is still being written.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    description: str = ""
    size: float | None = Field(default=None, validation_alias="image_size")
    created_at: datetime = Field(validation_alias="created")
    labels: dict[str, str] = {}

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("labels", mode="before")
    @classmethod
    def _none_labels(cls, value: Any) -> Any:
        return {} if value is None else value

    def has_label(self, key: str, value: str) -> bool:
        """Whether the artifact carries ``key=value``."""
        return self.labels.get(key) == value


class InstanceState(str, Enum):
    """Lifecycle of an ephemeral test instance as seen by the verifier."""

    STARTING = "starting"
    RUNNING = "running"
    DELETED = "deleted"


class EphemeralInstance(BaseModel):
    """A throwaway server created only to verify an ImageArtifact."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str = ""
    public_address: str | None = Field(
        default=None, validation_alias=AliasPath("public_net", "ipv4", "ip")
    )
    state: InstanceState = Field(
        default=InstanceState.STARTING, validation_alias="status"
    )

    @field_validator("state", mode="before")
    @classmethod
    def _decode_status(cls, value: Any) -> Any:
        # The API reports initializing/starting/off/...; only "running" maps.
        if isinstance(value, InstanceState):
            return value
        if value == InstanceState.RUNNING.value:
            return InstanceState.RUNNING
        if value == InstanceState.DELETED.value:
            return InstanceState.DELETED
        return InstanceState.STARTING
