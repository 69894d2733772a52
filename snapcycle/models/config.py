"""Immutable pipeline configuration, built once at startup."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from snapcycle.config import Settings


def default_image_name(prefix: str, now: datetime | None = None) -> str:
    """Return a timestamp-derived image name, e.g. ``prefix-20260101-1200``."""
    now = now or datetime.now()
    return f"{prefix}-{now.strftime('%Y%m%d-%H%M')}"


class PipelineConfig(BaseModel):
    """Configuration shared by every stage of a run.

    Frozen: stages receive it explicitly and never consult the environment.
    """

    model_config = ConfigDict(frozen=True)

    hcloud_token: SecretStr = SecretStr("")
    api_url: str = "https://api.hetzner.cloud/v1"
    http_timeout_seconds: float = 30.0

    server_type: str = "cx22"
    location: str = "nbg1"

    image_name: str = Field(
        default_factory=lambda: default_image_name("nixos-25.11-netboot")
    )
    template_dir: Path = Path(".")
    template_file: str = "hetzner-nixos.pkr.hcl"
    packer_binary: str = "packer"
    build_timeout_seconds: float = 7200.0
    prepare_timeout_seconds: float = 600.0

    provenance_label_key: str = "created_by"
    provenance_label_value: str = "packer"
    retention_count: int = Field(default=3, ge=0)

    boot_wait_seconds: float = 60.0
    boot_strategy: Literal["fixed", "poll"] = "fixed"
    poll_interval_seconds: float = 5.0
    ssh_user: str = "root"
    ssh_key_path: Path | None = None
    ssh_connect_timeout: float = 10.0
    ssh_command_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> PipelineConfig:
        """Freeze *settings* into a PipelineConfig, applying CLI overrides."""
        values = settings.model_dump(exclude={"image_name_prefix", "log_level"})
        if not values.get("image_name"):
            values["image_name"] = default_image_name(settings.image_name_prefix)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def template_path(self) -> Path:
        return self.template_dir / self.template_file

    @property
    def provenance_label(self) -> str:
        """The provenance tag as a ``key=value`` label selector."""
        return f"{self.provenance_label_key}={self.provenance_label_value}"
