"""Environment-driven settings.

Settings are read once from ``SNAPCYCLE_*`` environment variables or a
``.env`` file.  The API token, server type, location and image name also
accept the bare ``HCLOUD_TOKEN``, ``SERVER_TYPE``, ``LOCATION`` and
``IMAGE_NAME`` variables used by the Packer tooling.

Examples
--------
::

    export HCLOUD_TOKEN=...
    export SNAPCYCLE_RETENTION_COUNT=5
    export SNAPCYCLE_BOOT_STRATEGY=poll
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings with environment variable overrides.

    Use ``snapcycle.models.config.PipelineConfig.from_settings`` to freeze
    these into the configuration passed to the pipeline.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SNAPCYCLE_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Cloud API
    hcloud_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("SNAPCYCLE_HCLOUD_TOKEN", "HCLOUD_TOKEN"),
    )
    api_url: str = "https://api.hetzner.cloud/v1"
    http_timeout_seconds: float = 30.0

    # Test instance placement
    server_type: str = Field(
        default="cx22",
        validation_alias=AliasChoices("SNAPCYCLE_SERVER_TYPE", "SERVER_TYPE"),
    )
    location: str = Field(
        default="nbg1",
        validation_alias=AliasChoices("SNAPCYCLE_LOCATION", "LOCATION"),
    )

    # Image build
    image_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SNAPCYCLE_IMAGE_NAME", "IMAGE_NAME"),
    )
    image_name_prefix: str = "nixos-25.11-netboot"
    template_dir: Path = Path(".")
    template_file: str = "hetzner-nixos.pkr.hcl"
    packer_binary: str = "packer"
    build_timeout_seconds: float = 7200.0
    prepare_timeout_seconds: float = 600.0

    # Provenance and retention
    provenance_label_key: str = "created_by"
    provenance_label_value: str = "packer"
    retention_count: int = Field(default=3, ge=0)

    # Verification
    boot_wait_seconds: float = 60.0
    boot_strategy: Literal["fixed", "poll"] = "fixed"
    poll_interval_seconds: float = 5.0
    ssh_user: str = "root"
    ssh_key_path: Path | None = None
    ssh_connect_timeout: float = 10.0
    ssh_command_timeout: float = 30.0

    # Observability
    log_level: str = "WARNING"
