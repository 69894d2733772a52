"""Stages: Build and Artifact Discovery.

The build stage drives Packer through ``init``, ``validate`` and ``build``
with a fresh image name, then discovers the newest snapshot carrying the
provenance label.  Discovery is also a stage of its own for plans that verify
an existing image.
"""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console

from snapcycle.core.hcloud import HcloudClient
from snapcycle.core.packer import PackerRunner
from snapcycle.models.config import PipelineConfig
from snapcycle.models.images import ImageArtifact
from snapcycle.stages.base import BaseStage

logger = logging.getLogger(__name__)


def discover_latest(
    client: HcloudClient, config: PipelineConfig, console: Console
) -> ImageArtifact:
    """Return the newest tagged snapshot, raising ``ArtifactNotFoundError`` if none."""
    console.log("Querying the API for the latest snapshot...")
    artifact = client.latest_snapshot(label_selector=config.provenance_label)
    size = f"{artifact.size}GB" if artifact.size is not None else "size pending"
    console.log(
        f"[green]✓ Found snapshot: {artifact.id} "
        f"({artifact.description}, {size})[/green]"
    )
    return artifact


class BuildStage(BaseStage):
    """Builds a new image with Packer and captures the resulting artifact."""

    def __init__(
        self,
        config: PipelineConfig,
        client: HcloudClient,
        packer: PackerRunner,
        *,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.packer = packer
        self.console = console or Console()

    @property
    def stage_id(self) -> str:
        return "build"

    @property
    def display_name(self) -> str:
        return "Build"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        image_name = self.config.image_name
        self.console.log(f"Building image [bold]{image_name}[/bold] with Packer...")

        self.packer.init()
        self.packer.validate()
        self.console.log("Starting Packer build (this takes ~15-20 minutes)...")
        self.packer.build(self.config.template_file, image_name)
        self.console.log("[green]✓ Packer build complete[/green]")

        artifact = discover_latest(self.client, self.config, self.console)
        run_context["artifact"] = artifact
        return {"status": "passed", "image_name": image_name, "artifact": artifact}


class DiscoverStage(BaseStage):
    """Selects the newest existing snapshot without building."""

    def __init__(
        self,
        config: PipelineConfig,
        client: HcloudClient,
        *,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.console = console or Console()

    @property
    def stage_id(self) -> str:
        return "discover"

    @property
    def display_name(self) -> str:
        return "Artifact Discovery"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        artifact = discover_latest(self.client, self.config, self.console)
        run_context["artifact"] = artifact
        return {"status": "passed", "artifact": artifact}
