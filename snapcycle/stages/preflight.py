"""Stage: Preflight.

Verifies, without touching the network, that everything later stages need
is present:
    - a non-empty API token;
    - when the plan builds an image, the ``packer`` binary and template;
    - when the plan verifies an image and a key file is configured, that file.

The HTTP and SSH client libraries are package dependencies imported by the
stages themselves, so they are not checked here.

All problems are collected and raised together as a ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import shutil
from typing import Any

from rich.console import Console

from snapcycle.errors import ConfigurationError
from snapcycle.models.config import PipelineConfig
from snapcycle.stages.base import BaseStage

logger = logging.getLogger(__name__)


class PreflightStage(BaseStage):
    """Checks credentials and external tools before any side effect."""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        require_build_tool: bool = False,
        require_ssh_key: bool = False,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.require_build_tool = require_build_tool
        self.require_ssh_key = require_ssh_key
        self.console = console or Console()

    @property
    def stage_id(self) -> str:
        return "preflight"

    @property
    def display_name(self) -> str:
        return "Preflight"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        self.console.log("Checking requirements...")
        problems: list[str] = []
        checks: list[dict[str, Any]] = []

        if not self.config.hcloud_token.get_secret_value().strip():
            problems.append("HCLOUD_TOKEN environment variable not set")
        checks.append({"name": "HCLOUD_TOKEN", "found": not problems})

        if self.require_build_tool:
            resolved = shutil.which(self.config.packer_binary)
            checks.append({"name": self.config.packer_binary, "found": resolved is not None})
            if resolved is None:
                problems.append(
                    f"{self.config.packer_binary} is required but not installed"
                )
            template = self.config.template_path
            checks.append({"name": str(template), "found": template.is_file()})
            if not template.is_file():
                problems.append(f"Packer template {template} not found")

        # Without an explicit key, paramiko falls back to the agent and ~/.ssh.
        key_path = self.config.ssh_key_path
        if self.require_ssh_key and key_path is not None:
            checks.append({"name": str(key_path), "found": key_path.is_file()})
            if not key_path.is_file():
                problems.append(f"SSH key {key_path} not found")

        if problems:
            logger.debug("preflight found %d problem(s)", len(problems))
            raise ConfigurationError(problems)

        self.console.log("[green]✓ All requirements met[/green]")
        return {"status": "passed", "checks": checks}
