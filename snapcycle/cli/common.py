"""Helpers shared by CLI commands: settings, logging and error reporting."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from snapcycle.config import Settings
from snapcycle.core.hcloud import HcloudClient
from snapcycle.core.orchestrator import Orchestrator
from snapcycle.errors import ConfigurationError, SnapcycleError
from snapcycle.models.config import PipelineConfig
from snapcycle.stages.base import StageExecutionError

console = Console()
err_console = Console(stderr=True)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def setup_logging(level: str) -> None:
    """Route stdlib logging through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
        force=True,
    )


def load_config(log_level: str | None = None, **overrides: Any) -> PipelineConfig:
    """Read settings once, configure logging and freeze the pipeline config."""
    try:
        settings = Settings()
        setup_logging(log_level or settings.log_level)
        return PipelineConfig.from_settings(settings, **overrides)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        raise ConfigurationError(problems) from exc
    except ValueError as exc:
        raise ConfigurationError([str(exc)]) from exc


def make_orchestrator(config: PipelineConfig, **kwargs: Any) -> Orchestrator:
    return Orchestrator(config, console=console, **kwargs)


def make_client(config: PipelineConfig) -> HcloudClient:
    return HcloudClient.from_config(config)


def require_token(config: PipelineConfig) -> None:
    """Fail before any remote call when the API token is missing."""
    if not config.hcloud_token.get_secret_value().strip():
        raise ConfigurationError(["HCLOUD_TOKEN environment variable not set"])


@contextmanager
def exit_on_failure() -> Iterator[None]:
    """Turn fatal errors into a red message and a non-zero exit code."""
    try:
        yield
    except KeyboardInterrupt:
        err_console.print("[bold red][ERROR][/bold red] Interrupted")
        raise typer.Exit(code=EXIT_INTERRUPTED)
    except StageExecutionError as exc:
        cause = exc.__cause__ or exc
        err_console.print(f"[bold red][ERROR][/bold red] {exc.stage_id}: {cause}")
        raise typer.Exit(code=EXIT_FAILURE)
    except SnapcycleError as exc:
        err_console.print(f"[bold red][ERROR][/bold red] {exc}")
        raise typer.Exit(code=EXIT_FAILURE)

