"""Main Typer application: imports and registers all CLI commands.

Entry point: ``snapcycle`` (configured via pyproject.toml ``[project.scripts]``).

Commands: all, build, validate, test, clean, list, purge.
"""

from __future__ import annotations

import typer

from snapcycle.cli.commands.pipeline import all_cmd, build_cmd, clean_cmd, verify_cmd
from snapcycle.cli.commands.snapshots import list_cmd, purge_cmd, validate_cmd

app = typer.Typer(
    name="snapcycle",
    help="snapcycle: build, verify and clean up cloud machine images.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="all", help="Build, test and clean (full cycle).")(all_cmd)
app.command(name="build", help="Build the image with Packer (~15-20 minutes).")(build_cmd)
app.command(name="validate", help="Initialize Packer plugins and validate the template.")(
    validate_cmd
)
app.command(name="test", help="Test the latest snapshot on a temporary server.")(verify_cmd)
app.command(name="clean", help="Clean up old snapshots (keep the newest N).")(clean_cmd)
app.command(name="list", help="Show current snapshots.")(list_cmd)
app.command(name="purge", help="Delete ALL automated snapshots (destructive!).")(purge_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
