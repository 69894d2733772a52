"""snapcycle CLI: Typer-based command-line interface.

Provides the ``snapcycle`` command with subcommands for the full build,
verify and clean cycle, and for listing and purging tagged snapshots.

All operator output uses Rich for formatted terminal display.
"""
