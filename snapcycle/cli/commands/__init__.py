"""Command implementations registered by ``snapcycle.cli.app``."""
