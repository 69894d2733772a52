"""Rich terminal rendering of run summaries and reports."""

from snapcycle.monitor.renderer import RunRenderer

__all__ = ["RunRenderer"]
