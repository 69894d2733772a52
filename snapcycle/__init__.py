"""snapcycle: build, verify and clean up cloud machine images.

A single sequential pipeline:
  - Preflight: credentials and external tools, before any remote call
  - Build: Packer init/validate/build, then discover the newest snapshot
  - Verify: boot a throwaway server, probe it over SSH, always delete it
  - Reconcile: keep the newest N tagged snapshots, delete the rest
"""

__version__ = "0.1.0"
__description__ = "Build, verify and clean up cloud machine images"

from snapcycle.core.orchestrator import Orchestrator
from snapcycle.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
