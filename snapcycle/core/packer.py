"""Packer invocation.

Output is not captured: Packer's own progress and errors reach the operator
verbatim.  A non-zero exit or a timeout raises ``BuildToolError``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from snapcycle.errors import BuildToolError

logger = logging.getLogger(__name__)


class PackerRunner:
    """Runs ``packer`` verbs against a template directory.

    Parameters
    ----------
    template_dir:
        Directory holding the ``*.pkr.hcl`` files; used as the working
        directory for every invocation.
    binary:
        Name or path of the packer executable.
    timeout:
        Upper bound in seconds for ``build``.
    prepare_timeout:
        Upper bound in seconds for ``init`` and ``validate``.
    """

    def __init__(
        self,
        template_dir: Path,
        binary: str = "packer",
        timeout: float | None = None,
        prepare_timeout: float | None = 600.0,
    ) -> None:
        self.template_dir = template_dir
        self.binary = binary
        self.timeout = timeout
        self.prepare_timeout = prepare_timeout

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def _run(self, verb: str, *args: str, timeout: float | None = None) -> None:
        cmd = [self.binary, verb, *args]
        logger.info("Running %s (cwd=%s)", " ".join(cmd), self.template_dir)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.template_dir,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise BuildToolError(verb, None, f"timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise BuildToolError(verb, None, str(exc)) from exc
        if result.returncode != 0:
            raise BuildToolError(verb, result.returncode)

    def init(self) -> None:
        self._run("init", ".", timeout=self.prepare_timeout)

    def validate(self) -> None:
        self._run("validate", ".", timeout=self.prepare_timeout)

    def build(self, template_file: str, image_name: str) -> None:
        self._run(
            "build",
            "-var",
            f"image_name={image_name}",
            template_file,
            timeout=self.timeout,
        )
