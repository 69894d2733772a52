"""Exception hierarchy for snapcycle.

Fatal errors derive from ``SnapcycleError`` and unwind to the CLI, which
reports them and exits non-zero.  Probe and cleanup failures are never raised
out of their stage; they are recorded on the stage reports instead.
"""

from __future__ import annotations


class SnapcycleError(RuntimeError):
    """Base class for all fatal snapcycle errors."""


class ConfigurationError(SnapcycleError):
    """Raised by preflight when a credential or external tool is missing.

    Always raised before any remote call is made.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__(
            "Preflight failed: " + "; ".join(self.problems)
        )


class BuildToolError(SnapcycleError):
    """Raised when the image build tool exits non-zero or times out."""

    def __init__(self, verb: str, returncode: int | None, detail: str = "") -> None:
        self.verb = verb
        self.returncode = returncode
        if returncode is None:
            message = f"packer {verb} did not finish: {detail}"
        else:
            message = f"packer {verb} failed with exit code {returncode}"
            if detail:
                message += f": {detail}"
        super().__init__(message)


class ArtifactNotFoundError(SnapcycleError):
    """Raised when a registry query returns no artifact where one is required."""


class ApiError(SnapcycleError):
    """An HTTP-level failure reported by the cloud API.

    Attributes
    ----------
    status_code:
        HTTP status of the response, or ``None`` for transport failures.
    code:
        The API's machine-readable ``error.code`` when present.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class VerificationError(SnapcycleError):
    """Raised when a test instance cannot be brought up for verification."""


class InstanceCreationError(VerificationError):
    """Raised when the create-instance response is unusable.

    ``instance_id`` is set when the API did return an id, in which case the
    instance has already been handed to cleanup.
    """

    def __init__(self, message: str, instance_id: int | None = None) -> None:
        self.instance_id = instance_id
        super().__init__(message)
