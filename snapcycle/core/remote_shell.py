"""Remote shell access for smoke-testing a freshly booted instance.

Defines the ``RemoteShell`` Protocol the verifier depends on and the default
paramiko-backed implementation.  Only read-only commands are ever sent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import paramiko

from snapcycle.models.reports import CommandOutput

logger = logging.getLogger(__name__)


class RemoteShellError(RuntimeError):
    """Raised when a connection to the remote host cannot be established."""


@runtime_checkable
class RemoteShell(Protocol):
    """Anything that can run labelled commands on a host over one connection."""

    def run(self, host: str, commands: list[tuple[str, str]]) -> list[CommandOutput]:
        """Run ``(label, command)`` pairs on *host* in order.

        Raises ``RemoteShellError`` if the connection itself fails.  A command
        exiting non-zero is reported in its ``CommandOutput``, not raised.
        """
        ...


class ParamikoShell:
    """SSH via paramiko with agent or default-key authentication.

    Unknown host keys are accepted: the instance is minutes old and its key
    cannot be known in advance.

    Parameters
    ----------
    username:
        Remote login user.
    key_path:
        Optional private key file; the agent and ``~/.ssh`` keys are tried
        as well.
    connect_timeout:
        TCP connect, banner and auth timeout in seconds.
    command_timeout:
        Channel timeout for each command in seconds.
    """

    def __init__(
        self,
        username: str = "root",
        key_path: Path | None = None,
        connect_timeout: float = 10.0,
        command_timeout: float = 30.0,
    ) -> None:
        self.username = username
        self.key_path = key_path
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    def _connect(self, host: str) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                username=self.username,
                key_filename=str(self.key_path) if self.key_path else None,
                timeout=self.connect_timeout,
                banner_timeout=self.connect_timeout,
                auth_timeout=self.connect_timeout,
                allow_agent=True,
                look_for_keys=True,
            )
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise RemoteShellError(f"SSH to {self.username}@{host} failed: {exc}") from exc
        return client

    def run(self, host: str, commands: list[tuple[str, str]]) -> list[CommandOutput]:
        client = self._connect(host)
        outputs: list[CommandOutput] = []
        try:
            for label, command in commands:
                outputs.append(self._exec(client, label, command))
        finally:
            client.close()
        return outputs

    def _exec(self, client: paramiko.SSHClient, label: str, command: str) -> CommandOutput:
        logger.debug("Executing on remote: %s", command)
        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.command_timeout)
            out = stdout.read().decode("utf-8", errors="replace").strip()
            err = stderr.read().decode("utf-8", errors="replace").strip()
            exit_code = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            # Timeouts surface as OSError; report them like a failed command.
            return CommandOutput(label=label, command=command, exit_code=-1, stderr=str(exc))
        return CommandOutput(
            label=label, command=command, exit_code=exit_code, stdout=out, stderr=err
        )
