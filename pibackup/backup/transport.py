"""Where commands aimed at the target host run.

A backup of the machine running pibackup executes everything locally; a
backup of another host runs the device commands over ssh. Callers build
argument lists once and let the transport wrap them.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from typing import Sequence

from pibackup.config.settings import DEFAULT_SSH_COMMAND
from pibackup.domain.models import BackupConfig


class Transport(ABC):
    """Runs commands on the target host."""

    is_remote = False

    @abstractmethod
    def wrap(self, argv: Sequence[str]) -> list[str]:
        """Return the local argv that runs ``argv`` on the target."""

    @abstractmethod
    def describe(self) -> str:
        """Human readable location, e.g. "on local system"."""


class LocalTransport(Transport):
    def wrap(self, argv: Sequence[str]) -> list[str]:
        return list(argv)

    def describe(self) -> str:
        return "on local system"

    def __repr__(self) -> str:
        return "LocalTransport()"


class RemoteTransport(Transport):
    """Runs commands on ``host`` through ssh.

    ssh joins its trailing arguments into one remote shell command, so every
    argument is quoted to survive that second round of word splitting.
    """

    is_remote = True

    def __init__(self, host: str, ssh_command: str = DEFAULT_SSH_COMMAND):
        self.host = host
        self.ssh_command = ssh_command

    def wrap(self, argv: Sequence[str]) -> list[str]:
        return [self.ssh_command, self.host] + [shlex.quote(arg) for arg in argv]

    def describe(self) -> str:
        return f"on {self.host}"

    def __repr__(self) -> str:
        return f"RemoteTransport(host={self.host!r}, ssh_command={self.ssh_command!r})"


def select_transport(
    config: BackupConfig, ssh_command: str = DEFAULT_SSH_COMMAND
) -> Transport:
    if config.is_local:
        return LocalTransport()
    return RemoteTransport(config.target, ssh_command=ssh_command)
