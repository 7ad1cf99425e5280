"""Custom exceptions for backup operations.

This module defines a hierarchy of exceptions so the command line entry point
can tell usage mistakes apart from environment and execution failures.

Exception Hierarchy:
    BackupError (base)
        ├── UsageError
        │   └── MissingParameterError
        ├── EnvironmentCheckError
        │   └── ToolNotFoundError
        ├── DeviceError
        │   └── DeviceNotFoundError
        ├── CommandFailedError
        └── RotationError

Usage:
    from pibackup.storage.exceptions import DeviceNotFoundError

    if not device_present(output, drive):
        raise DeviceNotFoundError(drive)
"""

from __future__ import annotations

from typing import Optional, Sequence


class BackupError(Exception):
    """Base exception for all backup operations."""



class UsageError(BackupError):
    """Command line arguments could not be turned into a configuration."""



class MissingParameterError(UsageError):
    """A required command line parameter was not supplied."""

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(f"Missing required parameter: {parameter}")


class EnvironmentCheckError(BackupError):
    """Base exception for problems with the execution environment."""



class ToolNotFoundError(EnvironmentCheckError):
    """A required external tool is not available on PATH."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"check: {tool} not found")


class DeviceError(BackupError):
    """Base exception for device-related errors."""



class DeviceNotFoundError(DeviceError):
    """The drive to back up does not exist on the target."""

    def __init__(self, device_name: str, hint: str = "Verify disks by running 'sudo fdisk -l'"):
        self.device_name = device_name
        self.hint = hint
        msg = f"{device_name} does not exist on the target."
        if hint:
            msg += f" {hint}"
        super().__init__(msg)


class CommandFailedError(BackupError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        message = output.strip() if output else ""
        if not message:
            message = f"exit status {returncode}"
        super().__init__(f"Command failed ({' '.join(self.command)}): {message}")


class RotationError(BackupError):
    """Rotating the numbered backup images failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
