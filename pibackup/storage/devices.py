"""Preconditions checked before a backup touches anything.

Tool checks:
    pishrink.sh must be on PATH on the machine running the backup, and ssh as
    well when the target is another host.

Device checks:
    ``sudo fdisk -l`` runs on the target (through the selected transport) and
    the drive counts as present when its listing contains the exact text
    ``Disk <drive>``, e.g. ``Disk /dev/mmcblk0: 29.72 GiB, ...``.
"""
from __future__ import annotations

import shutil
from typing import Callable, Optional

from pibackup.backup import command_runners
from pibackup.backup.commands import CommandSpec, build_device_check_command
from pibackup.backup.transport import Transport
from pibackup.config.settings import DEFAULT_SSH_COMMAND
from pibackup.domain.models import BackupConfig
from pibackup.logging import get_logger

from .exceptions import DeviceNotFoundError, ToolNotFoundError

log = get_logger(source="devices")

Which = Callable[[str], Optional[str]]


def required_tools(config: BackupConfig, ssh_command: str = DEFAULT_SSH_COMMAND) -> list[str]:
    tools = ["pishrink.sh"]
    if not config.is_local:
        tools.append(ssh_command)
    return tools


def check_tool(tool: str, which: Which = shutil.which) -> str:
    """Return the resolved path of ``tool`` or raise ToolNotFoundError."""
    found = which(tool)
    if not found:
        raise ToolNotFoundError(tool)
    log.debug(f"Found {tool} at {found}")
    return found


def device_present(fdisk_output: str, drive: str) -> bool:
    return f"Disk {drive}" in fdisk_output


def check_device(
    config: BackupConfig,
    transport: Transport,
    command: Optional[CommandSpec] = None,
) -> None:
    """Raise DeviceNotFoundError unless the target lists ``config.drive``."""
    command = command or build_device_check_command(transport)
    output = command_runners.capture_command(command)
    if not device_present(output, config.drive):
        raise DeviceNotFoundError(config.drive)
