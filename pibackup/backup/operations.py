"""Backup run: dump, fix ownership, shrink and rotate.

Every step blocks until its processes exit and any failure propagates
immediately. Steps that already completed are not undone: a failed rotation
leaves the shrunk image in the scratch directory.
"""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from pibackup.config.settings import DEFAULT_SSH_COMMAND
from pibackup.domain.models import BackupConfig
from pibackup.logging import operation_context
from pibackup.storage import devices
from pibackup.storage.exceptions import RotationError

from . import command_runners
from .commands import compose_plan
from .transport import Transport, select_transport


def run_backup(
    config: BackupConfig,
    *,
    transport: Optional[Transport] = None,
    which: devices.Which = shutil.which,
    ssh_command: str = DEFAULT_SSH_COMMAND,
) -> Path:
    """Back up ``config.drive`` of ``config.target`` into ``config.output_dir``.

    Args:
        config: Parsed backup configuration
        transport: Override for where target commands run
        which: Tool lookup, ``shutil.which`` by default
        ssh_command: ssh binary used for remote targets

    Returns:
        Path of the newest rotated image (slot 0)
    """
    transport = transport or select_transport(config, ssh_command=ssh_command)
    plan = compose_plan(config, transport)

    with operation_context(
        "backup", target=config.target, drive=config.drive
    ) as log:
        for tool in devices.required_tools(config, ssh_command=ssh_command):
            devices.check_tool(tool, which=which)

        log.info(f"Checking if {config.drive} exists {plan.location}")
        devices.check_device(config, transport, command=plan.device_check)
        log.info(f"{config.drive} exists")

        log.info(f"Dumping {config.drive}")
        command_runners.run_pipeline(plan.dump)

        log.info("Setting permissions")
        command_runners.run_command(plan.chown)

        log.info("Shrinking image")
        command_runners.run_command(plan.shrink)

        # pishrink.sh renames the image when it compresses it
        if not plan.rotation.source.exists():
            raise RotationError(
                f"Expected shrunk image at {plan.rotation.source}",
                path=str(plan.rotation.source),
            )

        log.info("Rotating previous images")
        try:
            plan.rotation.destination_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise RotationError(
                f"Cannot create {plan.rotation.destination_dir}: {error}",
                path=str(plan.rotation.destination_dir),
            ) from error
        newest = plan.rotation.run()

        log.info("Done")
    return newest
