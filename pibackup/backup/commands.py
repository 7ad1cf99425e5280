"""Build the commands a backup run executes.

Nothing here runs a process. ``compose_plan`` turns a configuration and a
transport into argument lists so tests can inspect exactly what would run.
"""
from __future__ import annotations

import shlex
from dataclasses import dataclass, field

from pibackup.domain.models import BackupConfig
from pibackup.storage.rotation import RotationRequest

from .transport import Transport

DD_BLOCK_SIZE = "4M"
SHRINK_TOOL = "pishrink.sh"


@dataclass(frozen=True)
class CommandSpec:
    """One external command as an argument list."""

    argv: tuple[str, ...]
    silence_stdout: bool = False
    silence_stderr: bool = False

    def display(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class PipelineSpec:
    """Two commands with the reader's stdout feeding the writer's stdin."""

    reader: CommandSpec
    writer: CommandSpec

    def display(self) -> str:
        return f"{self.reader.display()} | {self.writer.display()}"


@dataclass(frozen=True)
class BackupPlan:
    device_check: CommandSpec
    dump: PipelineSpec
    chown: CommandSpec
    shrink: CommandSpec
    rotation: RotationRequest
    location: str = field(default="on local system")


def build_device_check_command(transport: Transport) -> CommandSpec:
    return CommandSpec(tuple(transport.wrap(["sudo", "fdisk", "-l"])))


def build_dump_pipeline(config: BackupConfig, transport: Transport) -> PipelineSpec:
    """dd the drive on the target and write the image with an unprivileged dd.

    Only the reading side runs under sudo so root never owns the image file.
    """
    reader = transport.wrap(
        [
            "sudo",
            "dd",
            f"if={config.drive}",
            f"bs={DD_BLOCK_SIZE}",
            "conv=noerror,sync",
            "status=progress",
        ]
    )
    writer = ["dd", f"of={config.image_path}", f"bs={DD_BLOCK_SIZE}"]
    return PipelineSpec(
        reader=CommandSpec(tuple(reader), silence_stderr=config.quiet),
        writer=CommandSpec(tuple(writer), silence_stderr=config.quiet),
    )


def build_chown_command(config: BackupConfig) -> CommandSpec:
    return CommandSpec(("sudo", "chown", config.owner, str(config.image_path)))


def build_shrink_command(config: BackupConfig) -> CommandSpec:
    argv = ["sudo", SHRINK_TOOL, "-a"]
    if config.compression.shrink_flag:
        argv.append(config.compression.shrink_flag)
    argv.append(str(config.image_path))
    return CommandSpec(tuple(argv), silence_stdout=config.quiet)


def build_rotation_request(config: BackupConfig) -> RotationRequest:
    return RotationRequest(
        source=config.shrunk_image_path,
        destination_dir=config.destination_dir,
        retention_count=config.rotation_count,
    )


def compose_plan(config: BackupConfig, transport: Transport) -> BackupPlan:
    return BackupPlan(
        device_check=build_device_check_command(transport),
        dump=build_dump_pipeline(config, transport),
        chown=build_chown_command(config),
        shrink=build_shrink_command(config),
        rotation=build_rotation_request(config),
        location=transport.describe(),
    )
