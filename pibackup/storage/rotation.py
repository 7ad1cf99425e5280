"""Numbered rotation of backup images.

Backups of one basename live side by side as ``<basename>.0`` (newest)
through ``<basename>.<count-1>`` (oldest). Rotating shifts every present slot
up by one, highest index first, so the oldest slot is overwritten rather
than deleted, and then installs the new image as slot 0. Missing indices are
skipped.

Example:
    >>> from pibackup.storage.rotation import rotate
    >>> rotate(Path("/tmp/pi1.img"), Path("/backups/pi1"), 8)
    PosixPath('/backups/pi1/pi1.img.0')
"""
from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from pibackup.logging import LoggerFactory

from .exceptions import RotationError

log = LoggerFactory.for_rotation()


@dataclass(frozen=True)
class RotationRequest:
    """A pending rotation of ``source`` into ``destination_dir``."""

    source: Path
    destination_dir: Path
    retention_count: int

    def run(self) -> Path:
        return rotate(self.source, self.destination_dir, self.retention_count)


def slot_path(destination_dir: Path, basename: str, index: int) -> Path:
    return destination_dir / f"{basename}.{index}"


def list_slots(destination_dir: Path, basename: str) -> dict[int, Path]:
    """Map each occupied slot index to its path."""
    if not destination_dir.is_dir():
        return {}
    pattern = re.compile(rf"^{re.escape(basename)}\.(\d+)$")
    slots = {}
    for entry in destination_dir.iterdir():
        match = pattern.match(entry.name)
        if match:
            slots[int(match.group(1))] = entry
    return dict(sorted(slots.items()))


def rotation_moves(
    destination_dir: Path, basename: str, retention_count: int
) -> list[tuple[Path, Path]]:
    """Renames needed to free slot 0, in the order they must happen."""
    if retention_count < 1:
        raise ValueError(f"retention count must be positive, got {retention_count}")
    moves = []
    for index in range(retention_count - 2, -1, -1):
        current = slot_path(destination_dir, basename, index)
        if current.exists():
            moves.append((current, slot_path(destination_dir, basename, index + 1)))
    return moves


def rotate(new_file: Path, destination_dir: Path, retention_count: int) -> Path:
    """Shift existing slots up by one and install ``new_file`` as slot 0.

    Args:
        new_file: Finished image, typically still in the scratch directory
        destination_dir: Directory holding the numbered images
        retention_count: Number of slots to keep

    Returns:
        Path of the new slot 0

    Raises:
        ValueError: If retention_count is less than 1
        RotationError: If the new image is missing or a rename fails
    """
    new_file = Path(new_file)
    destination_dir = Path(destination_dir)
    basename = new_file.name

    moves = rotation_moves(destination_dir, basename, retention_count)

    if not new_file.is_file():
        raise RotationError(f"Image to rotate not found: {new_file}", path=str(new_file))

    stale = [
        path
        for index, path in list_slots(destination_dir, basename).items()
        if index >= retention_count
    ]
    if stale:
        log.warning(
            f"Keeping {len(stale)} image(s) beyond rotation count {retention_count}: "
            + ", ".join(path.name for path in stale)
        )

    for source, target in moves:
        log.debug(f"Rotating {source.name} -> {target.name}")
        try:
            source.replace(target)
        except OSError as error:
            raise RotationError(
                f"Failed to rotate {source} to {target}: {error}", path=str(source)
            ) from error

    newest = slot_path(destination_dir, basename, 0)
    log.debug(f"Installing {new_file} as {newest}")
    try:
        shutil.move(str(new_file), str(newest))
    except OSError as error:
        raise RotationError(
            f"Failed to move {new_file} to {newest}: {error}", path=str(new_file)
        ) from error
    return newest
