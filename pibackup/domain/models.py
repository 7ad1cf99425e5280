"""Domain model for boot drive backups.

The configuration is built once from the command line and passed, read-only,
to every later step instead of living in module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


# ==============================================================================
# Compression Domain
# ==============================================================================


class Compression(Enum):
    """Compression applied by the shrink step."""

    NONE = "none"
    GZIP = "gzip"
    XZ = "xz"

    @property
    def shrink_flag(self) -> Optional[str]:
        """pishrink.sh option selecting this compression."""
        return {
            Compression.NONE: None,
            Compression.GZIP: "-z",
            Compression.XZ: "-Z",
        }[self]

    @property
    def extension(self) -> Optional[str]:
        """Extension pishrink.sh appends to the image (without the dot)."""
        return {
            Compression.NONE: None,
            Compression.GZIP: "gz",
            Compression.XZ: "xz",
        }[self]

    @property
    def enabled(self) -> bool:
        return self is not Compression.NONE


# ==============================================================================
# Backup Configuration Domain
# ==============================================================================


DEFAULT_DRIVE = "/dev/mmcblk0"
DEFAULT_GROUP = "pi"
DEFAULT_USER = "pi"
DEFAULT_ROTATION_COUNT = 8
DEFAULT_TMP_DIR = Path("/tmp")
IMAGE_SUFFIX = ".img"


def default_image_name(target: str) -> str:
    """Image basename used when none is given explicitly."""
    return f"{target}{IMAGE_SUFFIX}"


@dataclass(frozen=True)
class BackupConfig:
    """Everything a backup run needs to know.

    ``node_name`` is the hostname of the machine running the backup. The
    target is backed up locally when it matches, over ssh otherwise.
    """

    output_dir: Path
    node_name: str
    target: str
    image_name: str
    drive: str = DEFAULT_DRIVE
    group: str = DEFAULT_GROUP
    user: str = DEFAULT_USER
    rotation_count: int = DEFAULT_ROTATION_COUNT
    tmp_dir: Path = DEFAULT_TMP_DIR
    quiet: bool = False
    compression: Compression = Compression.NONE
    debug: bool = False

    @property
    def is_local(self) -> bool:
        return self.target == self.node_name

    @property
    def image_path(self) -> Path:
        """Where the dump is written before shrinking (e.g., /tmp/pi1.img)."""
        return self.tmp_dir / self.image_name

    @property
    def shrunk_image_path(self) -> Path:
        """Image path after pishrink.sh, which renames compressed output."""
        extension = self.compression.extension
        if extension is None:
            return self.image_path
        return self.image_path.with_name(f"{self.image_name}.{extension}")

    @property
    def destination_dir(self) -> Path:
        """Directory holding the rotated images of this target."""
        return self.output_dir / self.target

    @property
    def owner(self) -> str:
        return f"{self.user}:{self.group}"
