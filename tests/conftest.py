"""
Pytest configuration and shared fixtures for pibackup tests.

This module provides common fixtures and utilities used across all test modules.
"""

from pathlib import Path
from typing import Callable
from unittest.mock import Mock

import pytest
from loguru import logger

from pibackup.domain.models import BackupConfig, Compression


# ==============================================================================
# Logging Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks a test configured so they do not outlive captured streams."""
    yield
    logger.remove()


# ==============================================================================
# Configuration Fixtures
# ==============================================================================


@pytest.fixture
def make_config(tmp_path) -> Callable[..., BackupConfig]:
    """
    Fixture providing a BackupConfig factory rooted in tmp_path.

    Returns:
        Callable accepting BackupConfig field overrides.
    """

    def factory(**overrides) -> BackupConfig:
        values = {
            "output_dir": tmp_path / "backups",
            "node_name": "backup-host",
            "target": "pi1",
            "image_name": "pi1.img",
            "tmp_dir": tmp_path / "scratch",
            "compression": Compression.NONE,
        }
        values.update(overrides)
        return BackupConfig(**values)

    return factory


@pytest.fixture
def local_config(make_config) -> BackupConfig:
    """Fixture providing a configuration backing up the running host."""
    return make_config(node_name="pi1", target="pi1")


@pytest.fixture
def remote_config(make_config) -> BackupConfig:
    """Fixture providing a configuration backing up another host over ssh."""
    return make_config(node_name="backup-host", target="pi1")


# ==============================================================================
# Device Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_fdisk_output() -> str:
    """
    Fixture providing mock `fdisk -l` output from a Raspberry Pi.

    Returns:
        String listing an SD card and a USB stick.
    """
    return (
        "Disk /dev/mmcblk0: 29.72 GiB, 31914983424 bytes, 62333952 sectors\n"
        "Units: sectors of 1 * 512 = 512 bytes\n"
        "Sector size (logical/physical): 512 bytes / 512 bytes\n"
        "Disklabel type: dos\n"
        "\n"
        "Device         Boot  Start      End  Sectors  Size Id Type\n"
        "/dev/mmcblk0p1        8192   532479   524288  256M  c W95 FAT32 (LBA)\n"
        "/dev/mmcblk0p2      532480 62333951 61801472 29.5G 83 Linux\n"
        "\n"
        "Disk /dev/sda: 14.91 GiB, 16008609792 bytes, 31266816 sectors\n"
    )


# ==============================================================================
# Subprocess Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_subprocess_success(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always succeeds.

    Returns:
        Mock object for subprocess.run.
    """
    mock_result = Mock()
    mock_result.returncode = 0
    mock_result.stdout = ""
    mock_result.stderr = ""
    return mocker.patch("subprocess.run", return_value=mock_result)


@pytest.fixture
def mock_subprocess_failure(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always exits with status 1.

    Returns:
        Mock object for subprocess.run.
    """
    mock_result = Mock()
    mock_result.returncode = 1
    mock_result.stdout = ""
    mock_result.stderr = "Mock error"
    return mocker.patch("subprocess.run", return_value=mock_result)


# ==============================================================================
# Rotation Fixtures
# ==============================================================================


@pytest.fixture
def make_slots() -> Callable[..., dict[int, Path]]:
    """
    Fixture creating numbered backup files whose content names their index.

    Returns:
        Callable(directory, basename, indices) -> {index: path}
    """

    def factory(directory: Path, basename: str, indices) -> dict[int, Path]:
        directory.mkdir(parents=True, exist_ok=True)
        slots = {}
        for index in indices:
            path = directory / f"{basename}.{index}"
            path.write_text(f"old-{index}")
            slots[index] = path
        return slots

    return factory
