"""Domain model for pibackup."""

from .models import BackupConfig, Compression, default_image_name

__all__ = ["BackupConfig", "Compression", "default_image_name"]
