"""Rotating disk-image backups of Raspberry Pi boot drives."""

from .__version__ import __version__

__all__ = ["__version__"]
