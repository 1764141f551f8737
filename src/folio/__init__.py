"""Folio: a personal document library of folders, tags, and imported files."""

from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("folio-library")
except _metadata.PackageNotFoundError:  # source checkout without an install
    __version__ = "0.0.0"

__all__ = ["__version__"]
