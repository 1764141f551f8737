"""File discovery utilities."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from folio.library.models import ImportDescriptor, SkippedFile

LOGGER = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class DirectoryScanner:
    """Discover files within a directory tree and describe them for import.

    Files that are found but rejected (oversized or unreadable) are recorded
    in :attr:`skipped` rather than yielded.
    """

    def __init__(
        self,
        *,
        recursive: bool,
        include_hidden: bool,
        follow_symlinks: bool,
        max_size_bytes: int | None,
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.max_size_bytes = max_size_bytes
        self.skipped: list[SkippedFile] = []

    def scan(self, root: Path) -> Iterator[ImportDescriptor]:
        """Yield import descriptors for files under ``root``, sorted by relative path."""
        root = root.expanduser().resolve()
        if not root.is_dir():
            return

        for path in sorted(self._iter_paths(root)):
            if path.is_symlink() and not self.follow_symlinks:
                continue
            if not path.is_file():
                continue
            relative = path.relative_to(root)
            if not self.include_hidden and _is_hidden(relative):
                continue
            try:
                size = path.stat().st_size
            except OSError as exc:
                LOGGER.warning("Cannot stat %s: %s", path, exc)
                self.skipped.append(SkippedFile(file_path=str(path), reason=str(exc)))
                continue
            if self.max_size_bytes is not None and size > self.max_size_bytes:
                self.skipped.append(
                    SkippedFile(
                        file_path=str(path),
                        reason=f"larger than {self.max_size_bytes} bytes",
                    )
                )
                continue

            parent = relative.parent.as_posix()
            yield ImportDescriptor(
                file_path=str(path),
                file_name=path.name,
                folder_path=None if parent == "." else parent,
            )

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        """Internal helper to iterate candidate paths."""
        if not self.recursive:
            yield from root.iterdir()
            return

        for directory, dirnames, filenames in os.walk(root, followlinks=self.follow_symlinks):
            base = Path(directory)
            if not self.include_hidden:
                dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            for name in filenames:
                yield base / name
