"""File index: file identity, folder membership, and trash lifecycle."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from folio.state.models import TRASH_ID, UNFILED_ID, FileEntry, LibraryState

from .errors import InvalidFileError, LibraryError
from .models import BatchError, MoveResult, TrashResult

if TYPE_CHECKING:
    from .manager import Library

LOGGER = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\/]")


def file_name_from_path(path: str) -> str:
    """Return the last segment of ``path`` split on ``/`` or ``\\``."""
    if not path:
        return "Unknown"
    return _SEPARATORS.split(path)[-1] or path


def unlink_everywhere(state: LibraryState, path: str) -> int:
    """Remove ``path`` from the member list of every folder.

    Returns:
        int: Number of folders that listed the path.
    """
    hits = 0
    for folder in state.folders.values():
        if path in folder.files:
            folder.files = [member for member in folder.files if member != path]
            hits += 1
    return hits


def relink(state: LibraryState, path: str, folder_id: str) -> None:
    """Make ``folder_id`` the only folder listing ``path`` and record it on the entry."""
    unlink_everywhere(state, path)
    state.folders[folder_id].files.append(path)
    entry = state.files.get(path)
    if entry is not None:
        entry.folder = folder_id


class FileIndex:
    """Operations over the flat map of imported files."""

    def __init__(self, library: "Library") -> None:
        self._library = library

    @property
    def _state(self) -> LibraryState:
        return self._library.state

    def get(self, path: str) -> Optional[FileEntry]:
        """Return the entry indexed under ``path``, or ``None``."""
        return self._state.files.get(path)

    def folder_of(self, path: str) -> Optional[str]:
        """Return the id of the folder listing ``path``.

        Args:
            path: Indexed file path.

        Returns:
            Optional[str]: Owning folder id, or ``None`` for unknown paths.
        """
        entry = self._state.files.get(path)
        return entry.folder if entry is not None else None

    def add(self, path: str, name: str | None = None, folder_id: str = UNFILED_ID) -> FileEntry:
        """Add a file, or re-link an existing one, into ``folder_id``.

        Adding a path that is already indexed keeps its metadata but still
        guarantees it is listed under ``folder_id`` and nowhere else.

        Args:
            path: Unique file path.
            name: Display name; derived from ``path`` when omitted.
            folder_id: Target folder. Unknown ids fall back to ``unfiled``.

        Returns:
            FileEntry: The indexed entry.

        Raises:
            InvalidFileError: If ``path`` is blank.
        """
        if not path or not path.strip():
            raise InvalidFileError("File path must not be empty.")

        state = self._state
        if folder_id not in state.folders:
            LOGGER.warning(
                "Unknown folder %r for %s; filing under %s.", folder_id, path, UNFILED_ID
            )
            folder_id = UNFILED_ID

        entry = state.files.get(path)
        if entry is None:
            entry = FileEntry(path=path, name=name or file_name_from_path(path), folder=folder_id)
            state.files[path] = entry
        relink(state, path, folder_id)

        self._library.commit()
        return entry

    def remove(self, path: str) -> bool:
        """Remove a file from the index and from every folder listing it."""
        state = self._state
        if path not in state.files:
            return False
        unlink_everywhere(state, path)
        del state.files[path]
        self._library.commit()
        return True

    def move(self, path: str, folder_id: str) -> bool:
        """Move a file into ``folder_id``.

        Returns:
            bool: False when the path or the folder is unknown.
        """
        state = self._state
        if path not in state.files or folder_id not in state.folders:
            return False
        relink(state, path, folder_id)
        self._library.commit()
        return True

    def trash(self, path: str) -> bool:
        """Move a file into the trash folder."""
        return self.move(path, TRASH_ID)

    def touch(self, path: str) -> None:
        """Record that ``path`` was opened now. Unknown paths are ignored."""
        entry = self._state.files.get(path)
        if entry is None:
            return
        entry.last_opened = datetime.now(timezone.utc)
        self._library.commit()

    def move_all_to_trash(self, folder_id: str) -> MoveResult:
        """Move every file and subfolder of ``folder_id`` into the trash."""
        result = MoveResult()
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return result

        with self._library.batch():
            for path in list(folder.files):
                if self.move(path, TRASH_ID):
                    result.moved += 1
                else:
                    result.errors.append(BatchError(target=path, error="not in the file index"))
            for child_id in list(folder.children):
                if self._library.folders.move(child_id, TRASH_ID):
                    result.folders += 1
                else:
                    result.errors.append(
                        BatchError(target=child_id, error="folder could not be moved")
                    )
        return result

    def empty_trash(self) -> TrashResult:
        """Permanently remove every file and folder held in the trash.

        Returns:
            TrashResult: Counts of deleted files and folders plus per-item errors.
        """
        result = TrashResult()
        trash = self._state.folders.get(TRASH_ID)
        if trash is None:
            return result

        with self._library.batch():
            for path in list(trash.files):
                try:
                    if self.remove(path):
                        result.deleted += 1
                    else:
                        trash.files = [member for member in trash.files if member != path]
                        self._library.commit()
                        result.errors.append(
                            BatchError(target=path, error="not in the file index")
                        )
                except LibraryError as exc:
                    LOGGER.error("Error deleting %s from trash: %s", path, exc)
                    result.errors.append(BatchError(target=path, error=str(exc)))

            for child_id in list(trash.children):
                try:
                    if self._library.folders.purge(child_id):
                        result.folders += 1
                    else:
                        result.errors.append(
                            BatchError(target=child_id, error="folder could not be deleted")
                        )
                except LibraryError as exc:
                    LOGGER.error("Error deleting folder %s from trash: %s", child_id, exc)
                    result.errors.append(BatchError(target=child_id, error=str(exc)))

        LOGGER.info("Emptied trash: %d files, %d folders.", result.deleted, result.folders)
        return result


__all__ = ["FileIndex", "file_name_from_path", "relink", "unlink_everywhere"]
