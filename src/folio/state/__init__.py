"""State persistence helpers for Folio libraries."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from .errors import MissingStateError, StateError
from .models import FileEntry, Folder, LibraryState, Tag

DEFAULT_LIBRARY_PATH = Path("~/.folio/library.json")


class LibraryStore(Protocol):
    """Persistence adapter consumed by :class:`folio.library.Library`."""

    def load(self) -> Optional[LibraryState]:
        """Return the stored library, or ``None`` when nothing is stored yet."""

    def save(self, state: LibraryState) -> None:
        """Durably store ``state``."""


class LibraryRepository:
    """Manage the persistence of a library as a single JSON document."""

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize the repository.

        Args:
            path: Location of the JSON document. Defaults to ``~/.folio/library.json``.
        """
        self._path = Path(path or DEFAULT_LIBRARY_PATH).expanduser()

    @property
    def path(self) -> Path:
        """Return the resolved document path."""
        return self._path

    def exists(self) -> bool:
        """Return whether a library document is present on disk."""
        return self._path.exists()

    def read(self) -> LibraryState:
        """Read and validate the stored library document.

        Returns:
            LibraryState: Deserialized library state.

        Raises:
            MissingStateError: If no document is present.
            StateError: If stored data cannot be parsed or validated.
        """
        if not self._path.exists():
            raise MissingStateError(f"No library found at {self._path}")

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StateError(f"Invalid library data: {exc}") from exc
        except OSError as exc:
            raise StateError(f"Unable to read {self._path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StateError("Library document must contain a mapping at the top level.")

        try:
            return LibraryState.model_validate(data)
        except ValidationError as exc:
            raise StateError(f"Invalid library data: {exc}") from exc

    def load(self) -> Optional[LibraryState]:
        """Return the stored library, or ``None`` when no document exists.

        Raises:
            StateError: If stored data cannot be parsed or validated.
        """
        try:
            return self.read()
        except MissingStateError:
            return None

    def save(self, state: LibraryState) -> None:
        """Persist the library document, replacing any previous version.

        Args:
            state: Library state to serialize.

        Raises:
            StateError: If the document cannot be written.
        """
        state.updated_at = datetime.now(timezone.utc)
        if state.created_at.tzinfo is None:
            state.created_at = state.created_at.replace(tzinfo=timezone.utc)
        payload = state.model_dump(mode="json")
        staging = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            staging.replace(self._path)
        except OSError as exc:
            raise StateError(f"Unable to write {self._path}: {exc}") from exc


class MemoryStore:
    """Keep the library document in memory, serialized like the on-disk form."""

    def __init__(self, initial: LibraryState | None = None) -> None:
        self._payload: str | None = None
        self.saves = 0
        if initial is not None:
            self._payload = initial.model_dump_json()

    def load(self) -> Optional[LibraryState]:
        """Return the last saved document, or ``None`` before the first save."""
        if self._payload is None:
            return None
        return LibraryState.model_validate_json(self._payload)

    def save(self, state: LibraryState) -> None:
        """Serialize ``state`` and count the write in ``saves``.

        Args:
            state: Library state to keep.
        """
        state.updated_at = datetime.now(timezone.utc)
        self._payload = state.model_dump_json()
        self.saves += 1


__all__ = [
    "DEFAULT_LIBRARY_PATH",
    "LibraryStore",
    "LibraryRepository",
    "MemoryStore",
    "LibraryState",
    "Folder",
    "FileEntry",
    "Tag",
    "StateError",
    "MissingStateError",
]
