"""Query engine: read-only search and projections, plus bulk folder import."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Union

from pydantic import ValidationError

from folio.state.models import ROOT_ID, FileEntry, LibraryState, normalize_tag_name

from .errors import LibraryError
from .models import ImportDescriptor, ImportResult, SkippedFile

if TYPE_CHECKING:
    from .manager import Library

LOGGER = logging.getLogger(__name__)

_FOLDER_SEPARATORS = re.compile(r"[\\/]")

DescriptorInput = Union[ImportDescriptor, Mapping[str, Any]]


def split_folder_path(folder_path: str | None) -> list[str]:
    """Split a relative folder path on ``/`` or ``\\``, dropping empty segments."""
    if not folder_path:
        return []
    return [part for part in _FOLDER_SEPARATORS.split(folder_path) if part.strip()]


def expand_folder_paths(folder_paths: Iterable[str | None]) -> list[str]:
    """Return every distinct folder path and ancestor prefix, parents first.

    ``"a/b/c"`` yields ``"a"``, ``"a/b"``, and ``"a/b/c"``.
    """
    expanded: set[str] = set()
    for folder_path in folder_paths:
        parts = split_folder_path(folder_path)
        for depth in range(1, len(parts) + 1):
            expanded.add("/".join(parts[:depth]))
    return sorted(expanded, key=lambda value: (value.count("/"), value))


class QueryEngine:
    """Search and projection over folders and files, and folder import."""

    def __init__(self, library: "Library") -> None:
        self._library = library

    @property
    def _state(self) -> LibraryState:
        return self._library.state

    def search_files(self, query: str) -> list[FileEntry]:
        """Return files whose name or any tag name contains ``query``, ignoring case."""
        needle = query.lower()
        return [
            entry
            for entry in self._state.files.values()
            if needle in entry.name.lower() or any(needle in tag.name for tag in entry.tags)
        ]

    def files_by_folder(self, folder_id: str) -> list[FileEntry]:
        """Return the files listed directly by ``folder_id``, in listing order."""
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return []
        files = self._state.files
        return [files[path] for path in folder.files if path in files]

    def files_by_tag(self, name: str) -> list[FileEntry]:
        """Return the files carrying tag ``name``.

        Args:
            name: Tag name; matched after the same normalisation used when tagging.
        """
        normalized = normalize_tag_name(name)
        return [
            entry
            for entry in self._state.files.values()
            if any(tag.name == normalized for tag in entry.tags)
        ]

    def files_in_folder(self, folder_id: str, include_subfolders: bool = True) -> list[FileEntry]:
        """Return files in ``folder_id`` and, optionally, all of its subfolders."""
        if not include_subfolders:
            return self.files_by_folder(folder_id)
        collected: list[FileEntry] = []
        for current in self._library.folders.walk(folder_id):
            collected.extend(self.files_by_folder(current))
        return collected

    def recent_files(self, limit: int = 10) -> list[FileEntry]:
        """Return the most recently opened files, newest first."""
        opened = [entry for entry in self._state.files.values() if entry.last_opened is not None]

        def _opened_at(entry: FileEntry) -> datetime:
            stamp = entry.last_opened or datetime.min
            return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)

        opened.sort(key=_opened_at, reverse=True)
        return opened[: max(limit, 0)]

    def import_folder(
        self,
        root_name: str,
        descriptors: Iterable[DescriptorInput],
        parent_id: str = ROOT_ID,
    ) -> ImportResult:
        """Import a scanned directory as a new folder subtree.

        Creates a folder for ``root_name`` under ``parent_id``, one folder for
        every distinct relative folder path (ancestors first), then files each
        descriptor into its folder. Per-file failures are collected in the
        result instead of aborting the batch.

        Args:
            root_name: Name of the folder created for the import root.
            descriptors: ``ImportDescriptor`` models or equivalent mappings.
            parent_id: Folder receiving the import root.

        Returns:
            ImportResult: Counts of created folders and imported/skipped files.

        Raises:
            InvalidParentError: If ``parent_id`` does not exist. Nothing is created.
        """
        valid: list[ImportDescriptor] = []
        skipped: list[SkippedFile] = []
        for raw in descriptors:
            try:
                if isinstance(raw, ImportDescriptor):
                    valid.append(raw)
                else:
                    valid.append(ImportDescriptor.model_validate(raw))
            except ValidationError as exc:
                if isinstance(raw, Mapping):
                    label = str(raw.get("file_path") or raw.get("filePath") or dict(raw))
                else:
                    label = repr(raw)
                skipped.append(SkippedFile(file_path=label, reason=f"invalid descriptor: {exc}"))

        folders = self._library.folders
        with self._library.batch():
            root_folder = folders.create(root_name, parent_id)
            folder_ids: dict[str, str] = {"": root_folder.id}

            for folder_path in expand_folder_paths(d.folder_path for d in valid):
                parent_path, _, name = folder_path.rpartition("/")
                parent_folder_id = folder_ids.get(parent_path, root_folder.id)
                folder_ids[folder_path] = folders.create(name, parent_folder_id).id

            result = ImportResult(root_folder_id=root_folder.id, folder_ids=folder_ids)
            seen: set[str] = set()
            for descriptor in valid:
                if descriptor.file_path in seen:
                    reason = "duplicate path in batch"
                    skipped.append(SkippedFile(file_path=descriptor.file_path, reason=reason))
                    continue
                target = folder_ids.get(
                    "/".join(split_folder_path(descriptor.folder_path)), root_folder.id
                )
                try:
                    self._library.files.add(descriptor.file_path, descriptor.file_name, target)
                except LibraryError as exc:
                    LOGGER.warning("Skipping %r during import: %s", descriptor.file_path, exc)
                    skipped.append(SkippedFile(file_path=descriptor.file_path, reason=str(exc)))
                    continue
                seen.add(descriptor.file_path)
                result.files_imported += 1

        result.folders_created = len(folder_ids)
        result.skipped = skipped
        result.files_skipped = len(skipped)
        LOGGER.info(
            "Imported %s: %d folders, %d files, %d skipped.",
            root_name,
            result.folders_created,
            result.files_imported,
            result.files_skipped,
        )
        return result


__all__ = ["QueryEngine", "expand_folder_paths", "split_folder_path"]
