"""Folder tree: structural integrity of the folder hierarchy."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Iterator, Optional

from folio.state.models import (
    ROOT_ID,
    TRASH_ID,
    UNFILED_ID,
    Folder,
    LibraryState,
)

from .errors import InvalidParentError
from .files import relink

if TYPE_CHECKING:
    from .manager import Library

LOGGER = logging.getLogger(__name__)

PROTECTED_KINDS = frozenset({"library", "special"})


def new_folder_id() -> str:
    """Return a fresh, unique folder identifier."""
    return f"folder-{uuid.uuid4().hex[:12]}"


class FolderTree:
    """Create, rename, move, and delete folders while keeping the graph acyclic.

    Unknown ids never raise: mutators return ``False`` so a caller holding a
    stale id (for example after a concurrent deletion) cannot break the tree.
    """

    def __init__(self, library: "Library") -> None:
        self._library = library

    @property
    def _state(self) -> LibraryState:
        return self._library.state

    # Queries ----------------------------------------------------------

    def get(self, folder_id: str) -> Optional[Folder]:
        """Return the folder with ``folder_id``, or ``None`` when it is unknown."""
        return self._state.folders.get(folder_id)

    def roots(self) -> list[Folder]:
        """Return top-level folders in display order."""
        folders = self._state.folders
        return [folders[entry] for entry in self._state.folder_order if entry in folders]

    def children(self, folder_id: str) -> list[Folder]:
        """Return the direct subfolders of ``folder_id`` in display order.

        Args:
            folder_id: Folder whose children are listed.

        Returns:
            list[Folder]: Child folders; empty when ``folder_id`` is unknown.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return []
        return [self._state.folders[c] for c in folder.children if c in self._state.folders]

    def ancestors(self, folder_id: str) -> list[str]:
        """Return the ids above ``folder_id``, nearest parent first."""
        chain: list[str] = []
        seen = {folder_id}
        folder = self._state.folders.get(folder_id)
        while folder is not None and folder.parent is not None:
            if folder.parent in seen:
                LOGGER.warning("Parent chain of %s loops at %s.", folder_id, folder.parent)
                break
            chain.append(folder.parent)
            seen.add(folder.parent)
            folder = self._state.folders.get(folder.parent)
        return chain

    def is_descendant(self, candidate_id: str, ancestor_id: str) -> bool:
        """Return whether ``candidate_id`` is ``ancestor_id`` or lies beneath it."""
        if candidate_id == ancestor_id:
            return True
        return ancestor_id in self.ancestors(candidate_id)

    def walk(self, folder_id: str) -> Iterator[str]:
        """Yield ``folder_id`` and every descendant id, depth first."""
        folders = self._state.folders
        if folder_id not in folders:
            return
        stack = [folder_id]
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current in seen or current not in folders:
                continue
            seen.add(current)
            yield current
            stack.extend(reversed(folders[current].children))

    def path(self, folder_id: str, separator: str = " / ") -> str:
        """Return the display path of a folder, e.g. ``My Library / Papers``."""
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return ""
        names = [folder.name]
        for ancestor_id in self.ancestors(folder_id):
            ancestor = self._state.folders.get(ancestor_id)
            if ancestor is None:
                break
            names.append(ancestor.name)
        return separator.join(reversed(names))

    # Mutators ---------------------------------------------------------

    def create(self, name: str, parent_id: str | None = ROOT_ID, icon: str = "📁") -> Folder:
        """Create a folder under ``parent_id``.

        Args:
            name: Display name.
            parent_id: Parent folder id; ``None`` creates a top-level folder.
            icon: Glyph shown next to the name.

        Returns:
            Folder: The created folder.

        Raises:
            InvalidParentError: If ``parent_id`` does not resolve to a folder.
        """
        state = self._state
        if parent_id is not None and parent_id not in state.folders:
            raise InvalidParentError(f"Parent folder {parent_id!r} does not exist.")

        folder_id = new_folder_id()
        while folder_id in state.folders:
            folder_id = new_folder_id()

        folder = Folder(id=folder_id, name=name, icon=icon, kind="folder", parent=parent_id)
        state.folders[folder_id] = folder
        if parent_id is None:
            state.folder_order.append(folder_id)
        else:
            state.folders[parent_id].children.append(folder_id)

        self._library.commit()
        return folder

    def rename(self, folder_id: str, new_name: str) -> bool:
        """Give a folder a new display name.

        Args:
            folder_id: Folder to rename.
            new_name: Replacement name; must not be blank.

        Returns:
            bool: False when the folder is unknown or ``new_name`` is blank.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None or not new_name.strip():
            return False
        folder.name = new_name
        self._library.commit()
        return True

    def move(self, folder_id: str, new_parent_id: str) -> bool:
        """Re-parent a folder.

        Rejected when either id is unknown, when ``folder_id`` is the library
        root, or when ``new_parent_id`` is the folder itself or one of its
        descendants.
        """
        state = self._state
        folder = state.folders.get(folder_id)
        if folder is None or new_parent_id not in state.folders:
            return False
        if folder.kind == "library":
            return False
        if self.is_descendant(new_parent_id, folder_id):
            LOGGER.debug("Refusing to move %s beneath its descendant %s.", folder_id, new_parent_id)
            return False

        self._detach(folder)
        state.folders[new_parent_id].children.append(folder_id)
        folder.parent = new_parent_id
        self._library.commit()
        return True

    def trash(self, folder_id: str) -> bool:
        """Move a folder, with its contents, into the trash."""
        return self.move(folder_id, TRASH_ID)

    def toggle_expanded(self, folder_id: str) -> bool:
        """Flip whether a folder is shown expanded in the tree view.

        Args:
            folder_id: Folder to toggle.

        Returns:
            bool: False when the folder is unknown.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return False
        folder.expanded = not folder.expanded
        self._library.commit()
        return True

    def delete(self, folder_id: str) -> bool:
        """Delete a folder and its subfolders, redistributing files to ``unfiled``.

        No file is ever destroyed: every file anywhere in the deleted subtree
        ends up in the unfiled folder. Reserved folders cannot be deleted;
        any found inside the subtree are promoted back to top level instead.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None or folder.kind in PROTECTED_KINDS:
            return False

        doomed, rescued = self._collect_subtree(folder_id)
        state = self._state
        orphans = [path for doomed_id in doomed for path in state.folders[doomed_id].files]

        self._remove_folders(folder, doomed, rescued)
        for path in orphans:
            if path in state.files:
                relink(state, path, UNFILED_ID)

        LOGGER.info(
            "Deleted folder %s (%d folders); %d files moved to %s.",
            folder_id,
            len(doomed),
            len(orphans),
            UNFILED_ID,
        )
        self._library.commit()
        return True

    def purge(self, folder_id: str) -> bool:
        """Permanently delete a folder, its subfolders, and every file they hold."""
        folder = self._state.folders.get(folder_id)
        if folder is None or folder.kind in PROTECTED_KINDS:
            return False

        doomed, rescued = self._collect_subtree(folder_id)
        state = self._state
        doomed_files = [path for doomed_id in doomed for path in state.folders[doomed_id].files]

        self._remove_folders(folder, doomed, rescued)
        for path in doomed_files:
            state.files.pop(path, None)
            for remaining in state.folders.values():
                if path in remaining.files:
                    remaining.files = [member for member in remaining.files if member != path]

        LOGGER.info(
            "Purged folder %s (%d folders, %d files).", folder_id, len(doomed), len(doomed_files)
        )
        self._library.commit()
        return True

    # Internal helpers -------------------------------------------------

    def _collect_subtree(self, folder_id: str) -> tuple[list[str], list[str]]:
        """Return ``(doomed, rescued)`` ids for the subtree below ``folder_id``.

        Reserved folders are rescued and not descended into.
        """
        folders = self._state.folders
        doomed: list[str] = []
        rescued: list[str] = []
        seen: set[str] = set()
        stack = [folder_id]
        while stack:
            current = stack.pop()
            if current in seen or current not in folders:
                continue
            seen.add(current)
            if current != folder_id and folders[current].kind in PROTECTED_KINDS:
                rescued.append(current)
                continue
            doomed.append(current)
            stack.extend(folders[current].children)
        return doomed, rescued

    def _remove_folders(self, top: Folder, doomed: list[str], rescued: list[str]) -> None:
        state = self._state
        self._detach(top)
        for rescued_id in rescued:
            rescued_folder = state.folders[rescued_id]
            rescued_folder.parent = None
            if rescued_id not in state.folder_order:
                state.folder_order.append(rescued_id)
            LOGGER.warning("Reserved folder %s was nested in a deleted folder.", rescued_id)
        for doomed_id in doomed:
            del state.folders[doomed_id]

    def _detach(self, folder: Folder) -> None:
        """Unlink ``folder`` from its parent's children and from the top-level order."""
        state = self._state
        parent = state.folders.get(folder.parent) if folder.parent else None
        if parent is not None:
            parent.children = [child for child in parent.children if child != folder.id]
        if folder.id in state.folder_order:
            state.folder_order = [entry for entry in state.folder_order if entry != folder.id]


__all__ = ["FolderTree", "PROTECTED_KINDS", "new_folder_id"]
