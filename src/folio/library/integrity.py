"""Structural repair for library documents loaded from storage."""

from __future__ import annotations

from collections import defaultdict

from folio.state.models import (
    ROOT_ID,
    SPECIAL_FOLDERS,
    SPECIAL_FOLDER_IDS,
    UNFILED_ID,
    LibraryState,
    Tag,
    build_special_folder,
)

from .files import relink
from .models import RepairReport


def repair(state: LibraryState) -> RepairReport:
    """Bring ``state`` back in line with the library invariants, in place.

    Restores reserved folders, drops broken child references, breaks parent
    cycles, rebuilds the top-level order, and re-links files so each one is
    listed by exactly one folder.

    Args:
        state: Library document to repair.

    Returns:
        RepairReport: Description of every change that was made.
    """
    report = RepairReport()
    _restore_special_folders(state, report)
    _clean_children(state, report)
    _break_parent_cycles(state, report)
    _rebuild_folder_order(state, report)
    _relink_files(state, report)
    _dedupe_tags(state, report)
    return report


def _restore_special_folders(state: LibraryState, report: RepairReport) -> None:
    for template in SPECIAL_FOLDERS:
        folder_id = template["id"]
        folder = state.folders.get(folder_id)
        if folder is None:
            state.folders[folder_id] = build_special_folder(folder_id)
            report.restored_folders.append(folder_id)
            report.notes.append(f"Created reserved folder {folder_id}.")
        elif folder.kind != template["kind"]:
            folder.kind = template["kind"]  # type: ignore[assignment]
            report.notes.append(f"Reset kind of reserved folder {folder_id} to {template['kind']}.")

    root = state.folders[ROOT_ID]
    if root.parent is not None:
        report.notes.append(f"Detached {ROOT_ID} from parent {root.parent}.")
        root.parent = None


def _clean_children(state: LibraryState, report: RepairReport) -> None:
    folders = state.folders
    claimed: dict[str, str] = {}
    for folder_id, folder in folders.items():
        kept: list[str] = []
        for child_id in folder.children:
            reason: str | None = None
            if child_id == folder_id:
                reason = "self-reference"
            elif child_id not in folders:
                reason = "missing folder"
            elif child_id == ROOT_ID:
                reason = "library root cannot be nested"
            elif folder_id in folders[child_id].children:
                reason = "mutual reference"
            elif child_id in kept:
                reason = "duplicate entry"
            elif child_id in claimed:
                reason = f"already a child of {claimed[child_id]}"
            if reason is not None:
                report.removed_references += 1
                report.notes.append(f"Removed child {child_id} from {folder_id}: {reason}.")
                continue
            kept.append(child_id)
            claimed[child_id] = folder_id
        folder.children = kept

    for folder_id, folder in folders.items():
        owner = claimed.get(folder_id)
        if owner is not None:
            if folder.parent != owner:
                report.notes.append(f"Set parent of {folder_id} to {owner}.")
                folder.parent = owner
            continue
        if folder.parent is None:
            continue
        parent = folders.get(folder.parent)
        if parent is None or folder.parent == folder_id:
            report.notes.append(f"Promoted {folder_id} to top level; its parent is gone.")
            folder.parent = None
        else:
            parent.children.append(folder_id)
            claimed[folder_id] = folder.parent
            report.notes.append(f"Linked {folder_id} under its recorded parent {folder.parent}.")


def _break_parent_cycles(state: LibraryState, report: RepairReport) -> None:
    folders = state.folders
    for folder_id in list(folders):
        seen = {folder_id}
        current = folders[folder_id].parent
        while current is not None and current in folders:
            if current in seen:
                folder = folders[folder_id]
                parent = folders.get(folder.parent) if folder.parent else None
                if parent is not None:
                    parent.children = [c for c in parent.children if c != folder_id]
                folder.parent = None
                report.removed_references += 1
                report.notes.append(f"Broke folder cycle by promoting {folder_id} to top level.")
                break
            seen.add(current)
            current = folders[current].parent


def _rebuild_folder_order(state: LibraryState, report: RepairReport) -> None:
    folders = state.folders
    order: list[str] = []
    for folder_id in state.folder_order:
        if folder_id in folders and folders[folder_id].parent is None and folder_id not in order:
            order.append(folder_id)

    missing_special = [
        folder_id
        for folder_id in SPECIAL_FOLDER_IDS
        if folders[folder_id].parent is None and folder_id not in order
    ]
    missing_other = [
        folder_id
        for folder_id, folder in folders.items()
        if folder.parent is None and folder_id not in order and folder_id not in SPECIAL_FOLDER_IDS
    ]
    order.extend(missing_special)
    order.extend(missing_other)

    if order != state.folder_order:
        report.notes.append("Rebuilt top-level folder order.")
        state.folder_order = order


def _relink_files(state: LibraryState, report: RepairReport) -> None:
    listed_by: dict[str, list[str]] = defaultdict(list)
    for folder_id, folder in state.folders.items():
        members: list[str] = []
        for path in folder.files:
            if path not in state.files:
                report.notes.append(f"Dropped unknown file {path} from {folder_id}.")
                continue
            if path in members:
                report.notes.append(f"Dropped duplicate listing of {path} in {folder_id}.")
                continue
            members.append(path)
            listed_by[path].append(folder_id)
        folder.files = members

    for path, entry in state.files.items():
        listing = listed_by.get(path, [])
        if entry.folder in listing:
            owner = entry.folder
        elif listing:
            owner = listing[0]
        elif entry.folder in state.folders:
            owner = entry.folder
        else:
            owner = UNFILED_ID
        if listing == [owner] and entry.folder == owner:
            continue
        relink(state, path, owner)
        report.relinked_files += 1
        report.notes.append(f"Re-linked {path} to {owner}.")


def _dedupe_tags(state: LibraryState, report: RepairReport) -> None:
    owners = [*state.folders.values(), *state.files.values()]
    for owner in owners:
        unique: dict[str, Tag] = {}
        for tag in owner.tags:
            if tag.name:
                unique.setdefault(tag.name, tag)
        cleaned = list(unique.values())
        if cleaned != owner.tags:
            owner.tags = cleaned
            report.notes.append("Collapsed duplicate or empty tags.")


__all__ = ["repair"]
