"""Helpers shared by Folio CLI commands."""

from __future__ import annotations

import logging
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.tree import Tree

from folio.library import Library
from folio.state import FileEntry, Folder
from folio.state.models import TRASH_ID, UNFILED_ID

_HANDLER_NAME = "folio-cli"
_TAG_STYLES = {
    "green": "green",
    "blue": "blue",
    "purple": "magenta",
    "orange": "dark_orange",
    "red": "red",
    "teal": "cyan",
    "pink": "hot_pink",
    "gray": "bright_black",
}


def configure_logging(level: str) -> None:
    """Attach a rich handler to the ``folio`` logger at ``level``.

    Calling this repeatedly only adjusts the level; a second handler is never added.

    Args:
        level: Logging level name such as ``WARNING``.
    """
    logger = logging.getLogger("folio")
    logger.setLevel(level.upper())
    if any(handler.get_name() == _HANDLER_NAME for handler in logger.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def render_tag(name: str, color: str) -> str:
    """Return rich markup for a tag badge."""
    style = _TAG_STYLES.get(color, "green")
    return f" [{style}]#{escape(name)}[/{style}]"


def resolve_folder(library: Library, reference: str) -> Folder:
    """Resolve a folder id, or a unique folder name, to a folder.

    Args:
        library: Library to search.
        reference: Folder id or case-insensitive folder name.

    Returns:
        Folder: The matching folder.

    Raises:
        click.ClickException: If nothing, or more than one folder, matches.
    """
    folder = library.folders.get(reference)
    if folder is not None:
        return folder

    wanted = reference.strip().lower()
    matches = [f for f in library.state.folders.values() if f.name.lower() == wanted]
    if not matches:
        raise click.ClickException(f"No folder matches '{reference}'.")
    if len(matches) > 1:
        ids = ", ".join(f.id for f in matches)
        raise click.ClickException(f"Folder name '{reference}' is ambiguous; use an id ({ids}).")
    return matches[0]


def folder_payload(library: Library, folder: Folder) -> dict[str, Any]:
    """Return a JSON-ready description of ``folder``."""
    return {
        "id": folder.id,
        "name": folder.name,
        "kind": folder.kind,
        "path": library.folders.path(folder.id),
        "parent": folder.parent,
        "children": list(folder.children),
        "files": len(folder.files),
        "tags": [tag.model_dump() for tag in folder.tags],
        "expanded": folder.expanded,
    }


def file_payload(library: Library, entry: FileEntry) -> dict[str, Any]:
    """Return a JSON-ready description of ``entry``."""
    payload = entry.model_dump(mode="json")
    payload["folder_path"] = library.folders.path(entry.folder)
    return payload


def library_counts(library: Library) -> dict[str, int]:
    """Return headline counts for status output."""
    state = library.state
    return {
        "folders": sum(1 for folder in state.folders.values() if folder.kind == "folder"),
        "files": len(state.files),
        "unfiled": len(state.folders[UNFILED_ID].files),
        "trashed": len(state.folders[TRASH_ID].files) + len(state.folders[TRASH_ID].children),
        "tags": len(library.tags.vocabulary("all")),
    }


def build_tree(library: Library, *, show_files: bool = False) -> Tree:
    """Render the folder hierarchy as a rich tree."""
    tree = Tree("[bold]Library[/bold]", guide_style="dim")
    for root in library.folders.roots():
        _add_branch(library, tree, root, show_files=show_files, seen=set())
    return tree


def _add_branch(
    library: Library,
    parent: Tree,
    folder: Folder,
    *,
    show_files: bool,
    seen: set[str],
) -> None:
    seen.add(folder.id)
    tags = "".join(render_tag(tag.name, tag.color) for tag in folder.tags)
    count = f" [dim]({len(folder.files)})[/dim]" if folder.files else ""
    label = f"{folder.icon} {escape(folder.name)} [dim]{folder.id}[/dim]{count}{tags}"
    branch = parent.add(label)
    if show_files:
        for entry in library.query.files_by_folder(folder.id):
            branch.add(f"[cyan]{escape(entry.name)}[/cyan]")
    for child in library.folders.children(folder.id):
        if child.id not in seen:
            _add_branch(library, branch, child, show_files=show_files, seen=seen)


__all__ = [
    "build_tree",
    "configure_logging",
    "file_payload",
    "folder_payload",
    "library_counts",
    "render_tag",
    "resolve_folder",
]
