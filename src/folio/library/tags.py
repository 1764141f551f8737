"""Tag registry: attach, detach, and enumerate tags on folders and files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Literal, Union

from folio.state.models import (
    DEFAULT_TAG_COLOR,
    TAG_COLORS,
    FileEntry,
    Folder,
    LibraryState,
    Tag,
    normalize_tag_name,
)

if TYPE_CHECKING:
    from .manager import Library

TagOwner = Union[Folder, FileEntry]
VocabularyScope = Literal["folder", "all"]


def has_tag(owner: TagOwner, name: str) -> bool:
    """Return whether ``owner`` carries a tag matching ``name`` case-insensitively."""
    normalized = normalize_tag_name(name)
    return any(tag.name == normalized for tag in owner.tags)


class TagRegistry:
    """Attach and detach tags, and derive the tag vocabulary."""

    def __init__(self, library: "Library") -> None:
        self._library = library

    @property
    def _state(self) -> LibraryState:
        return self._library.state

    def add(self, owner: TagOwner, name: str, color: str = DEFAULT_TAG_COLOR) -> bool:
        """Attach a tag to ``owner``.

        Names are trimmed and lower-cased. A name already present on the owner
        is rejected regardless of colour, so the first colour wins.

        Args:
            owner: Folder or file entry receiving the tag.
            name: Tag name as typed by the user.
            color: Palette colour for the tag.

        Returns:
            bool: True if the tag was added.

        Raises:
            ValueError: If ``color`` is not part of the palette.
        """
        if color not in TAG_COLORS:
            palette = ", ".join(TAG_COLORS)
            raise ValueError(f"Unknown tag color {color!r}; expected one of {palette}.")
        normalized = normalize_tag_name(name)
        if not normalized or has_tag(owner, normalized):
            return False
        owner.tags.append(Tag(name=normalized, color=color))
        self._library.commit()
        return True

    def remove(self, owner: TagOwner, name: str) -> bool:
        """Detach the tag matching ``name`` from ``owner``."""
        normalized = normalize_tag_name(name)
        remaining = [tag for tag in owner.tags if tag.name != normalized]
        if len(remaining) == len(owner.tags):
            return False
        owner.tags = remaining
        self._library.commit()
        return True

    def add_to_folder(self, folder_id: str, name: str, color: str = DEFAULT_TAG_COLOR) -> bool:
        """Attach a tag to the folder with ``folder_id``.

        Args:
            folder_id: Folder to tag.
            name: Tag name; normalised before it is stored.
            color: Palette colour for the tag.

        Returns:
            bool: False when the folder is unknown or already carries the tag.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return False
        return self.add(folder, name, color)

    def remove_from_folder(self, folder_id: str, name: str) -> bool:
        """Detach tag ``name`` from the folder with ``folder_id``.

        Returns:
            bool: False when the folder is unknown or lacks the tag.
        """
        folder = self._state.folders.get(folder_id)
        if folder is None:
            return False
        return self.remove(folder, name)

    def add_to_file(self, path: str, name: str, color: str = DEFAULT_TAG_COLOR) -> bool:
        """Attach a tag to the file indexed under ``path``.

        Args:
            path: Indexed file path.
            name: Tag name; normalised before it is stored.
            color: Palette colour for the tag.

        Returns:
            bool: False when the path is unknown or the file already carries the tag.
        """
        entry = self._state.files.get(path)
        if entry is None:
            return False
        return self.add(entry, name, color)

    def remove_from_file(self, path: str, name: str) -> bool:
        """Detach tag ``name`` from the file indexed under ``path``."""
        entry = self._state.files.get(path)
        if entry is None:
            return False
        return self.remove(entry, name)

    def vocabulary(self, scope: VocabularyScope = "all") -> list[str]:
        """Return the sorted, de-duplicated tag names in ``scope``.

        Args:
            scope: ``folder`` for folder tags only, ``all`` to include file tags.
        """
        return sorted({tag.name for tag in self._iter_tags(scope)})

    def vocabulary_with_colors(self, scope: VocabularyScope = "all") -> list[Tag]:
        """Return one tag per name, keeping the first colour encountered."""
        seen: dict[str, Tag] = {}
        for tag in self._iter_tags(scope):
            seen.setdefault(tag.name, tag)
        return sorted(seen.values(), key=lambda tag: tag.name)

    def _iter_tags(self, scope: VocabularyScope) -> Iterable[Tag]:
        if scope not in ("folder", "all"):
            raise ValueError(f"Unknown vocabulary scope {scope!r}.")
        for folder in self._state.folders.values():
            yield from folder.tags
        if scope == "all":
            for entry in self._state.files.values():
                yield from entry.tags


__all__ = ["TagRegistry", "TagOwner", "VocabularyScope", "has_tag"]
