"""State data models for a Folio library document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

SCHEMA_VERSION = 1

TagColor = Literal["green", "blue", "purple", "orange", "red", "teal", "pink", "gray"]
TAG_COLORS: tuple[str, ...] = ("green", "blue", "purple", "orange", "red", "teal", "pink", "gray")
DEFAULT_TAG_COLOR = "green"

FolderKind = Literal["library", "special", "folder"]

ROOT_ID = "root"
PUBLICATIONS_ID = "my-publications"
DUPLICATES_ID = "duplicate-items"
UNFILED_ID = "unfiled"
TRASH_ID = "trash"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_tag_name(value: str) -> str:
    """Return the canonical form of a tag name (trimmed, lower-cased)."""
    return value.strip().lower()


def _coerce_tag(value: Any) -> Any:
    """Accept the legacy bare-string tag shape alongside ``{name, color}``."""
    if isinstance(value, str):
        return {"name": value, "color": DEFAULT_TAG_COLOR}
    if isinstance(value, dict):
        data = dict(value)
        if data.get("color") not in TAG_COLORS:
            data["color"] = DEFAULT_TAG_COLOR
        return data
    return value


def _normalize_name(value: Any) -> Any:
    if isinstance(value, str):
        return normalize_tag_name(value)
    return value


class Tag(BaseModel):
    """A coloured label attached to a folder or file.

    Attributes:
        name: Normalized tag name.
        color: Palette colour used when rendering the tag.
    """

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, BeforeValidator(_normalize_name)]
    color: TagColor = DEFAULT_TAG_COLOR


TagList = List[Annotated[Tag, BeforeValidator(_coerce_tag)]]


class Folder(BaseModel):
    """A node in the library folder tree.

    Attributes:
        id: Stable identifier.
        name: Display name.
        icon: Glyph shown next to the name.
        kind: Folder category; ``library`` marks the immutable root.
        parent: Parent folder id, ``None`` for top-level folders.
        children: Ordered child folder ids.
        files: Ordered member file paths.
        tags: Tags attached to the folder.
        expanded: Collapsed/expanded UI hint.
        created_at: Creation timestamp.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    icon: str = "📁"
    kind: FolderKind = Field(default="folder", validation_alias=AliasChoices("kind", "type"))
    parent: Optional[str] = None
    children: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    tags: TagList = Field(default_factory=list)
    expanded: bool = False
    created_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )


class FileEntry(BaseModel):
    """Metadata describing one imported file.

    Attributes:
        path: Unique file path used as the index key.
        name: Display name.
        folder: Id of the folder that owns the file.
        added_at: Import timestamp.
        last_opened: Timestamp of the most recent open, if any.
        tags: Tags attached to the file.
    """

    model_config = ConfigDict(populate_by_name=True)

    path: str
    name: str
    folder: str = UNFILED_ID
    added_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("added_at", "addedDate"),
    )
    last_opened: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("last_opened", "lastOpened"),
    )
    tags: TagList = Field(default_factory=list)


class LibraryState(BaseModel):
    """Aggregate document persisted for a library."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = SCHEMA_VERSION
    folders: Dict[str, Folder] = Field(default_factory=dict)
    files: Dict[str, FileEntry] = Field(default_factory=dict)
    folder_order: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("folder_order", "folderOrder"),
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


SPECIAL_FOLDERS: tuple[dict[str, str], ...] = (
    {"id": ROOT_ID, "name": "My Library", "kind": "library", "icon": "🏛️"},
    {"id": PUBLICATIONS_ID, "name": "My Publications", "kind": "special", "icon": "📄"},
    {"id": DUPLICATES_ID, "name": "Duplicate Items", "kind": "special", "icon": "📋"},
    {"id": UNFILED_ID, "name": "Unfiled Items", "kind": "special", "icon": "📂"},
    {"id": TRASH_ID, "name": "Trash", "kind": "special", "icon": "🗑️"},
)
SPECIAL_FOLDER_IDS: tuple[str, ...] = tuple(template["id"] for template in SPECIAL_FOLDERS)


def build_special_folder(folder_id: str) -> Folder:
    """Return a fresh instance of the reserved folder ``folder_id``.

    Raises:
        KeyError: If ``folder_id`` is not a reserved identifier.
    """
    for template in SPECIAL_FOLDERS:
        if template["id"] == folder_id:
            return Folder(**template, expanded=folder_id == ROOT_ID)
    raise KeyError(folder_id)


__all__ = [
    "SCHEMA_VERSION",
    "TagColor",
    "TAG_COLORS",
    "DEFAULT_TAG_COLOR",
    "FolderKind",
    "ROOT_ID",
    "PUBLICATIONS_ID",
    "DUPLICATES_ID",
    "UNFILED_ID",
    "TRASH_ID",
    "SPECIAL_FOLDERS",
    "SPECIAL_FOLDER_IDS",
    "Tag",
    "Folder",
    "FileEntry",
    "LibraryState",
    "build_special_folder",
    "normalize_tag_name",
]
