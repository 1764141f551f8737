"""Result and request models returned by library operations."""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ImportDescriptor(BaseModel):
    """Describes one file discovered inside a folder being imported.

    Attributes:
        file_path: Unique path of the file.
        file_name: Display name; derived from the path when omitted.
        folder_path: Folder path relative to the import root, ``/`` or ``\\``
            separated. ``None`` places the file directly in the import root.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(validation_alias=AliasChoices("file_path", "filePath"))
    file_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("file_name", "fileName")
    )
    folder_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("folder_path", "folderPath")
    )


class SkippedFile(BaseModel):
    """A descriptor that could not be imported, with the reason."""

    file_path: str
    reason: str


class ImportResult(BaseModel):
    """Outcome of a bulk folder import.

    Attributes:
        root_folder_id: Id of the folder created for the import root.
        folders_created: Number of folders created, including the import root.
        files_imported: Number of files linked into the library.
        files_skipped: Number of descriptors that failed.
        skipped: Details for each skipped descriptor.
        folder_ids: Mapping of relative folder path to created folder id;
            the empty string maps to the import root.
    """

    root_folder_id: str
    folders_created: int = 0
    files_imported: int = 0
    files_skipped: int = 0
    skipped: List[SkippedFile] = Field(default_factory=list)
    folder_ids: dict[str, str] = Field(default_factory=dict)


class BatchError(BaseModel):
    """A per-item failure collected during a batch operation."""

    target: str
    error: str


class TrashResult(BaseModel):
    """Outcome of emptying the trash."""

    deleted: int = 0
    folders: int = 0
    errors: List[BatchError] = Field(default_factory=list)


class MoveResult(BaseModel):
    """Outcome of moving the contents of a folder in bulk."""

    moved: int = 0
    folders: int = 0
    errors: List[BatchError] = Field(default_factory=list)


class RepairReport(BaseModel):
    """Summary of structural repairs applied to a loaded library.

    Attributes:
        removed_references: Child references dropped (self, dangling, cyclic, duplicate).
        restored_folders: Reserved folders recreated because they were missing.
        relinked_files: Files whose folder membership had to be corrected.
        notes: Human-readable description of each repair.
    """

    removed_references: int = 0
    restored_folders: List[str] = Field(default_factory=list)
    relinked_files: int = 0
    notes: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Return whether any repair was applied."""
        return bool(self.notes)


__all__ = [
    "ImportDescriptor",
    "SkippedFile",
    "ImportResult",
    "BatchError",
    "TrashResult",
    "MoveResult",
    "RepairReport",
]
