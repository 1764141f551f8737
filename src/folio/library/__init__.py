"""Library data model operations: folder tree, file index, tags, and queries."""

from .errors import InvalidFileError, InvalidParentError, LibraryError
from .files import FileIndex
from .integrity import repair
from .manager import Library, Subscriber
from .models import (
    BatchError,
    ImportDescriptor,
    ImportResult,
    MoveResult,
    RepairReport,
    SkippedFile,
    TrashResult,
)
from .query import QueryEngine, expand_folder_paths, split_folder_path
from .tags import TagRegistry
from .tree import FolderTree

__all__ = [
    "Library",
    "Subscriber",
    "FolderTree",
    "FileIndex",
    "TagRegistry",
    "QueryEngine",
    "expand_folder_paths",
    "split_folder_path",
    "repair",
    "LibraryError",
    "InvalidParentError",
    "InvalidFileError",
    "ImportDescriptor",
    "ImportResult",
    "SkippedFile",
    "BatchError",
    "TrashResult",
    "MoveResult",
    "RepairReport",
]
