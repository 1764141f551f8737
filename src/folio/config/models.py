"""Configuration models describing Folio settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from folio.state.models import DEFAULT_TAG_COLOR, TagColor


class FolioBaseModel(BaseModel):
    """Shared configuration for Folio settings models."""

    model_config = ConfigDict(extra="forbid")


class LibrarySettings(FolioBaseModel):
    """Where the library lives and how new records are created.

    Attributes:
        path: Location of the library JSON document.
        default_tag_color: Colour applied when a tag is added without one.
    """

    path: str = "~/.folio/library.json"
    default_tag_color: TagColor = DEFAULT_TAG_COLOR


class ImportOptions(FolioBaseModel):
    """Directory discovery settings used by ``folio import``.

    Attributes:
        recursive: Whether to descend into subdirectories.
        include_hidden: Whether dot-files and dot-directories are imported.
        follow_symlinks: Whether symbolic links are followed.
        max_file_size_mb: Files larger than this are skipped; 0 disables the limit.
    """

    recursive: bool = True
    include_hidden: bool = False
    follow_symlinks: bool = False
    max_file_size_mb: int = 0


class SearchSettings(FolioBaseModel):
    """Search presentation defaults.

    Attributes:
        result_limit: Maximum number of results rendered by ``folio search``.
    """

    result_limit: int = 50


class LoggingSettings(FolioBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class CLIOptions(FolioBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class FolioConfig(FolioBaseModel):
    """Top-level configuration struct for Folio.

    Attributes:
        library: Library location and record defaults.
        imports: Directory discovery settings.
        search: Search presentation settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    library: LibrarySettings = Field(default_factory=LibrarySettings)
    imports: ImportOptions = Field(default_factory=ImportOptions)
    search: SearchSettings = Field(default_factory=SearchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "FolioBaseModel",
    "LibrarySettings",
    "ImportOptions",
    "SearchSettings",
    "LoggingSettings",
    "CLIOptions",
    "FolioConfig",
]
