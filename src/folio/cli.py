"""Command line interface for the Folio document library."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from folio.cli_support import (
    build_tree,
    configure_logging,
    file_payload,
    folder_payload,
    library_counts,
    render_tag,
    resolve_folder,
)
from folio.config import ConfigError, ConfigManager, FolioConfig, resolve_with_precedence
from folio.config.resolver import expand_dotted
from folio.ingestion import DirectoryScanner
from folio.library import InvalidFileError, Library
from folio.state import LibraryRepository
from folio.state.models import ROOT_ID, TAG_COLORS, UNFILED_ID, Folder

console = Console()


_SUMMARY_MODES = frozenset({"summary", "warning", "error"})


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Report a failed command and stop.

    In JSON mode an ``{"error": {"code", "message"}}`` document is printed on
    stdout and the process exits with status 1; otherwise a
    :class:`click.ClickException` carries the message to click.

    Args:
        message: Human-readable description of the failure.
        code: Stable machine-readable identifier, e.g. ``not_found``.
        json_output: Whether the command was invoked with ``--json``.
        original: Exception that caused the failure, chained when re-raised.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    if isinstance(original, click.ClickException):
        raise original
    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message`` unless ``--quiet`` or ``--summary`` hides its ``mode``.

    ``mode`` is one of ``detail``, ``summary``, ``warning`` or ``error``.
    Errors always print.
    """
    if mode != "error" and quiet:
        return
    if summary_only and mode not in _SUMMARY_MODES:
        return
    console.print(message)


def _format_summary_line(command: str, target: str, metrics: dict[str, Any]) -> str:
    counts = ", ".join(f"{name}={value}" for name, value in metrics.items())
    return f"[green]{command} summary for {target}: {counts}.[/green]"


def _load_config() -> FolioConfig:
    manager = ConfigManager()
    try:
        return manager.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _open_library(ctx: click.Context) -> tuple[FolioConfig, Library]:
    """Load configuration, configure logging, and open the library document."""

    obj = ctx.ensure_object(dict)
    if "library" in obj:
        return obj["config"], obj["library"]

    config = _load_config()
    configure_logging(config.logging.level)
    path = obj.get("library_path") or config.library.path
    library = Library(LibraryRepository(path))
    obj["config"] = config
    obj["library"] = library
    return config, library


def _output_modes(config: FolioConfig, quiet: bool, summary_mode: bool) -> tuple[bool, bool]:
    return quiet or config.cli.quiet_default, summary_mode or config.cli.summary_default


def _not_indexed(path: str) -> str:
    return f"{path} is not in the library."


def _require(ok: bool, message: str, *, json_output: bool = False, code: str = "rejected") -> None:
    if not ok:
        _handle_cli_error(message, code=code, json_output=json_output)


def _resolve_folder(library: Library, reference: str, *, json_output: bool = False) -> Folder:
    """Resolve REFERENCE to a folder, reporting a miss as a ``not_found`` error."""
    try:
        return resolve_folder(library, reference)
    except click.ClickException as exc:
        _handle_cli_error(exc.message, code="not_found", json_output=json_output, original=exc)
        raise


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="folio-library")
@click.option(
    "--library",
    "library_path",
    type=click.Path(dir_okay=False, path_type=str),
    help="Library document to operate on (defaults to configuration).",
)
@click.pass_context
def cli(ctx: click.Context, library_path: str | None) -> None:
    """Folio keeps a catalogue of your documents organised in folders and tags."""
    ctx.ensure_object(dict)
    ctx.obj["library_path"] = library_path


# Folders -------------------------------------------------------------


@cli.group()
def folder() -> None:
    """Create, rename, move, and delete folders."""


@folder.command("create")
@click.argument("name")
@click.option("--parent", default=ROOT_ID, show_default=True, help="Parent folder id or name.")
@click.option("--icon", default="📁", help="Glyph shown next to the folder name.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created folder as JSON.")
@click.pass_context
def folder_create(ctx: click.Context, name: str, parent: str, icon: str, json_output: bool) -> None:
    """Create folder NAME."""
    _, library = _open_library(ctx)
    parent_folder = _resolve_folder(library, parent, json_output=json_output)
    created = library.folders.create(name, parent_folder.id, icon)

    if json_output:
        console.print_json(data=folder_payload(library, created))
        return
    console.print(f"[green]Created {library.folders.path(created.id)} ({created.id}).[/green]")


@folder.command("rename")
@click.argument("reference")
@click.argument("new_name")
@click.pass_context
def folder_rename(ctx: click.Context, reference: str, new_name: str) -> None:
    """Rename the folder REFERENCE to NEW_NAME."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, reference)
    _require(library.folders.rename(target.id, new_name), "Folder name must not be blank.")
    console.print(f"[green]Renamed {target.id} to {new_name}.[/green]")


@folder.command("move")
@click.argument("reference")
@click.argument("new_parent")
@click.pass_context
def folder_move(ctx: click.Context, reference: str, new_parent: str) -> None:
    """Move the folder REFERENCE beneath NEW_PARENT."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, reference)
    parent = _resolve_folder(library, new_parent)
    _require(
        library.folders.move(target.id, parent.id),
        f"Cannot move {target.name} into {parent.name}: the library root cannot move "
        "and a folder cannot be placed inside itself.",
    )
    console.print(f"[green]Moved to {library.folders.path(target.id)}.[/green]")


@folder.command("delete")
@click.argument("reference")
@click.pass_context
def folder_delete(ctx: click.Context, reference: str) -> None:
    """Delete REFERENCE and its subfolders; their files move to Unfiled Items."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, reference)
    moved = len(library.query.files_in_folder(target.id))
    _require(library.folders.delete(target.id), f"{target.name} is a reserved folder.")
    console.print(f"[green]Deleted {target.name}; {moved} file(s) moved to {UNFILED_ID}.[/green]")


@folder.command("trash")
@click.argument("reference")
@click.pass_context
def folder_trash(ctx: click.Context, reference: str) -> None:
    """Move REFERENCE, with its contents, to the trash."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, reference)
    _require(library.folders.trash(target.id), f"{target.name} cannot be moved to the trash.")
    console.print(f"[green]Moved {target.name} to the trash.[/green]")


@folder.command("expand")
@click.argument("reference")
@click.pass_context
def folder_expand(ctx: click.Context, reference: str) -> None:
    """Toggle the expanded flag of REFERENCE."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, reference)
    library.folders.toggle_expanded(target.id)
    state = "expanded" if target.expanded else "collapsed"
    console.print(f"{target.name} is now {state}.")


@folder.command("tree")
@click.option("--files", "show_files", is_flag=True, help="List files beneath each folder.")
@click.option("--json", "json_output", is_flag=True, help="Emit folders as JSON.")
@click.pass_context
def folder_tree(ctx: click.Context, show_files: bool, json_output: bool) -> None:
    """Show the folder hierarchy."""
    _, library = _open_library(ctx)
    if json_output:
        folders = [
            folder_payload(library, library.state.folders[folder_id])
            for root in library.folders.roots()
            for folder_id in library.folders.walk(root.id)
        ]
        console.print_json(data={"folder_order": library.state.folder_order, "folders": folders})
        return
    console.print(build_tree(library, show_files=show_files))


# Files ---------------------------------------------------------------


@cli.group()
def file() -> None:
    """Add, move, and remove library files."""


@file.command("add")
@click.argument("path")
@click.option("--name", help="Display name (defaults to the file name).")
@click.option("--folder", "folder_ref", default=UNFILED_ID, show_default=True)
@click.option("--json", "json_output", is_flag=True, help="Emit the file entry as JSON.")
@click.pass_context
def file_add(
    ctx: click.Context, path: str, name: str | None, folder_ref: str, json_output: bool
) -> None:
    """Add PATH to the library, or re-file it if it is already there."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, folder_ref, json_output=json_output)
    try:
        entry = library.files.add(path, name, target.id)
    except InvalidFileError as exc:
        _handle_cli_error(str(exc), code="invalid_file", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data=file_payload(library, entry))
        return
    console.print(f"[green]Filed {entry.name} under {library.folders.path(entry.folder)}.[/green]")


@file.command("remove")
@click.argument("path")
@click.pass_context
def file_remove(ctx: click.Context, path: str) -> None:
    """Remove PATH from the library (the file on disk is untouched)."""
    _, library = _open_library(ctx)
    _require(library.files.remove(path), _not_indexed(path), code="not_found")
    console.print(f"[green]Removed {path}.[/green]")


@file.command("move")
@click.argument("path")
@click.argument("folder_ref")
@click.pass_context
def file_move(ctx: click.Context, path: str, folder_ref: str) -> None:
    """Move PATH into FOLDER_REF."""
    _, library = _open_library(ctx)
    target = _resolve_folder(library, folder_ref)
    _require(library.files.move(path, target.id), _not_indexed(path), code="not_found")
    console.print(f"[green]Moved {path} to {library.folders.path(target.id)}.[/green]")


@file.command("trash")
@click.argument("path")
@click.pass_context
def file_trash(ctx: click.Context, path: str) -> None:
    """Move PATH to the trash."""
    _, library = _open_library(ctx)
    _require(library.files.trash(path), _not_indexed(path), code="not_found")
    console.print(f"[green]Moved {path} to the trash.[/green]")


@file.command("open")
@click.argument("path")
@click.pass_context
def file_open(ctx: click.Context, path: str) -> None:
    """Record that PATH was opened."""
    _, library = _open_library(ctx)
    _require(library.files.get(path) is not None, _not_indexed(path), code="not_found")
    library.files.touch(path)
    console.print(f"Marked {path} as opened.")


@file.command("show")
@click.argument("path")
@click.option("--json", "json_output", is_flag=True, help="Emit the file entry as JSON.")
@click.pass_context
def file_show(ctx: click.Context, path: str, json_output: bool) -> None:
    """Show the catalogue entry for PATH."""
    _, library = _open_library(ctx)
    entry = library.files.get(path)
    if entry is None:
        _handle_cli_error(_not_indexed(path), code="not_found", json_output=json_output)
        return
    payload = file_payload(library, entry)
    if json_output:
        console.print_json(data=payload)
        return
    table = Table(show_header=False, box=None)
    for key in ("path", "name", "folder_path", "added_at", "last_opened"):
        table.add_row(f"[bold]{key}[/bold]", str(payload[key]))
    table.add_row("[bold]tags[/bold]", "".join(render_tag(t.name, t.color) for t in entry.tags))
    console.print(table)


# Tags ----------------------------------------------------------------


@cli.group()
def tag() -> None:
    """Attach, detach, and list tags."""


@tag.command("add")
@click.argument("target")
@click.argument("name")
@click.option("--color", type=click.Choice(TAG_COLORS), default=None, help="Tag colour.")
@click.option("--folder", "on_folder", is_flag=True, help="TARGET is a folder, not a file path.")
@click.pass_context
def tag_add(
    ctx: click.Context, target: str, name: str, color: str | None, on_folder: bool
) -> None:
    """Attach tag NAME to TARGET."""
    config, library = _open_library(ctx)
    chosen = color or config.library.default_tag_color
    if on_folder:
        owner = _resolve_folder(library, target)
        added = library.tags.add(owner, name, chosen)
    else:
        _require(library.files.get(target) is not None, _not_indexed(target))
        added = library.tags.add_to_file(target, name, chosen)
    if not added:
        console.print(f"[yellow]Tag '{name.strip().lower()}' already present or empty.[/yellow]")
        return
    console.print(f"[green]Tagged {target} with{render_tag(name.strip().lower(), chosen)}.[/green]")


@tag.command("remove")
@click.argument("target")
@click.argument("name")
@click.option("--folder", "on_folder", is_flag=True, help="TARGET is a folder, not a file path.")
@click.pass_context
def tag_remove(ctx: click.Context, target: str, name: str, on_folder: bool) -> None:
    """Detach tag NAME from TARGET."""
    _, library = _open_library(ctx)
    if on_folder:
        removed = library.tags.remove(_resolve_folder(library, target), name)
    else:
        removed = library.tags.remove_from_file(target, name)
    _require(removed, f"No tag '{name}' on {target}.", code="not_found")
    console.print(f"[green]Removed tag '{name.strip().lower()}' from {target}.[/green]")


@tag.command("list")
@click.option(
    "--scope",
    type=click.Choice(["folder", "all"]),
    default="all",
    show_default=True,
    help="Only folder tags, or folder and file tags.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the vocabulary as JSON.")
@click.pass_context
def tag_list(ctx: click.Context, scope: str, json_output: bool) -> None:
    """List the tag vocabulary."""
    _, library = _open_library(ctx)
    tags = library.tags.vocabulary_with_colors(scope)  # type: ignore[arg-type]
    if json_output:
        console.print_json(data={"scope": scope, "tags": [t.model_dump() for t in tags]})
        return
    if not tags:
        console.print("[yellow]No tags yet.[/yellow]")
        return
    console.print("".join(render_tag(t.name, t.color) for t in tags).strip())


# Search and import ---------------------------------------------------


@cli.command()
@click.argument("query", required=False, default="")
@click.option("--tag", "tag_name", help="Only files carrying this tag.")
@click.option("--folder", "folder_ref", help="Only files within this folder and its subfolders.")
@click.option("--limit", type=int, default=None, help="Maximum number of results.")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    tag_name: str | None,
    folder_ref: str | None,
    limit: int | None,
    json_output: bool,
) -> None:
    """Search file names and tags for QUERY."""
    config, library = _open_library(ctx)
    results = library.query.search_files(query)
    if tag_name:
        tagged = {entry.path for entry in library.query.files_by_tag(tag_name)}
        results = [entry for entry in results if entry.path in tagged]
    if folder_ref:
        scope = _resolve_folder(library, folder_ref, json_output=json_output)
        within = {entry.path for entry in library.query.files_in_folder(scope.id)}
        results = [entry for entry in results if entry.path in within]

    total = len(results)
    cap = limit if limit is not None else config.search.result_limit
    shown = results[: max(cap, 0)]

    if json_output:
        console.print_json(
            data={
                "query": query,
                "counts": {"matches": total, "shown": len(shown), "truncated": total - len(shown)},
                "results": [file_payload(library, entry) for entry in shown],
            }
        )
        return

    if shown:
        table = Table("Name", "Folder", "Tags", "Path")
        for entry in shown:
            table.add_row(
                entry.name,
                library.folders.path(entry.folder),
                "".join(render_tag(t.name, t.color) for t in entry.tags).strip(),
                entry.path,
            )
        console.print(table)
    console.print(
        _format_summary_line("Search", repr(query), {"matches": total, "shown": len(shown)})
    )


@cli.command("import")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--name", help="Name of the folder created for DIRECTORY.")
@click.option("--parent", default=ROOT_ID, show_default=True, help="Parent folder id or name.")
@click.option("--json", "json_output", is_flag=True, help="Emit the import result as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def import_directory(
    ctx: click.Context,
    directory: Path,
    name: str | None,
    parent: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Import DIRECTORY as a new folder, mirroring its subdirectories."""
    config, library = _open_library(ctx)
    quiet, summary_only = _output_modes(config, quiet, summary_mode)
    parent_folder = _resolve_folder(library, parent, json_output=json_output)

    options = config.imports
    max_bytes = options.max_file_size_mb * 1024 * 1024 if options.max_file_size_mb > 0 else None
    scanner = DirectoryScanner(
        recursive=options.recursive,
        include_hidden=options.include_hidden,
        follow_symlinks=options.follow_symlinks,
        max_size_bytes=max_bytes,
    )
    descriptors = list(scanner.scan(directory))
    root_name = name or directory.expanduser().resolve().name

    result = library.query.import_folder(root_name, descriptors, parent_folder.id)
    result.skipped.extend(scanner.skipped)
    result.files_skipped = len(result.skipped)

    if json_output:
        console.print_json(data=result.model_dump(mode="json"))
        return

    for skipped in result.skipped:
        _emit_message(
            f"[yellow]Skipped {skipped.file_path}: {skipped.reason}[/yellow]",
            mode="warning",
            quiet=quiet,
            summary_only=summary_only,
        )
    _emit_message(
        _format_summary_line(
            "Import",
            str(directory),
            {
                "folders": result.folders_created,
                "imported": result.files_imported,
                "skipped": result.files_skipped,
            },
        ),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


# Lifecycle and maintenance -------------------------------------------


@cli.group()
def trash() -> None:
    """Manage the trash."""


@trash.command("empty")
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
@click.pass_context
def trash_empty(ctx: click.Context, json_output: bool) -> None:
    """Permanently remove everything in the trash."""
    _, library = _open_library(ctx)
    result = library.files.empty_trash()
    if json_output:
        console.print_json(data=result.model_dump(mode="json"))
        return
    for error in result.errors:
        console.print(f"[red]  - {error.target}: {error.error}[/red]")
    console.print(
        _format_summary_line(
            "Trash", "trash", {"deleted": result.deleted, "folders": result.folders}
        )
    )


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
@click.pass_context
def status(ctx: click.Context, json_output: bool) -> None:
    """Summarise the library."""
    _, library = _open_library(ctx)
    counts = library_counts(library)
    store = library.store
    location = str(store.path) if isinstance(store, LibraryRepository) else "memory"
    recent = library.query.recent_files(5)

    if json_output:
        console.print_json(
            data={
                "library": location,
                "version": library.state.version,
                "counts": counts,
                "recent": [file_payload(library, entry) for entry in recent],
            }
        )
        return

    table = Table(show_header=False, box=None)
    for key, value in counts.items():
        table.add_row(f"[bold]{key}[/bold]", str(value))
    console.print(table)
    for entry in recent:
        console.print(f"  [cyan]{entry.name}[/cyan] opened {entry.last_opened:%Y-%m-%d %H:%M}")
    console.print(_format_summary_line("Status", location, counts))


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the repair report as JSON.")
@click.pass_context
def repair(ctx: click.Context, json_output: bool) -> None:
    """Check the library structure and fix inconsistencies."""
    _, library = _open_library(ctx)
    notes = [*library.last_repair.notes, *library.repair().notes]
    if json_output:
        console.print_json(data={"repaired": bool(notes), "notes": notes})
        return
    if not notes:
        console.print("[green]Library structure is consistent.[/green]")
        return
    for note in notes:
        console.print(f"[yellow]  - {note}[/yellow]")
    console.print(f"[green]Applied {len(notes)} repair(s).[/green]")


# Configuration -------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage Folio configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Show file values without FOLIO__ overrides.")
def config_view(no_env: bool) -> None:
    """Print the effective configuration."""
    try:
        effective = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    rendered = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(rendered, "yaml", word_wrap=True))


def _config_body(text: str) -> list[str]:
    return [line for line in text.splitlines() if not line.startswith("#")]


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML value to store under KEY.")
def config_set(key: str, value: str) -> None:
    """Store VALUE under the dotted KEY, e.g. ``search.result_limit``."""
    key = ".".join(part.strip() for part in key.split(".") if part.strip())
    if not key:
        raise click.ClickException("KEY must be a dotted path such as 'search.result_limit'.")

    manager = ConfigManager()
    try:
        manager.ensure_exists()
        parsed = yaml.safe_load(value)
        updated = expand_dotted({**manager.load_file_overrides(), key: parsed}, label="config")
        resolve_with_precedence(defaults=FolioConfig(), file_overrides=updated)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = _config_body(manager.read_text())
    manager.save(updated)
    after = _config_body(manager.read_text())
    if before == after:
        console.print(f"[yellow]{key} already has that value; nothing changed.[/yellow]")
        return

    diff = difflib.unified_diff(before, after, "config.yaml", "config.yaml", lineterm="")
    console.print(Syntax("\n".join(diff), "diff"))
    console.print(f"[green]Updated {key}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the configuration file in $EDITOR, validating before saving."""
    manager = ConfigManager()
    manager.ensure_exists()
    original = manager.read_text()

    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes made.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("The configuration must be a mapping at the top level.")
    try:
        resolve_with_precedence(defaults=FolioConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print(f"[green]Configuration updated: {manager.config_path}[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
