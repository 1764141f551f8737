"""Search, projections, and bulk import tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from folio.library import (
    ImportDescriptor,
    InvalidParentError,
    Library,
    expand_folder_paths,
    split_folder_path,
)
from folio.state import MemoryStore
from folio.state.models import ROOT_ID


def _paths(entries) -> list[str]:
    return [entry.path for entry in entries]


def test_search_matches_names_and_tags_case_insensitively() -> None:
    """Search matches file names and tag names regardless of case."""
    library = Library()
    library.files.add("/docs/Quarterly Report.pdf")
    library.files.add("/docs/notes.md")
    library.tags.add_to_file("/docs/notes.md", "Reporting")

    assert _paths(library.query.search_files("REPORT")) == [
        "/docs/Quarterly Report.pdf",
        "/docs/notes.md",
    ]
    assert _paths(library.query.search_files("notes")) == ["/docs/notes.md"]
    assert library.query.search_files("absent") == []
    assert len(library.query.search_files("")) == 2


def test_search_keeps_surrounding_whitespace_in_query() -> None:
    """Whitespace in the query is part of the substring being matched."""
    library = Library()
    library.files.add("/docs/Quarterly Report.pdf")
    library.files.add("/docs/report.pdf")

    assert _paths(library.query.search_files(" report")) == ["/docs/Quarterly Report.pdf"]
    assert library.query.search_files(" ") != library.query.search_files("")


def test_projections_by_folder_and_tag() -> None:
    library = Library()
    papers = library.folders.create("Papers")
    drafts = library.folders.create("Drafts", papers.id)
    library.files.add("/a.pdf", folder_id=papers.id)
    library.files.add("/b.pdf", folder_id=drafts.id)
    library.tags.add_to_file("/b.pdf", "draft")

    assert _paths(library.query.files_by_folder(papers.id)) == ["/a.pdf"]
    assert _paths(library.query.files_in_folder(papers.id)) == ["/a.pdf", "/b.pdf"]
    assert _paths(library.query.files_in_folder(papers.id, include_subfolders=False)) == [
        "/a.pdf"
    ]
    assert _paths(library.query.files_by_tag("DRAFT")) == ["/b.pdf"]
    assert library.query.files_by_folder("missing") == []


def test_recent_files_orders_by_last_opened() -> None:
    """Recent files come newest first and skip never-opened entries."""
    library = Library()
    for path in ("/old.pdf", "/new.pdf", "/never.pdf"):
        library.files.add(path)
    now = datetime.now(timezone.utc)
    library.state.files["/old.pdf"].last_opened = now - timedelta(days=2)
    library.state.files["/new.pdf"].last_opened = now

    assert _paths(library.query.recent_files()) == ["/new.pdf", "/old.pdf"]
    assert _paths(library.query.recent_files(1)) == ["/new.pdf"]


def test_import_creates_nested_folders() -> None:
    """Importing creates each folder path once, parents before children."""
    library = Library()

    result = library.query.import_folder(
        "Batch", [{"filePath": "/x.pdf", "folderPath": "sub/inner"}]
    )

    batch = library.state.folders[result.root_folder_id]
    assert batch.name == "Batch"
    assert batch.parent == ROOT_ID
    sub = library.state.folders[result.folder_ids["sub"]]
    inner = library.state.folders[result.folder_ids["sub/inner"]]
    assert batch.children == [sub.id]
    assert sub.children == [inner.id]
    assert inner.files == ["/x.pdf"]
    assert library.files.folder_of("/x.pdf") == inner.id
    assert result.folders_created == 3
    assert result.files_imported == 1
    assert result.files_skipped == 0


def test_import_files_without_folder_path_land_in_root() -> None:
    library = Library()

    result = library.query.import_folder(
        "Inbox",
        [
            ImportDescriptor(file_path="/top.pdf"),
            ImportDescriptor(file_path="/deep.pdf", folder_path="a\\b"),
        ],
    )

    assert library.files.folder_of("/top.pdf") == result.root_folder_id
    assert library.files.folder_of("/deep.pdf") == result.folder_ids["a/b"]
    assert library.folders.path(result.folder_ids["a/b"]) == "My Library / Inbox / a / b"


def test_import_skips_invalid_and_duplicate_descriptors() -> None:
    """Invalid and repeated descriptors are skipped and reported."""
    library = Library()

    result = library.query.import_folder(
        "Mixed",
        [
            {"file_path": "/ok.pdf", "file_name": "Renamed.pdf"},
            {"folderPath": "nowhere"},
            {"file_path": "/ok.pdf"},
            {"file_path": "   "},
        ],
    )

    assert result.files_imported == 1
    assert result.files_skipped == 3
    assert library.files.get("/ok.pdf").name == "Renamed.pdf"  # type: ignore[union-attr]
    reasons = [skipped.reason for skipped in result.skipped]
    assert any(reason.startswith("invalid descriptor") for reason in reasons)
    assert "duplicate path in batch" in reasons


def test_import_commits_once() -> None:
    store = MemoryStore()
    library = Library(store)
    saves = store.saves

    library.query.import_folder("Batch", [{"file_path": f"/{n}.pdf"} for n in range(5)])

    assert store.saves == saves + 1


def test_import_under_unknown_parent_creates_nothing() -> None:
    library = Library()
    before = library.snapshot().model_dump()

    with pytest.raises(InvalidParentError):
        library.query.import_folder("Batch", [{"file_path": "/x.pdf"}], parent_id="missing")

    assert library.snapshot().model_dump() == before


def test_folder_path_helpers() -> None:
    assert split_folder_path("a\\b//c/") == ["a", "b", "c"]
    assert split_folder_path(None) == []
    assert expand_folder_paths(["b/c", "a", None, "b"]) == ["a", "b", "b/c"]
