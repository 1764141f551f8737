"""Library aggregate tests: commits, subscribers, batches, and persistence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import pytest

from folio.library import Library
from folio.state import LibraryRepository, LibraryState, MemoryStore, StateError
from folio.state.models import ROOT_ID, UNFILED_ID


class _FailingStore:
    """Store whose writes always fail."""

    def __init__(self) -> None:
        self.attempts = 0

    def load(self) -> Optional[LibraryState]:
        return None

    def save(self, state: LibraryState) -> None:
        self.attempts += 1
        raise StateError("disk full")


class _ExplodingStore:
    """Store whose writes fail with an error outside the store contract."""

    def __init__(self) -> None:
        self.attempts = 0

    def load(self) -> Optional[LibraryState]:
        return None

    def save(self, state: LibraryState) -> None:
        self.attempts += 1
        raise RuntimeError("adapter exploded")


def test_subscribers_receive_snapshots_after_each_mutation() -> None:
    """Subscribers get an independent copy after every committed change."""
    library = Library()
    received: list[LibraryState] = []
    library.subscribe(received.append)

    papers = library.folders.create("Papers")
    library.files.add("/a.pdf", folder_id=papers.id)

    assert len(received) == 2
    assert "/a.pdf" in received[1].files
    received[1].folders[papers.id].name = "Mutated"
    assert library.state.folders[papers.id].name == "Papers"


def test_unsubscribe_stops_notifications() -> None:
    library = Library()
    received: list[LibraryState] = []
    unsubscribe = library.subscribe(received.append)

    library.folders.create("First")
    unsubscribe()
    unsubscribe()
    library.folders.create("Second")

    assert len(received) == 1


def test_rejected_operations_do_not_notify() -> None:
    """Rejected operations notify no subscriber."""
    library = Library()
    received: list[LibraryState] = []
    library.subscribe(received.append)

    library.folders.move(ROOT_ID, UNFILED_ID)
    library.folders.delete(UNFILED_ID)
    library.files.remove("/missing.pdf")

    assert received == []


def test_batch_commits_once() -> None:
    """Nested batches save and notify once, when the outermost one ends."""
    store = MemoryStore()
    library = Library(store)
    saves = store.saves
    received: list[LibraryState] = []
    library.subscribe(received.append)

    with library.batch():
        folder = library.folders.create("Papers")
        with library.batch():
            library.files.add("/a.pdf", folder_id=folder.id)
        library.files.add("/b.pdf", folder_id=folder.id)
        assert received == []

    assert len(received) == 1
    assert store.saves == saves + 1
    assert set(received[0].files) == {"/a.pdf", "/b.pdf"}


def test_failing_subscriber_does_not_break_commit(caplog: pytest.LogCaptureFixture) -> None:
    """A raising subscriber is logged and later subscribers still run."""
    library = Library()
    received: list[LibraryState] = []

    def _broken(state: LibraryState) -> None:
        raise RuntimeError("boom")

    library.subscribe(_broken)
    library.subscribe(received.append)

    with caplog.at_level("ERROR", logger="folio"):
        library.folders.create("Papers")

    assert len(received) == 1
    assert "subscriber" in caplog.text


def test_store_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    """Ensure store write failures are logged and the change stays in memory.

    Args:
        caplog: Pytest fixture capturing log records.
    """
    store = _FailingStore()

    with caplog.at_level("ERROR", logger="folio"):
        library = Library(store)
        papers = library.folders.create("Papers")

    assert papers.id in library.state.folders
    assert store.attempts == 2
    assert "not durable" in caplog.text


def test_repository_persists_between_sessions(tmp_path: Path) -> None:
    """Changes written by one library are visible to the next one opened."""
    path = tmp_path / "library.json"
    first = Library(LibraryRepository(path))
    papers = first.folders.create("Papers")
    first.files.add("/a.pdf", folder_id=papers.id)
    first.tags.add_to_file("/a.pdf", "work", "blue")

    second = Library(LibraryRepository(path))

    assert second.state.folders[papers.id].files == ["/a.pdf"]
    assert second.files.get("/a.pdf").tags[0].color == "blue"  # type: ignore[union-attr]
    assert second.last_repair.changed is False


def test_unreadable_document_is_left_until_first_change(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Ensure a corrupt document is kept on disk until the first change.

    Args:
        tmp_path: Temporary directory provided by pytest.
        caplog: Pytest fixture capturing log records.
    """
    path = tmp_path / "library.json"
    path.write_text("{broken", encoding="utf-8")

    with caplog.at_level("ERROR", logger="folio"):
        library = Library(LibraryRepository(path))

    assert ROOT_ID in library.state.folders
    assert path.read_text(encoding="utf-8") == "{broken"
    assert "Could not load library" in caplog.text

    library.folders.create("Fresh")

    assert "Fresh" in path.read_text(encoding="utf-8")
    json.loads(path.read_text(encoding="utf-8"))


def test_undecodable_document_starts_fresh(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A document that is not valid UTF-8 is reported like any other unreadable one."""
    path = tmp_path / "library.json"
    raw = b'{"folders": {"\xff\xfe": 1}}'
    path.write_bytes(raw)

    with caplog.at_level("ERROR", logger="folio"):
        library = Library(LibraryRepository(path))

    assert ROOT_ID in library.state.folders
    assert library.state.files == {}
    assert path.read_bytes() == raw
    assert "Could not load library" in caplog.text


def test_unexpected_store_errors_stay_inside_the_library(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A store raising something other than ``StateError`` does not reach the caller."""
    store = _ExplodingStore()

    with caplog.at_level("ERROR", logger="folio"):
        library = Library(store)
        papers = library.folders.create("Papers")
        library.files.add("/a.pdf", folder_id=papers.id)

    assert library.state.folders[papers.id].files == ["/a.pdf"]
    assert store.attempts == 3
    assert "adapter exploded" in caplog.text
