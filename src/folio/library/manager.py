"""The library aggregate: state ownership, commits, and change notification."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from folio.state import LibraryState, LibraryStore, MemoryStore, StateError

from .files import FileIndex
from .integrity import repair
from .models import RepairReport
from .query import QueryEngine
from .tags import TagRegistry
from .tree import FolderTree

LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[LibraryState], None]


class Library:
    """Own a library document and expose its folder, file, tag, and query operations.

    Every mutator ends with a commit: the state is handed to the store and a
    snapshot is broadcast to subscribers. Store failures are logged and never
    propagate, so the in-memory state stays authoritative for the session.

    Attributes:
        state: The live library document.
        folders: Folder tree operations.
        files: File index operations.
        tags: Tag registry operations.
        query: Search, projection, and import operations.
    """

    def __init__(self, store: LibraryStore | None = None) -> None:
        """Load the library from ``store``, repairing and seeding it as needed.

        Args:
            store: Persistence adapter; an in-memory store is used when omitted.
        """
        self._store: LibraryStore = store if store is not None else MemoryStore()
        self._subscribers: list[Subscriber] = []
        self._batch_depth = 0
        self._pending = False

        self.state, self.last_repair = self._load()

        self.folders = FolderTree(self)
        self.files = FileIndex(self)
        self.tags = TagRegistry(self)
        self.query = QueryEngine(self)

    @property
    def store(self) -> LibraryStore:
        """Return the persistence adapter backing this library."""
        return self._store

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` to receive a snapshot after every mutation.

        Args:
            callback: Callable invoked with a deep copy of the library state.

        Returns:
            Callable[[], None]: Function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def commit(self) -> None:
        """Persist the state and notify subscribers, or defer inside a batch."""
        if self._batch_depth:
            self._pending = True
            return
        self._persist()
        self._notify()

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Group several mutations so they commit once on exit."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._pending = False
                self.commit()

    def repair(self) -> RepairReport:
        """Run the structural repair pass and commit when anything changed."""
        report = repair(self.state)
        if report.changed:
            self.commit()
        return report

    def snapshot(self) -> LibraryState:
        """Return a deep copy of the current state."""
        return self.state.model_copy(deep=True)

    # Internal helpers -------------------------------------------------

    def _load(self) -> tuple[LibraryState, RepairReport]:
        unreadable = False
        try:
            state = self._store.load()
        except StateError as exc:
            LOGGER.error("Could not load library, starting with an empty one: %s", exc)
            state = None
            unreadable = True

        fresh = state is None
        if state is None:
            state = LibraryState()

        report = repair(state)
        for note in report.notes:
            if fresh:
                LOGGER.debug(note)
            else:
                LOGGER.warning("Library repair: %s", note)

        # An unreadable document is left in place until the first mutation.
        if (fresh or report.changed) and not unreadable:
            self._persist(state)
        return state, (RepairReport() if fresh else report)

    def _persist(self, state: LibraryState | None = None) -> None:
        target = state if state is not None else self.state
        try:
            self._store.save(target)
        except (StateError, OSError) as exc:
            LOGGER.error("Library changes are not durable this session: %s", exc)
            return
        except Exception:
            LOGGER.exception("Library store %r failed; changes are not durable.", self._store)
            return
        LOGGER.debug(
            "Committed library (%d folders, %d files).", len(target.folders), len(target.files)
        )

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                LOGGER.exception("Library subscriber %r failed.", callback)


__all__ = ["Library", "Subscriber"]
