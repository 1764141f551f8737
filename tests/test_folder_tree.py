"""Folder tree behaviour: creation, moves, deletion, and acyclicity."""

from __future__ import annotations

import pytest

from folio.library import InvalidParentError, Library
from folio.state import LibraryState
from folio.state.models import (
    DUPLICATES_ID,
    PUBLICATIONS_ID,
    ROOT_ID,
    SPECIAL_FOLDER_IDS,
    TRASH_ID,
    UNFILED_ID,
)


def _assert_acyclic(state: LibraryState) -> None:
    """Assert parent pointers terminate and agree with child lists."""
    for folder_id, folder in state.folders.items():
        seen = {folder_id}
        current = folder.parent
        while current is not None:
            assert current not in seen, f"cycle through {folder_id}"
            seen.add(current)
            current = state.folders[current].parent
        for child_id in folder.children:
            assert state.folders[child_id].parent == folder_id


def test_new_library_has_reserved_folders_in_order() -> None:
    """A fresh library holds the five reserved folders in display order."""
    library = Library()

    assert library.state.folder_order == list(SPECIAL_FOLDER_IDS)
    for folder_id in SPECIAL_FOLDER_IDS:
        folder = library.state.folders[folder_id]
        assert folder.parent is None
        assert folder.children == []
    assert library.state.folders[ROOT_ID].kind == "library"
    assert library.state.folders[ROOT_ID].expanded is True
    assert library.state.folders[UNFILED_ID].name == "Unfiled Items"


def test_create_under_root_and_top_level() -> None:
    library = Library()

    papers = library.folders.create("Papers")
    loose = library.folders.create("Loose", parent_id=None, icon="📌")

    assert papers.parent == ROOT_ID
    assert papers.id in library.state.folders[ROOT_ID].children
    assert papers.id.startswith("folder-")
    assert loose.parent is None
    assert library.state.folder_order[-1] == loose.id
    assert loose.icon == "📌"


def test_create_under_unknown_parent_raises() -> None:
    """Creating under an unknown parent raises and creates nothing."""
    library = Library()
    before = set(library.state.folders)

    with pytest.raises(InvalidParentError):
        library.folders.create("Orphan", "missing")

    assert set(library.state.folders) == before


def test_rename_rejects_blank_and_unknown() -> None:
    library = Library()
    papers = library.folders.create("Papers")

    assert library.folders.rename(papers.id, "Articles") is True
    assert library.state.folders[papers.id].name == "Articles"
    assert library.folders.rename(papers.id, "   ") is False
    assert library.folders.rename("missing", "Name") is False


def test_moving_root_is_rejected_and_tree_unchanged() -> None:
    """Moving the library root is refused and the tree stays as it was."""
    library = Library()
    child = library.folders.create("Child")
    before = library.snapshot().model_dump()

    assert library.folders.move(ROOT_ID, child.id) is False
    assert library.snapshot().model_dump() == before


def test_move_into_own_descendant_is_rejected() -> None:
    """A folder cannot be moved beneath itself or its descendants."""
    library = Library()
    outer = library.folders.create("Outer")
    inner = library.folders.create("Inner", outer.id)
    deepest = library.folders.create("Deepest", inner.id)

    assert library.folders.move(outer.id, deepest.id) is False
    assert library.folders.move(outer.id, outer.id) is False
    assert library.folders.move(outer.id, "missing") is False
    assert library.folders.move("missing", ROOT_ID) is False
    _assert_acyclic(library.state)


def test_move_reparents_folder() -> None:
    library = Library()
    first = library.folders.create("First")
    second = library.folders.create("Second")

    assert library.folders.move(second.id, first.id) is True

    assert library.state.folders[second.id].parent == first.id
    assert library.state.folders[first.id].children == [second.id]
    assert second.id not in library.state.folders[ROOT_ID].children
    assert library.folders.path(second.id) == "My Library / First / Second"
    assert library.folders.ancestors(second.id) == [first.id, ROOT_ID]


def test_moving_top_level_folder_leaves_folder_order() -> None:
    """A top-level folder moved under another leaves ``folder_order``."""
    library = Library()
    loose = library.folders.create("Loose", parent_id=None)

    assert library.folders.move(loose.id, ROOT_ID) is True
    assert loose.id not in library.state.folder_order


def test_random_moves_never_create_cycles() -> None:
    """Arbitrary move sequences never produce a parent cycle."""
    library = Library()
    ids = [library.folders.create(f"F{index}").id for index in range(5)]

    for source in ids:
        for target in ids:
            library.folders.move(source, target)
            _assert_acyclic(library.state)


def test_delete_redistributes_files_to_unfiled() -> None:
    """Deleting a subtree moves all of its files to Unfiled Items."""
    library = Library()
    outer = library.folders.create("Outer")
    inner = library.folders.create("Inner", outer.id)
    library.files.add("/outer.pdf", folder_id=outer.id)
    library.files.add("/inner.pdf", folder_id=inner.id)

    assert library.folders.delete(outer.id) is True

    assert outer.id not in library.state.folders
    assert inner.id not in library.state.folders
    assert outer.id not in library.state.folders[ROOT_ID].children
    unfiled = library.state.folders[UNFILED_ID].files
    assert set(unfiled) == {"/outer.pdf", "/inner.pdf"}
    assert library.files.folder_of("/inner.pdf") == UNFILED_ID
    assert len(library.state.files) == 2


def test_reserved_folders_cannot_be_deleted() -> None:
    library = Library()

    for folder_id in SPECIAL_FOLDER_IDS:
        assert library.folders.delete(folder_id) is False
    assert library.folders.delete("missing") is False
    assert set(SPECIAL_FOLDER_IDS) <= set(library.state.folders)


def test_reserved_folder_nested_in_deleted_subtree_is_promoted() -> None:
    """A reserved folder inside a deleted subtree is promoted to top level."""
    library = Library()
    holder = library.folders.create("Holder")
    assert library.folders.move(PUBLICATIONS_ID, holder.id) is True

    assert library.folders.delete(holder.id) is True

    publications = library.state.folders[PUBLICATIONS_ID]
    assert publications.parent is None
    assert PUBLICATIONS_ID in library.state.folder_order
    _assert_acyclic(library.state)


def test_trash_and_toggle_expanded() -> None:
    library = Library()
    papers = library.folders.create("Papers")

    assert library.folders.trash(papers.id) is True
    assert library.state.folders[TRASH_ID].children == [papers.id]

    assert library.folders.toggle_expanded(DUPLICATES_ID) is True
    assert library.state.folders[DUPLICATES_ID].expanded is True
    assert library.folders.toggle_expanded("missing") is False


def test_walk_and_children_follow_tree_order() -> None:
    library = Library()
    first = library.folders.create("First")
    nested = library.folders.create("Nested", first.id)
    second = library.folders.create("Second")

    assert [f.id for f in library.folders.children(ROOT_ID)] == [first.id, second.id]
    assert list(library.folders.walk(ROOT_ID)) == [ROOT_ID, first.id, nested.id, second.id]
    assert library.folders.is_descendant(nested.id, ROOT_ID) is True
    assert library.folders.is_descendant(second.id, first.id) is False
    assert list(library.folders.walk("missing")) == []
