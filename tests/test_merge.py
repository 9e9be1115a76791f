"""
Tests for MergeEngine.

Tests focus on:
- Plain relocation of non-conflicting children
- Skip, rename and overwrite decisions
- Aborted merges keeping earlier moves
- Argument checks
"""

from unittest.mock import MagicMock

import pytest

from treefs.vfs.base import Tree
from treefs.vfs.errors import InvalidArgumentError, StructuralError
from treefs.vfs.merge import ConflictAction, MergeEngine, MergeReport, Resolution
from treefs.vfs.mutator import TreeMutator


@pytest.fixture
def tree():
    return Tree(clock=lambda: 500)


@pytest.fixture
def mutator(tree):
    return TreeMutator(tree)


@pytest.fixture
def engine(mutator):
    return MergeEngine(mutator)


@pytest.fixture
def folders(tree, mutator):
    """Destination and source folders.

    Structure:
        /
        ├── dest/
        │   ├── shared.txt   ("old")
        │   └── keep.txt
        └── src/
            ├── new.txt
            ├── shared.txt   ("new")
            └── extra/
                └── inner.txt
    """
    dest = mutator.create_folder(tree.root, "dest")
    src = mutator.create_folder(tree.root, "src")
    mutator.create_file(dest, "shared.txt", "old")
    mutator.create_file(dest, "keep.txt")
    mutator.create_file(src, "new.txt")
    mutator.create_file(src, "shared.txt", "new")
    extra = mutator.create_folder(src, "extra")
    mutator.create_file(extra, "inner.txt")
    return dest, src


def names(tree, folder):
    return [child.name for child in tree.children(folder)]


class TestResolution:
    """Test resolution values."""

    def test_constructors(self):
        assert Resolution.skip().action is ConflictAction.SKIP
        assert Resolution.overwrite().action is ConflictAction.OVERWRITE
        rename = Resolution.rename("other")
        assert rename.action is ConflictAction.RENAME
        assert rename.new_name == "other"

    def test_report_summary(self):
        report = MergeReport(moved=["a"], skipped=["b"], aborted=True)

        assert report.summary() == "1 moved, 1 skipped, aborted"


class TestMerge:
    """Test merge outcomes."""

    def test_non_conflicting_children_move(self, tree, engine, folders):
        dest, src = folders
        decide = MagicMock(return_value=Resolution.skip())

        report = engine.merge(dest, src, decide)

        decide.assert_called_once_with("shared.txt")
        assert report.moved == ["new.txt", "extra"]
        assert report.skipped == ["shared.txt"]
        assert names(tree, dest) == ["shared.txt", "keep.txt", "new.txt", "extra"]
        assert names(tree, src) == ["shared.txt"]
        tree.check_integrity()

    def test_skip_leaves_destination_untouched(self, tree, engine, folders):
        dest, src = folders

        engine.merge(dest, src, lambda name: Resolution.skip())

        assert tree.find_child(dest, "shared.txt").content == "old"
        assert tree.find_child(src, "shared.txt").content == "new"

    def test_overwrite_replaces_and_releases(self, tree, engine, folders):
        """
        Given: A name present in both folders
        When: Merging with decision Overwrite
        Then: Destination holds exactly one child with that name, carrying the
              source's attributes, and the old node's handle is released
        """
        dest, src = folders
        old = tree.find_child(dest, "shared.txt")
        old_handle = old.handle

        report = engine.merge(dest, src, lambda name: Resolution.overwrite())

        matching = [child for child in tree.children(dest) if child.name == "shared.txt"]
        assert len(matching) == 1
        assert matching[0].content == "new"
        assert not tree.is_live(old_handle)
        assert old.handle is None
        assert report.overwritten == ["shared.txt"]
        assert report.released == 1
        assert names(tree, src) == []
        tree.check_integrity()

    def test_overwrite_folder_releases_subtree(self, tree, mutator, engine, folders):
        dest, src = folders
        old_extra = mutator.create_folder(dest, "extra")
        mutator.create_file(old_extra, "a")
        mutator.create_file(old_extra, "b")

        report = engine.merge(dest, src, lambda name: Resolution.overwrite())

        assert report.released == 4
        extra = tree.find_child(dest, "extra")
        assert names(tree, extra) == ["inner.txt"]

    def test_rename_moves_under_new_name(self, tree, engine, folders):
        dest, src = folders

        report = engine.merge(dest, src, lambda name: Resolution.rename("shared-1.txt"))

        assert report.renamed == ["shared.txt"]
        assert tree.find_child(dest, "shared-1.txt").content == "new"
        assert tree.find_child(dest, "shared.txt").content == "old"
        assert names(tree, src) == []

    def test_rename_collision_is_rejected(self, tree, engine, folders):
        """
        Given: A rename decision whose new name also exists in destination
        When: Merging
        Then: The child stays in the source and is reported as rejected
        """
        dest, src = folders

        report = engine.merge(dest, src, lambda name: Resolution.rename("keep.txt"))

        assert report.rejected == ["shared.txt"]
        assert names(tree, src) == ["shared.txt"]
        assert tree.find_child(src, "shared.txt").content == "new"
        assert report.moved == ["new.txt", "extra"]

    def test_rename_to_invalid_name_is_rejected(self, tree, engine, folders):
        dest, src = folders

        report = engine.merge(dest, src, lambda name: Resolution.rename(""))

        assert report.rejected == ["shared.txt"]
        assert names(tree, src) == ["shared.txt"]

    def test_invalid_decision_aborts_but_keeps_earlier_moves(self, tree, engine, folders):
        dest, src = folders

        report = engine.merge(dest, src, lambda name: None)

        assert report.aborted
        assert report.moved == ["new.txt"]
        assert names(tree, src) == ["shared.txt", "extra"]
        assert names(tree, dest) == ["shared.txt", "keep.txt", "new.txt"]
        tree.check_integrity()

    def test_item_counts_refreshed(self, tree, engine, folders):
        dest, src = folders

        engine.merge(dest, src, lambda name: Resolution.skip())

        assert dest.item_count == 4
        assert src.item_count == 1
        assert tree.root.item_count == 5

    def test_counts_refreshed_when_decider_raises(self, tree, engine, folders):
        """
        Given: A decider that is interrupted on the first conflict
        When: Merging src into dest
        Then: The interruption propagates and both folders report fresh counts
        """
        dest, src = folders
        decide = MagicMock(side_effect=KeyboardInterrupt)

        with pytest.raises(KeyboardInterrupt):
            engine.merge(dest, src, decide)

        assert names(tree, dest) == ["shared.txt", "keep.txt", "new.txt"]
        assert dest.item_count == 3
        assert src.item_count == 2
        assert tree.root.item_count == 5
        tree.check_integrity()

    def test_merge_empty_source(self, tree, mutator, engine, folders):
        dest, _ = folders
        empty = mutator.create_folder(tree.root, "empty")
        decide = MagicMock()

        report = engine.merge(dest, empty, decide)

        decide.assert_not_called()
        assert report.relocated == 0


class TestMergeChecks:
    """Test argument validation."""

    def test_same_folder_is_invalid(self, engine, folders):
        dest, _ = folders

        with pytest.raises(InvalidArgumentError):
            engine.merge(dest, dest, lambda name: None)

    def test_file_argument_is_invalid(self, tree, engine, folders):
        dest, src = folders

        with pytest.raises(InvalidArgumentError):
            engine.merge(dest, tree.find_child(src, "new.txt"), lambda name: None)

    def test_destination_inside_source_is_structural(self, tree, engine, folders):
        _, src = folders
        extra = tree.find_child(src, "extra")

        with pytest.raises(StructuralError):
            engine.merge(extra, src, lambda name: None)

    def test_merge_into_parent_cannot_overwrite_source(self, tree, mutator, engine):
        """
        Given: /outer/box containing a child named "box"
        When: Merging /outer/box into /outer with decision Overwrite
        Then: The conflicting child is rejected instead of releasing the source
        """
        outer = mutator.create_folder(tree.root, "outer")
        box = mutator.create_folder(outer, "box")
        mutator.create_folder(box, "box")

        report = engine.merge(outer, box, lambda name: Resolution.overwrite())

        assert report.rejected == ["box"]
        assert tree.is_live(box.handle)
        tree.check_integrity()
