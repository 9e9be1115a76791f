"""
Tests for snapshot save/load.

Tests focus on:
- Round trips of every node kind, including awkward strings
- Compressed snapshots
- Best-effort reading of incomplete blocks
- Failures that must not produce a tree
"""

import gzip
import json

import pytest

from treefs.vfs import codec
from treefs.vfs.base import FileNode, FolderNode, SymlinkNode, Tree
from treefs.vfs.errors import CorruptSnapshotError, IOFailureError, StructuralError
from treefs.vfs.mutator import TreeMutator


@pytest.fixture
def tree():
    """Tree with every node kind.

    Structure:
        /
        ├── docs/
        │   ├── note.txt      ("hi")
        │   ├── quote.txt     (quotes, backslash, newline)
        │   └── link -> note.txt
        ├── empty/
        └── top.txt
    """
    clock = iter(range(1000, 2000))
    tree = Tree(clock=lambda: next(clock))
    mutator = TreeMutator(tree)
    docs = mutator.create_folder(tree.root, "docs")
    mutator.create_file(docs, "note.txt", "hi")
    mutator.create_file(docs, "quote.txt", 'say "hello"\\n\nsecond line')
    mutator.create_symlink(docs, "note.txt", "link")
    mutator.create_folder(tree.root, "empty")
    mutator.create_file(tree.root, "top.txt", "héllo")
    return tree


def snapshot(tree):
    """Comparable description of every node in pre-order."""
    rows = []
    for node in tree.walk(tree.root):
        row = [
            tree.get_path(node),
            node.node_type.value,
            node.name,
            node.size,
            node.modified_at,
        ]
        if isinstance(node, FileNode):
            row.append(node.content)
        if isinstance(node, SymlinkNode):
            row.append(node.target_path)
        rows.append(tuple(row))
    return rows


class TestDumps:
    """Test the written layout."""

    def test_layout(self):
        tree = Tree(clock=lambda: 7)
        TreeMutator(tree).create_file(tree.root, "a.txt", "x")

        assert codec.dumps(tree).splitlines() == [
            "{",
            '  "type": "Folder",',
            '  "name": "/",',
            '  "size": 0,',
            '  "date": 7,',
            '  "children": [',
            "  {",
            '    "type": "File",',
            '    "name": "a.txt",',
            '    "size": 1,',
            '    "date": 7,',
            '    "content": "x",',
            '    "children": [',
            "    ]",
            "  }",
            "  ]",
            "}",
        ]

    def test_output_is_json(self, tree):
        document = json.loads(codec.dumps(tree))

        assert document["type"] == "Folder"
        assert [child["name"] for child in document["children"]] == ["docs", "empty", "top.txt"]
        assert document["children"][0]["children"][2]["symlinkTarget"] == "note.txt"

    def test_dumps_subtree(self, tree):
        docs = tree.find_child(tree.root, "docs")

        document = json.loads(codec.dumps(tree, docs))

        assert document["name"] == "docs"
        assert len(document["children"]) == 3


class TestRoundTrip:
    """Saving then loading reproduces the tree."""

    def test_round_trip_through_text(self, tree):
        loaded = codec.loads(codec.dumps(tree))

        assert snapshot(loaded) == snapshot(tree)
        loaded.check_integrity()

    def test_round_trip_through_file(self, tree, tmp_path):
        """
        Given: A tree with folders, files with content and a symlink
        When: Saving it and loading the file into a fresh tree
        Then: Every node matches field by field, including awkward strings
        """
        path = codec.save(tree, tmp_path / "tree.json")
        loaded = codec.load(path)

        assert snapshot(loaded) == snapshot(tree)
        quote = loaded.find_child(loaded.find_child(loaded.root, "docs"), "quote.txt")
        assert quote.content == 'say "hello"\\n\nsecond line'

    def test_loaded_counts_are_recomputed(self, tree):
        loaded = codec.loads(codec.dumps(tree))

        assert loaded.root.item_count == 3
        assert loaded.find_child(loaded.root, "docs").item_count == 2

    def test_gz_suffix_compresses(self, tree, tmp_path):
        path = codec.save(tree, tmp_path / "tree.json.gz")

        raw = path.read_bytes()
        assert raw[:2] == b"\x1f\x8b"
        assert json.loads(gzip.decompress(raw))["name"] == "/"
        assert snapshot(codec.load(path)) == snapshot(tree)

    def test_forced_compression_is_detected_on_load(self, tree, tmp_path):
        path = codec.save(tree, tmp_path / "plain-name.json", compress=True)

        assert path.read_bytes()[:2] == b"\x1f\x8b"
        assert snapshot(codec.load(path)) == snapshot(tree)

    def test_save_overwrites_and_leaves_no_temp_file(self, tree, tmp_path):
        path = tmp_path / "tree.json"
        path.write_text("old")

        codec.save(tree, path)

        assert json.loads(path.read_text())["type"] == "Folder"
        assert [p.name for p in tmp_path.iterdir()] == ["tree.json"]


class TestBestEffortLoading:
    """Incomplete blocks load with defaults."""

    def test_missing_fields_get_defaults(self):
        text = json.dumps({
            "type": "Folder",
            "children": [
                {"type": "File", "name": "a.txt"},
                {"name": "no-type"},
                {"type": "Symlink", "name": "l"},
                {"type": "File", "date": "oops", "content": "abc"},
            ],
        })

        tree = codec.loads(text)

        a_txt, no_type, link, unnamed = tree.child_list(tree.root)
        assert tree.root.name == "unnamed"
        assert a_txt.content == "" and a_txt.size == 0 and a_txt.modified_at == 0
        assert isinstance(no_type, FolderNode)
        assert link.target_path == ""
        assert unnamed.name == "unnamed"
        assert unnamed.modified_at == 0
        assert unnamed.size == 3

    def test_stored_size_is_kept(self):
        text = json.dumps({
            "type": "Folder", "name": "/",
            "children": [{"type": "File", "name": "a", "size": 10, "content": "x"}],
        })

        tree = codec.loads(text)

        assert tree.find_child(tree.root, "a").size == 10

    def test_unknown_keys_ignored(self):
        text = json.dumps({"type": "Folder", "name": "/", "colour": "red", "children": []})

        assert len(codec.loads(text)) == 1

    def test_malformed_children_skipped(self):
        text = json.dumps({
            "type": "Folder", "name": "/",
            "children": [42, {"type": "Folder", "name": "ok", "children": "nope"}],
        })

        tree = codec.loads(text)

        assert [child.name for child in tree.child_list(tree.root)] == ["ok"]

    def test_duplicate_names_kept_as_loaded(self, caplog):
        text = json.dumps({
            "type": "Folder", "name": "/",
            "children": [
                {"type": "File", "name": "a"},
                {"type": "File", "name": "a"},
            ],
        })

        tree = codec.loads(text)

        assert len(tree.child_list(tree.root)) == 2
        assert "Duplicate name 'a'" in caplog.text

    def test_wide_folder_keeps_sibling_order(self):
        names = [f"f{i:03d}" for i in range(200)]
        text = json.dumps({
            "type": "Folder", "name": "/",
            "children": [{"type": "File", "name": name} for name in names],
        })

        tree = codec.loads(text)

        assert [child.name for child in tree.child_list(tree.root)] == names
        assert tree.root.item_count == 200
        tree.check_integrity()

    def test_deeply_nested_snapshot(self):
        depth = 300
        text = '{"type": "Folder", "name": "d", "children": [' * depth
        text += "]}" * depth

        tree = codec.loads(text)

        assert len(tree) == depth


class TestLoadFailures:
    """Failures raise instead of returning a partial tree."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(IOFailureError) as exc_info:
            codec.load(tmp_path / "missing.json")

        assert exc_info.value.kind == "IOFailure"

    def test_unparseable_text(self):
        with pytest.raises(CorruptSnapshotError):
            codec.loads('{"type": "Folder", "name": ')

    def test_syntax_error_in_one_block_rejects_document(self):
        text = '{"type": "Folder", "name": "/", "children": ['
        text += '{"type": "File", "name": "ok", "size": 1},'
        text += '{"type": "File", "name": "bad", "size": abc}]}'

        with pytest.raises(CorruptSnapshotError):
            codec.loads(text)

    def test_corrupt_error_is_io_failure(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not a snapshot")

        with pytest.raises(IOFailureError):
            codec.load(path)

    def test_document_must_be_a_block(self):
        with pytest.raises(CorruptSnapshotError):
            codec.loads("[1, 2, 3]")

    def test_root_must_be_folder(self):
        with pytest.raises(StructuralError):
            codec.loads(json.dumps({"type": "File", "name": "x"}))

    def test_truncated_gzip(self, tmp_path):
        path = tmp_path / "tree.json.gz"
        path.write_bytes(gzip.compress(b'{"type": "Folder"}')[:12])

        with pytest.raises(CorruptSnapshotError):
            codec.load(path)

    def test_save_to_missing_folder(self, tree, tmp_path):
        with pytest.raises(IOFailureError):
            codec.save(tree, tmp_path / "no" / "such" / "dir.json")
