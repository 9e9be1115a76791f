"""Snapshot format: save a tree to text and load it back.

A snapshot is a nest of blocks, one per node, in sibling order::

    {
      "type": "Folder",
      "name": "/",
      "size": 0,
      "date": 1700000000,
      "children": [
      {
        "type": "File",
        "name": "note.txt",
        "size": 2,
        "date": 1700000000,
        "content": "hi",
        "children": [
        ]
      }
      ]
    }

Strings are written with JSON escaping, so quotes and newlines inside file
content or symlink targets survive a round trip. Reading is best effort per
block: unknown keys are ignored and missing or mistyped fields fall back to
defaults. The text itself must be valid JSON: a syntax error anywhere, even
inside a single block, rejects the whole document.

Paths ending in ``.gz`` are gzip-compressed on save; gzip data is detected
on load regardless of the file name.
"""

import gzip
import json
import logging
import os
import zlib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from treefs.vfs.base import (
    FileNode,
    FolderNode,
    Node,
    NodeType,
    SymlinkNode,
    Tree,
)
from treefs.vfs.errors import CorruptSnapshotError, IOFailureError, StructuralError
from treefs.vfs.mutator import TreeMutator

logger = logging.getLogger(__name__)

INDENT = "  "
GZIP_MAGIC = b"\x1f\x8b"
DEFAULT_NAME = "unnamed"

PathLike = Union[str, Path]


# Writing

def _header_lines(node: Node, inner: str) -> List[str]:
    fields: List[Tuple[str, str]] = [
        ("type", json.dumps(node.node_type.value)),
        ("name", json.dumps(node.name)),
        ("size", str(node.size)),
        ("date", str(node.modified_at)),
    ]
    if isinstance(node, FileNode):
        fields.append(("content", json.dumps(node.content)))
    elif isinstance(node, SymlinkNode):
        fields.append(("symlinkTarget", json.dumps(node.target_path)))
    return [f'{inner}"{key}": {value},' for key, value in fields]


def dumps(tree: Tree, node: Optional[Node] = None) -> str:
    """Serialize ``node`` (default: the root) and its subtree to text."""
    start = node if node is not None else tree.root
    lines: List[str] = []
    # ("open" | "close", node, depth, trailing comma)
    stack: List[Tuple[str, Node, int, bool]] = [("open", start, 0, False)]

    while stack:
        action, current, depth, comma = stack.pop()
        indent = INDENT * depth
        inner = INDENT * (depth + 1)
        if action == "close":
            lines.append(f"{inner}]")
            lines.append(f"{indent}}}{',' if comma else ''}")
            continue

        lines.append(f"{indent}{{")
        lines.extend(_header_lines(current, inner))
        lines.append(f'{inner}"children": [')
        stack.append(("close", current, depth, comma))
        children = tree.child_list(current)
        for index in range(len(children) - 1, -1, -1):
            is_last = index == len(children) - 1
            stack.append(("open", children[index], depth + 1, not is_last))

    return "\n".join(lines) + "\n"


def save(tree: Tree, path: PathLike, compress: Optional[bool] = None) -> Path:
    """Write the whole tree to ``path``.

    The snapshot is written to a temporary sibling first and renamed into
    place, so an existing snapshot is never left half written.

    Args:
        tree: Tree to save
        path: Destination file
        compress: Force gzip on or off; by default ``.gz`` paths are compressed

    Returns:
        The path written

    Raises:
        IOFailureError: If the file cannot be written
    """
    path = Path(path)
    if compress is None:
        compress = path.suffix == ".gz"
    data = dumps(tree).encode("utf-8")
    if compress:
        data = gzip.compress(data)

    temp_path = path.with_name(path.name + ".tmp")
    try:
        temp_path.write_bytes(data)
        os.replace(temp_path, path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise IOFailureError(f"Could not save to '{path}': {e}") from e

    logger.info(f"Tree saved to '{path}' ({len(tree)} nodes)")
    return path


# Reading

def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _node_from_block(block: Dict[str, Any]) -> Node:
    """Build an unregistered node from one block, filling in defaults."""
    type_name = block.get("type")
    try:
        node_type = NodeType(type_name)
    except ValueError:
        logger.warning(f"Unknown node type {type_name!r}, loading as Folder")
        node_type = NodeType.FOLDER

    name = _as_str(block.get("name")) or DEFAULT_NAME
    date = _as_int(block.get("date"))

    if node_type is NodeType.FILE:
        node: Node = FileNode(name, date, content=_as_str(block.get("content")))
        if "size" in block:
            node.size = _as_int(block.get("size"))
    elif node_type is NodeType.SYMLINK:
        node = SymlinkNode(name, _as_str(block.get("symlinkTarget")), date)
    else:
        node = FolderNode(name, date)
    return node


def _child_blocks(block: Dict[str, Any], node: Node) -> List[Dict[str, Any]]:
    children = block.get("children") or []
    if not isinstance(children, list):
        logger.warning(f"Ignoring malformed children of '{node.name}'")
        return []
    blocks = [child for child in children if isinstance(child, dict)]
    if len(blocks) != len(children):
        logger.warning(f"Skipped {len(children) - len(blocks)} malformed block(s) in '{node.name}'")
    if blocks and not isinstance(node, FolderNode):
        logger.warning(f"'{node.name}' is not a folder; dropping its {len(blocks)} child block(s)")
        return []
    return blocks


def loads(text: str, clock: Optional[Callable[[], int]] = None) -> Tree:
    """Build a new tree from snapshot text.

    Raises:
        CorruptSnapshotError: If the text is not a snapshot document
        StructuralError: If the outermost block is not a folder
    """
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise CorruptSnapshotError(f"Snapshot is not parseable: {e}") from e
    if not isinstance(document, dict):
        raise CorruptSnapshotError("Snapshot must start with a block")

    root = _node_from_block(document)
    if not isinstance(root, FolderNode):
        raise StructuralError(f"Snapshot root must be a Folder, got {root.node_type.value}")

    tree = Tree.with_root(root, clock)
    mutator = TreeMutator(tree)

    stack: List[Tuple[Dict[str, Any], Node]] = [(document, root)]
    while stack:
        block, node = stack.pop()
        pending = []
        seen = set()
        tail: Optional[Node] = None
        for child_block in _child_blocks(block, node):
            child = _node_from_block(child_block)
            if child.name in seen:
                logger.warning(f"Duplicate name '{child.name}' in '{node.name}'")
            seen.add(child.name)
            tail = mutator.attach(node, child, tail=tail)
            pending.append((child_block, child))
        stack.extend(reversed(pending))

    tree.refresh_all_counts()
    logger.debug(f"Loaded {len(tree)} nodes")
    return tree


def load(path: PathLike, clock: Optional[Callable[[], int]] = None) -> Tree:
    """Read a snapshot file into a brand new tree.

    Raises:
        IOFailureError: If the file is missing or unreadable
        CorruptSnapshotError: If its content is not a snapshot
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IOFailureError(f"Could not open '{path}' for loading: {e}") from e

    try:
        if data.startswith(GZIP_MAGIC):
            data = gzip.decompress(data)
        text = data.decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise CorruptSnapshotError(f"Could not decode '{path}': {e}") from e

    tree = loads(text, clock)
    logger.info(f"Tree loaded from '{path}' ({len(tree)} nodes)")
    return tree
