"""Node model and the arena that owns every node of a tree.

The tree is a set of nodes addressed by integer handles:

    ```
    /                      # root FolderNode, handle 1, no parent, no siblings
    ├── docs/              # FolderNode
    │   ├── note.txt       # FileNode (content, size)
    │   └── link -> note.txt   # SymlinkNode (unresolved target path)
    └── tmp/
    ```

Each node stores its links (parent, first child, previous and next
sibling) as handles. The :class:`Tree` arena maps handles to nodes, so a
released node simply stops being reachable: looking its handle up raises
:class:`~treefs.vfs.errors.StructuralError` instead of returning stale data.

Only :class:`~treefs.vfs.mutator.TreeMutator` changes linkage. The arena
provides read-only navigation, counting, and subtree release.
"""

import time
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from treefs.vfs.errors import InvalidArgumentError, StructuralError

SEPARATOR = "/"
ROOT_NAME = "/"


class NodeType(Enum):
    """Kind of a node. The value is the name used in snapshot files."""
    FILE = "File"
    FOLDER = "Folder"
    SYMLINK = "Symlink"


def validate_name(name: str) -> str:
    """Check that ``name`` can be used for a node.

    Args:
        name: Candidate node name

    Returns:
        The name, unchanged

    Raises:
        InvalidArgumentError: If the name is empty, contains the separator,
            or is one of the special entries ``.`` and ``..``
    """
    if not name:
        raise InvalidArgumentError("Name must not be empty")
    if SEPARATOR in name:
        raise InvalidArgumentError(f"Name '{name}' must not contain '{SEPARATOR}'")
    if name in (".", ".."):
        raise InvalidArgumentError(f"'{name}' is reserved")
    return name


class Node:
    """Base class for all tree entries.

    Attributes:
        name: Name of this node, unique among its siblings
        node_type: File, Folder or Symlink
        size: Byte count (files only, 0 otherwise)
        modified_at: Epoch seconds of creation or last content edit
        handle: Arena handle, None until registered and after release
        parent: Handle of the parent folder (None for root and detached nodes)
        previous: Handle of the previous sibling
        next: Handle of the next sibling
    """

    node_type: NodeType

    def __init__(self, name: str, modified_at: int = 0):
        self.name = name
        self.size = 0
        self.modified_at = modified_at
        self.handle: Optional[int] = None
        self.parent: Optional[int] = None
        self.previous: Optional[int] = None
        self.next: Optional[int] = None

    @property
    def is_folder(self) -> bool:
        return self.node_type is NodeType.FOLDER

    @property
    def is_file(self) -> bool:
        return self.node_type is NodeType.FILE

    @property
    def is_symlink(self) -> bool:
        return self.node_type is NodeType.SYMLINK

    def get_info(self) -> Dict[str, Any]:
        """Get metadata about this node for display.

        Returns:
            Dict with type, name, size and modification time
        """
        return {
            "type": self.node_type.value,
            "name": self.name,
            "size": self.size,
            "date": self.modified_at,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', handle={self.handle})"


class FolderNode(Node):
    """A folder. Owns the head of its children's sibling chain."""

    node_type = NodeType.FOLDER

    def __init__(self, name: str, modified_at: int = 0):
        super().__init__(name, modified_at)
        self.first_child: Optional[int] = None
        self.item_count = 0

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["items"] = self.item_count
        return info


class FileNode(Node):
    """A file with a text payload."""

    node_type = NodeType.FILE

    def __init__(self, name: str, modified_at: int = 0, content: str = ""):
        super().__init__(name, modified_at)
        self.content = content
        self.size = len(content.encode("utf-8"))

    def read_content(self) -> str:
        return self.content


class SymlinkNode(Node):
    """A symbolic link. The target path is resolved only when followed."""

    node_type = NodeType.SYMLINK

    def __init__(self, name: str, target_path: str, modified_at: int = 0):
        super().__init__(name, modified_at)
        self.target_path = target_path

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["target"] = self.target_path
        return info


def make_node(node_type: NodeType, name: str, modified_at: int = 0, **fields: Any) -> Node:
    """Build an unregistered node of the given kind with kind defaults."""
    if node_type is NodeType.FOLDER:
        return FolderNode(name, modified_at)
    if node_type is NodeType.FILE:
        return FileNode(name, modified_at, content=fields.get("content", ""))
    return SymlinkNode(name, fields.get("target_path", ""), modified_at)


class Tree:
    """Arena owning every node of one tree.

    Handles are never reused, so a handle kept after its node was released
    keeps failing :meth:`get` instead of silently pointing at a new node.

    Args:
        clock: Callable returning the current time as epoch seconds
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self.clock = clock or (lambda: int(time.time()))
        self._nodes: Dict[int, Node] = {}
        self._next_handle = 1
        root = FolderNode(ROOT_NAME, self.now())
        self.root_handle = self.register(root)

    @classmethod
    def with_root(cls, root: FolderNode, clock: Optional[Callable[[], int]] = None) -> "Tree":
        """Create a tree whose root is an existing, unregistered folder."""
        tree = cls.__new__(cls)
        tree.clock = clock or (lambda: int(time.time()))
        tree._nodes = {}
        tree._next_handle = 1
        tree.root_handle = tree.register(root)
        return tree

    @property
    def root(self) -> FolderNode:
        return self._nodes[self.root_handle]  # type: ignore[return-value]

    def now(self) -> int:
        return int(self.clock())

    def __len__(self) -> int:
        return len(self._nodes)

    # Arena

    def register(self, node: Node) -> int:
        """Give ``node`` a handle and make it owned by this arena."""
        if node.handle is not None:
            raise StructuralError(f"'{node.name}' is already registered")
        handle = self._next_handle
        self._next_handle += 1
        node.handle = handle
        self._nodes[handle] = node
        return handle

    def is_live(self, handle: Optional[int]) -> bool:
        return handle is not None and handle in self._nodes

    def get(self, handle: Optional[int]) -> Node:
        """Look up a live node.

        Raises:
            StructuralError: If the handle was released or never existed
        """
        if handle is None or handle not in self._nodes:
            raise StructuralError(f"Stale node handle: {handle}")
        return self._nodes[handle]

    def release(self, node: Node) -> int:
        """Free ``node`` and its whole subtree, children before parents.

        The node must already be detached from its parent. Uses an explicit
        stack so deep trees cannot exhaust the call stack.

        Returns:
            Number of nodes released
        """
        if node.handle == self.root_handle:
            raise StructuralError("Cannot release the root folder")
        if node.parent is not None:
            raise StructuralError(f"'{node.name}' is still linked to a parent")

        released = 0
        stack: List[tuple] = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if not expanded and isinstance(current, FolderNode):
                stack.append((current, True))
                for child in list(self.children(current)):
                    stack.append((child, False))
                continue
            self._nodes.pop(current.handle, None)
            current.handle = None
            current.parent = current.previous = current.next = None
            if isinstance(current, FolderNode):
                current.first_child = None
                current.item_count = 0
            released += 1
        return released

    def clear(self) -> int:
        """Release every node, root included. The tree is unusable afterwards."""
        released = len(self._nodes)
        for node in self._nodes.values():
            node.handle = None
            node.parent = node.previous = node.next = None
            if isinstance(node, FolderNode):
                node.first_child = None
        self._nodes.clear()
        return released

    # Navigation

    def parent_of(self, node: Node) -> Optional[FolderNode]:
        if node.parent is None:
            return None
        return self.get(node.parent)  # type: ignore[return-value]

    def children(self, folder: Node) -> Iterator[Node]:
        """Iterate the direct children of a folder in sibling order."""
        if not isinstance(folder, FolderNode):
            return
        handle = folder.first_child
        while handle is not None:
            child = self.get(handle)
            yield child
            handle = child.next

    def child_list(self, folder: Node) -> List[Node]:
        return list(self.children(folder))

    def last_child(self, folder: FolderNode) -> Optional[Node]:
        last = None
        for child in self.children(folder):
            last = child
        return last

    def find_child(self, folder: Node, name: str) -> Optional[Node]:
        """Find a direct child by exact name, whatever its kind."""
        for child in self.children(folder):
            if child.name == name:
                return child
        return None

    def ancestors(self, node: Node) -> Iterator[FolderNode]:
        """Iterate parents from the nearest up to the root."""
        current = self.parent_of(node)
        while current is not None:
            yield current
            current = self.parent_of(current)

    def is_ancestor(self, candidate: Node, node: Node) -> bool:
        """True if ``candidate`` lies on the parent path of ``node``."""
        return any(parent is candidate for parent in self.ancestors(node))

    def get_path(self, node: Node) -> str:
        """Get the absolute path of a node, like /docs/note.txt."""
        if node.handle == self.root_handle:
            return SEPARATOR
        parts = [node.name]
        for parent in self.ancestors(node):
            if parent.handle == self.root_handle:
                break
            parts.append(parent.name)
        return SEPARATOR + SEPARATOR.join(reversed(parts))

    def walk(self, node: Node) -> Iterator[Node]:
        """Iterate a subtree in pre-order, ``node`` first."""
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.child_list(current)))

    # Counting

    def count_files(self, node: Node) -> int:
        """Number of File nodes strictly below ``node``."""
        return sum(1 for n in self.walk(node) if n is not node and n.is_file)

    def count_folders(self, node: Node) -> int:
        """Number of Folder nodes strictly below ``node``."""
        return sum(1 for n in self.walk(node) if n is not node and n.is_folder)

    def refresh_counts(self, folder: Optional[Node]) -> None:
        """Recompute ``item_count`` for ``folder`` and every ancestor."""
        if folder is None:
            return
        chain = [folder] + list(self.ancestors(folder))
        for current in chain:
            if isinstance(current, FolderNode):
                current.item_count = self.count_files(current)

    def refresh_all_counts(self) -> None:
        for node in self.walk(self.root):
            if isinstance(node, FolderNode):
                node.item_count = self.count_files(node)

    # Invariants

    def check_integrity(self) -> None:
        """Verify every linkage invariant of the live tree.

        Raises:
            StructuralError: Describing the first violation found
        """
        root = self.root
        if root.parent is not None or root.previous is not None or root.next is not None:
            raise StructuralError("Root must have no parent and no siblings")

        seen = set()
        for node in self.walk(root):
            if node.handle in seen:
                raise StructuralError(f"'{node.name}' is reachable twice")
            seen.add(node.handle)
            if not isinstance(node, FolderNode):
                continue
            names = set()
            previous = None
            for child in self.children(node):
                if child.parent != node.handle:
                    raise StructuralError(f"'{child.name}' has a wrong parent link")
                if child.previous != (previous.handle if previous else None):
                    raise StructuralError(f"'{child.name}' has a wrong previous link")
                if child.name in names:
                    raise StructuralError(f"Duplicate name '{child.name}' in '{node.name}'")
                names.add(child.name)
                previous = child
        if seen != set(self._nodes):
            raise StructuralError("Arena holds nodes that are not reachable from the root")
