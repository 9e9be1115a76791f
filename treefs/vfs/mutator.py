"""Structural operations on the tree.

The mutator is the only place that rewrites parent and sibling links.
Every public operation validates all of its preconditions before touching
a link, so a failing call leaves the tree exactly as it was.
"""

import logging
from typing import Callable, Iterable, List, Optional

from treefs.vfs.base import (
    FileNode,
    FolderNode,
    Node,
    SymlinkNode,
    Tree,
    validate_name,
)
from treefs.vfs.errors import (
    InvalidArgumentError,
    NameConflictError,
    StructuralError,
)
from treefs.vfs.host import HostAdapter, NullHostAdapter
from treefs.vfs.resolver import PathResolver

logger = logging.getLogger(__name__)

Confirm = Callable[[Node], bool]


class TreeMutator:
    """Create, move, rename, edit and remove nodes of one tree.

    Args:
        tree: Arena to operate on
        host: Adapter mirroring changes onto real storage
        resolver: Resolver used to validate symlink targets
    """

    def __init__(
        self,
        tree: Tree,
        host: Optional[HostAdapter] = None,
        resolver: Optional[PathResolver] = None,
    ):
        self.tree = tree
        self.host = host or NullHostAdapter()
        self.resolver = resolver or PathResolver(tree)

    # Link primitives

    def attach(self, parent: FolderNode, node: Node, tail: Optional[Node] = None) -> Node:
        """Append ``node`` at the tail of ``parent``'s sibling chain.

        Unregistered nodes are registered in the arena first. The caller is
        responsible for name uniqueness. Pass ``tail`` when the current last
        child is already known, to skip walking the chain.
        """
        if not isinstance(parent, FolderNode):
            raise InvalidArgumentError(f"'{parent.name}' is not a folder")
        if not self.tree.is_live(parent.handle):
            raise StructuralError(f"'{parent.name}' is no longer part of the tree")
        if node.parent is not None:
            raise StructuralError(f"'{node.name}' is still linked; detach it first")
        if node.handle is None:
            self.tree.register(node)
        elif node.handle == self.tree.root_handle:
            raise StructuralError("The root folder cannot be attached anywhere")

        last = tail if tail is not None else self.tree.last_child(parent)
        node.parent = parent.handle
        node.next = None
        if last is None:
            node.previous = None
            parent.first_child = node.handle
        else:
            node.previous = last.handle
            last.next = node.handle
        return node

    def detach(self, node: Node) -> Node:
        """Unlink ``node`` from its parent and siblings without freeing it."""
        if node.handle == self.tree.root_handle:
            raise StructuralError("The root folder cannot be detached")
        parent = self.tree.parent_of(node)
        if parent is None:
            return node

        if node.previous is None:
            parent.first_child = node.next
        else:
            self.tree.get(node.previous).next = node.next
        if node.next is not None:
            self.tree.get(node.next).previous = node.previous

        node.parent = node.previous = node.next = None
        return node

    def relink(self, folder: FolderNode, ordered: Iterable[Node]) -> None:
        """Rebuild ``folder``'s sibling chain in the given order.

        ``ordered`` must hold exactly the folder's current children.
        """
        ordered = list(ordered)
        current = {child.handle for child in self.tree.children(folder)}
        if {node.handle for node in ordered} != current or len(ordered) != len(current):
            raise StructuralError(f"Reordering of '{folder.name}' must keep the same children")

        previous: Optional[Node] = None
        for node in ordered:
            node.previous = previous.handle if previous else None
            node.next = None
            if previous is None:
                folder.first_child = node.handle
            else:
                previous.next = node.handle
            previous = node
        if previous is None:
            folder.first_child = None

    # Checks

    def ensure_unique(self, folder: FolderNode, name: str, exclude: Optional[Node] = None) -> None:
        """Raise NameConflictError if ``folder`` already has a child ``name``."""
        existing = self.tree.find_child(folder, name)
        if existing is not None and existing is not exclude:
            raise NameConflictError(name, self.tree.get_path(folder))

    def _require_folder(self, node: Node) -> FolderNode:
        if not isinstance(node, FolderNode):
            raise InvalidArgumentError(f"'{node.name}' is not a folder")
        return node

    def _mirror(self, operation: str, *args) -> None:
        try:
            getattr(self.host, operation)(*args)
        except OSError as e:
            logger.warning(f"Host mirror failed ({operation} {args[0]}): {e}")

    # Operations

    def create_folder(self, parent: Node, name: str) -> FolderNode:
        """Create an empty folder at the end of ``parent``'s children.

        Raises:
            InvalidArgumentError: If parent is not a folder or the name is invalid
            NameConflictError: If a sibling already uses the name
        """
        parent = self._require_folder(parent)
        validate_name(name)
        self.ensure_unique(parent, name)

        folder = FolderNode(name, self.tree.now())
        self.attach(parent, folder)
        self.tree.refresh_counts(parent)
        logger.debug(f"Folder '{name}' added under {self.tree.get_path(parent)}")

        self._mirror("make_dir", self.tree.get_path(folder))
        return folder

    def create_file(self, parent: Node, name: str, content: str = "") -> FileNode:
        """Create a file at the end of ``parent``'s children."""
        parent = self._require_folder(parent)
        validate_name(name)
        self.ensure_unique(parent, name)

        file_node = FileNode(name, self.tree.now(), content=content)
        self.attach(parent, file_node)
        self.tree.refresh_counts(parent)
        logger.debug(f"File '{name}' added under {self.tree.get_path(parent)}")

        path = self.tree.get_path(file_node)
        self._mirror("make_file", path)
        if content:
            self._mirror("write_file", path, content)
        return file_node

    def create_symlink(self, parent: Node, target_path: str, name: str) -> SymlinkNode:
        """Create a symlink named ``name`` pointing at ``target_path``.

        The target must exist when the link is created (resolved from
        ``parent``); it is stored unresolved and may dangle later.

        Raises:
            NotFoundError: If the target does not resolve
        """
        parent = self._require_folder(parent)
        validate_name(name)
        if not target_path:
            raise InvalidArgumentError("Symlink target must not be empty")
        self.resolver.resolve(target_path, parent)
        self.ensure_unique(parent, name)

        link = SymlinkNode(name, target_path, self.tree.now())
        self.attach(parent, link)
        logger.debug(f"Symlink '{name}' -> '{target_path}' created")
        return link

    def remove(self, node: Node, confirm: Confirm) -> int:
        """Remove ``node`` and its subtree after confirmation.

        Args:
            node: Node to remove
            confirm: Called with the node; removal proceeds only on True

        Returns:
            Number of nodes released, 0 if the confirmation was declined

        Raises:
            StructuralError: When asked to remove the root
        """
        if node.handle == self.tree.root_handle:
            raise StructuralError("The root folder cannot be removed")
        if not confirm(node):
            logger.info(f"Kept '{node.name}'")
            return 0

        parent = self.tree.parent_of(node)
        doomed = [(n, self.tree.get_path(n)) for n in self.tree.walk(node)]

        self.detach(node)
        released = self.tree.release(node)
        self.tree.refresh_counts(parent)
        logger.debug(f"Released {released} node(s) under '{node.name}'")

        for gone, path in reversed(doomed):
            if gone.is_folder:
                self._mirror("remove_dir", path)
            elif gone.is_file:
                self._mirror("remove_file", path)
        return released

    def move(self, node: Node, destination: Node) -> Node:
        """Move ``node`` to the end of ``destination``'s children.

        Raises:
            InvalidArgumentError: If destination is the node itself or not a folder
            StructuralError: If destination lies inside the moving node, or
                the node is the root
            NameConflictError: If destination already holds the name
        """
        if destination is node:
            raise InvalidArgumentError(f"Cannot move '{node.name}' into itself")
        destination = self._require_folder(destination)
        if node.handle == self.tree.root_handle:
            raise StructuralError("The root folder cannot be moved")
        if self.tree.is_ancestor(node, destination):
            raise StructuralError(
                f"Cannot move '{node.name}' into its own descendant '{destination.name}'"
            )
        source_parent = self.tree.parent_of(node)
        self.ensure_unique(destination, node.name, exclude=node)

        self.detach(node)
        self.attach(destination, node)
        self.tree.refresh_counts(source_parent)
        self.tree.refresh_counts(destination)
        return node

    def rename(self, node: Node, new_name: str) -> Node:
        """Rename ``node``; siblings must not already use ``new_name``."""
        validate_name(new_name)
        if node.handle == self.tree.root_handle:
            raise StructuralError("The root folder cannot be renamed")
        parent = self.tree.parent_of(node)
        if parent is not None:
            self.ensure_unique(parent, new_name, exclude=node)
        node.name = new_name
        return node

    def edit(self, node: Node, content: str) -> FileNode:
        """Replace a file's content, size and modification time."""
        if not isinstance(node, FileNode):
            raise InvalidArgumentError(f"'{node.name}' is not a file")
        node.content = content
        node.size = len(content.encode("utf-8"))
        node.modified_at = self.tree.now()
        self._mirror("write_file", self.tree.get_path(node), content)
        return node

    def children_snapshot(self, folder: FolderNode) -> List[Node]:
        """Copy of ``folder``'s children, safe to iterate while relinking."""
        return self.tree.child_list(folder)
