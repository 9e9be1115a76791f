"""Path resolution for the tree.

Handles path parsing and navigation (cd, ls semantics) and symlink
following.
"""

import logging
from typing import List, Optional

from treefs.vfs.base import SEPARATOR, FolderNode, Node, SymlinkNode, Tree
from treefs.vfs.errors import NotADirectoryError, NotFoundError, SymlinkLoopError

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 8


class PathResolver:
    """Resolves paths in the tree.

    It handles:
    - Absolute paths: /docs/note.txt
    - Relative paths: ../other, ./files
    - Special entries: . and .. (.. at the root stays at the root)
    - Symlink following, one hop at a time or along a bounded chain

    Resolution never follows symlinks implicitly: a path segment naming a
    symlink yields the symlink node itself. Callers decide when to follow.
    """

    def __init__(self, tree: Tree, max_hops: int = DEFAULT_MAX_HOPS):
        """Initialize path resolver.

        Args:
            tree: Tree to resolve against
            max_hops: Longest symlink chain :meth:`follow` accepts
        """
        self.tree = tree
        self.max_hops = max_hops

    def resolve(self, path: str, current: Node) -> Node:
        """Resolve a path to a node.

        Args:
            path: Path to resolve (absolute or relative)
            current: Folder relative paths start from

        Returns:
            Resolved node

        Raises:
            NotFoundError: Naming the first segment that does not exist
            NotADirectoryError: If a segment descends through a non-folder
        """
        if not path or path == ".":
            return current

        if path.startswith(SEPARATOR):
            node: Node = self.tree.root
            remainder = path[len(SEPARATOR):]
        else:
            node = current
            remainder = path

        for part in self._parse_path(remainder):
            if part == ".":
                continue
            if part == "..":
                parent = self.tree.parent_of(node)
                if parent is None:
                    logger.info("Already at the root folder.")
                else:
                    node = parent
                continue
            if not isinstance(node, FolderNode):
                raise NotADirectoryError(node.name, path)
            child = self.tree.find_child(node, part)
            if child is None:
                raise NotFoundError(part, path)
            node = child

        return node

    def resolve_folder(self, path: str, current: Node) -> FolderNode:
        """Resolve a path that must name a folder.

        Raises:
            NotFoundError: If the path does not exist
            NotADirectoryError: If it exists but is not a folder
        """
        node = self.resolve(path, current)
        if not isinstance(node, FolderNode):
            raise NotADirectoryError(node.name, path)
        return node

    def resolve_symlink(self, node: Node) -> Node:
        """Follow exactly one symlink hop.

        The target path is resolved from the folder holding the link. A
        target that is itself a symlink is returned as is.

        Args:
            node: Node to follow; non-symlinks are returned unchanged

        Returns:
            The link's target node
        """
        if not isinstance(node, SymlinkNode):
            return node
        base = self.tree.parent_of(node) or self.tree.root
        return self.resolve(node.target_path, base)

    def follow(self, node: Node, max_hops: Optional[int] = None) -> Node:
        """Follow a chain of symlinks until a non-symlink is reached.

        Args:
            node: Starting node
            max_hops: Override for the configured hop limit

        Raises:
            SymlinkLoopError: If a link repeats or the chain is too long
        """
        limit = self.max_hops if max_hops is None else max_hops
        visited = set()
        hops = 0
        while isinstance(node, SymlinkNode):
            if node.handle in visited:
                raise SymlinkLoopError(f"Symlink loop at '{self.tree.get_path(node)}'")
            if hops >= limit:
                raise SymlinkLoopError(
                    f"More than {limit} symlink hops from '{self.tree.get_path(node)}'"
                )
            visited.add(node.handle)
            node = self.resolve_symlink(node)
            hops += 1
        return node

    def complete_path(self, partial: str, current: Node) -> List[str]:
        """Get completion candidates for a partial path.

        Used for tab completion.

        Args:
            partial: Partial path to complete
            current: Current working folder

        Returns:
            List of completion candidates
        """
        if SEPARATOR in partial:
            dir_part, file_part = partial.rsplit(SEPARATOR, 1)
            if partial.startswith(SEPARATOR):
                dir_part = SEPARATOR + dir_part.lstrip(SEPARATOR) if dir_part else SEPARATOR
        else:
            dir_part = ""
            file_part = partial

        if dir_part:
            try:
                dir_node = self.resolve_folder(dir_part, current)
            except NotFoundError:
                return []
        else:
            dir_node = current

        candidates = []
        for child in self.tree.children(dir_node):
            if not child.name.startswith(file_part):
                continue
            if not dir_part:
                candidate = child.name
            elif dir_part == SEPARATOR:
                candidate = SEPARATOR + child.name
            else:
                candidate = f"{dir_part}{SEPARATOR}{child.name}"
            if child.is_folder:
                candidate += SEPARATOR
            candidates.append(candidate)

        return candidates

    def _parse_path(self, path: str) -> List[str]:
        """Split a path into its non-empty segments."""
        return [part for part in path.split(SEPARATOR) if part]
