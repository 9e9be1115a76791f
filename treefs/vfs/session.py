"""Session - entry point for working with one tree.

The session owns the current tree and the current folder and exposes the
command surface used by the shell. Every command returns a
:class:`CommandResult`; engine errors are reported through it instead of
being raised, so a failed command never ends the session.
"""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from treefs.vfs import codec
from treefs.vfs.base import SEPARATOR, FileNode, FolderNode, Node, Tree
from treefs.vfs.errors import InvalidArgumentError, VFSError
from treefs.vfs.host import HostAdapter, NullHostAdapter
from treefs.vfs.merge import Decider, MergeEngine, MergeReport
from treefs.vfs.mutator import Confirm, TreeMutator
from treefs.vfs.resolver import DEFAULT_MAX_HOPS, PathResolver
from treefs.vfs.sort import SortCriterion, sort_children

logger = logging.getLogger(__name__)

Target = Union[str, Node]


@dataclass
class CommandResult:
    """Outcome of one command.

    Attributes:
        ok: Whether the command succeeded
        value: Command output (node, list of nodes, count, report, ...)
        message: Human-readable status line
        error: Error kind name when ``ok`` is False
    """
    ok: bool
    value: Any = None
    message: str = ""
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None, message: str = "") -> "CommandResult":
        return cls(True, value, message)

    @classmethod
    def failure(cls, error: VFSError) -> "CommandResult":
        return cls(False, None, str(error), error.kind)


def command(func: Callable) -> Callable:
    """Turn engine errors raised by a session method into a failed result."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> CommandResult:
        try:
            return func(*args, **kwargs)
        except VFSError as e:
            logger.debug(f"{func.__name__} failed: {e.kind}: {e}")
            return CommandResult.failure(e)
    return wrapper


def split_path(path: str) -> Tuple[str, str]:
    """Split 'a/b/c' into ('a/b', 'c'); a bare name has parent '.'."""
    stripped = path.rstrip(SEPARATOR) if path != SEPARATOR else path
    if SEPARATOR not in stripped:
        return ".", stripped
    parent, name = stripped.rsplit(SEPARATOR, 1)
    if not parent and stripped.startswith(SEPARATOR):
        parent = SEPARATOR
    return parent, name


class Session:
    """A tree plus the current folder, with every user-facing operation.

    Usage:
        >>> session = Session()
        >>> session.create_folder(".", "docs")
        >>> session.create_file("docs", "note.txt", "hi")
        >>> session.create_symlink("docs", "note.txt", "link")
        >>> session.read("docs/link").value
        'hi'
        >>> session.save("snapshot.json")

    Args:
        tree: Tree to start with (a new empty tree by default)
        host: Adapter mirroring creations and removals onto real storage
        max_symlink_hops: Longest symlink chain :meth:`follow` accepts
        clock: Epoch-seconds clock used for new trees
    """

    def __init__(
        self,
        tree: Optional[Tree] = None,
        host: Optional[HostAdapter] = None,
        max_symlink_hops: int = DEFAULT_MAX_HOPS,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.host = host or NullHostAdapter()
        self.max_symlink_hops = max_symlink_hops
        self.clock = clock
        self._bind(tree or Tree(clock))

    def _bind(self, tree: Tree) -> None:
        self.tree = tree
        self.resolver = PathResolver(tree, self.max_symlink_hops)
        self.mutator = TreeMutator(tree, self.host, self.resolver)
        self.merger = MergeEngine(self.mutator)
        self.current: FolderNode = tree.root

    @property
    def root(self) -> FolderNode:
        return self.tree.root

    def _node(self, target: Target) -> Node:
        if isinstance(target, Node):
            self.tree.get(target.handle)
            return target
        return self.resolver.resolve(target, self.current)

    def _folder(self, target: Target) -> FolderNode:
        node = self._node(target)
        if not isinstance(node, FolderNode):
            raise InvalidArgumentError(f"'{node.name}' is not a folder")
        return node

    def path_of(self, node: Node) -> str:
        return self.tree.get_path(node)

    # Navigation

    def pwd(self) -> str:
        return self.tree.get_path(self.current)

    @command
    def cd(self, path: str = SEPARATOR) -> CommandResult:
        folder = self.resolver.resolve_folder(path, self.current)
        self.current = folder
        return CommandResult.success(folder, self.pwd())

    @command
    def cdup(self) -> CommandResult:
        parent = self.tree.parent_of(self.current)
        if parent is None:
            return CommandResult.success(self.current, "Already at the root folder.")
        self.current = parent
        return CommandResult.success(parent, self.pwd())

    @command
    def resolve(self, path: str) -> CommandResult:
        node = self.resolver.resolve(path, self.current)
        return CommandResult.success(node, self.tree.get_path(node))

    @command
    def resolve_symlink(self, target: Target) -> CommandResult:
        """Follow one symlink hop from the link's own folder."""
        node = self._node(target)
        resolved = self.resolver.resolve_symlink(node)
        return CommandResult.success(resolved, self.tree.get_path(resolved))

    @command
    def follow(self, target: Target) -> CommandResult:
        """Follow a symlink chain up to the configured hop limit."""
        node = self.resolver.follow(self._node(target))
        return CommandResult.success(node, self.tree.get_path(node))

    def complete(self, partial: str) -> List[str]:
        return self.resolver.complete_path(partial, self.current)

    # Listing

    @command
    def list(self, target: Target = ".") -> CommandResult:
        folder = self._folder(target)
        children = self.tree.child_list(folder)
        return CommandResult.success(children, f"{len(children)} item(s)")

    @command
    def tree_lines(self, target: Target = ".") -> CommandResult:
        """Recursive listing as (depth, node) pairs in display order."""
        folder = self._folder(target)
        lines: List[Tuple[int, Node]] = []
        stack = [(0, child) for child in reversed(self.tree.child_list(folder))]
        while stack:
            depth, node = stack.pop()
            lines.append((depth, node))
            stack.extend((depth + 1, child) for child in reversed(self.tree.child_list(node)))
        return CommandResult.success(lines)

    @command
    def read(self, target: Target) -> CommandResult:
        """Read a file's content, following at most one symlink hop."""
        node = self._node(target)
        followed = ""
        if node.is_symlink:
            followed = f"Following symlink '{node.name}' -> '{node.target_path}'"
            node = self.resolver.resolve_symlink(node)
        if not isinstance(node, FileNode):
            raise InvalidArgumentError(f"'{node.name}' is not a file")
        return CommandResult.success(node.read_content(), followed)

    @command
    def count_files(self, target: Target = ".") -> CommandResult:
        count = self.tree.count_files(self._node(target))
        return CommandResult.success(count, f"Files: {count}")

    @command
    def count_folders(self, target: Target = ".") -> CommandResult:
        count = self.tree.count_folders(self._node(target))
        return CommandResult.success(count, f"Folders: {count}")

    @command
    def stats(self, target: Target = SEPARATOR) -> CommandResult:
        start = self._node(target)
        stats: Dict[str, int] = {"files": 0, "folders": 0, "symlinks": 0, "bytes": 0}
        for node in self.tree.walk(start):
            if node is start:
                continue
            if node.is_file:
                stats["files"] += 1
                stats["bytes"] += node.size
            elif node.is_folder:
                stats["folders"] += 1
            else:
                stats["symlinks"] += 1
        return CommandResult.success(stats)

    # Mutation

    @command
    def create_folder(self, parent: Target, name: str) -> CommandResult:
        folder = self.mutator.create_folder(self._node(parent), name)
        return CommandResult.success(folder, f"Folder '{name}' added.")

    @command
    def create_file(self, parent: Target, name: str, content: str = "") -> CommandResult:
        file_node = self.mutator.create_file(self._node(parent), name, content)
        return CommandResult.success(file_node, f"File '{name}' added.")

    @command
    def create_symlink(self, parent: Target, target_path: str, name: str) -> CommandResult:
        link = self.mutator.create_symlink(self._node(parent), target_path, name)
        return CommandResult.success(link, f"Symbolic link '{name}' -> '{target_path}' created.")

    @command
    def rename(self, target: Target, new_name: str) -> CommandResult:
        node = self.mutator.rename(self._node(target), new_name)
        return CommandResult.success(node, f"Renamed to '{new_name}'")

    @command
    def remove(self, target: Target, confirm: Confirm) -> CommandResult:
        node = self._node(target)
        name = node.name
        if node is self.current or self.tree.is_ancestor(node, self.current):
            moving_to = self.tree.parent_of(node)
        else:
            moving_to = None
        released = self.mutator.remove(node, confirm)
        if not released:
            return CommandResult.success(0, f"Kept '{name}'.")
        if moving_to is not None:
            self.current = moving_to
        return CommandResult.success(released, f"Removed '{name}' ({released} node(s)).")

    @command
    def move(self, target: Target, destination: Target) -> CommandResult:
        node = self.mutator.move(self._node(target), self._node(destination))
        return CommandResult.success(node, f"Moved '{node.name}' to {self.tree.get_path(node)}")

    @command
    def edit(self, target: Target, content: str) -> CommandResult:
        node = self.mutator.edit(self._node(target), content)
        return CommandResult.success(node, f"Wrote {node.size} byte(s) to '{node.name}'")

    @command
    def merge(self, destination: Target, source: Target, decide: Decider) -> CommandResult:
        destination = self._node(destination)
        try:
            report: MergeReport = self.merger.merge(destination, self._node(source), decide)
        finally:
            # an overwrite may have released the current folder
            if not self.tree.is_live(self.current.handle):
                self.current = destination
        return CommandResult.success(report, f"Directories merged: {report.summary()}")

    @command
    def sort(self, target: Target, criterion: Union[str, SortCriterion]) -> CommandResult:
        if not isinstance(criterion, SortCriterion):
            criterion = SortCriterion.parse(criterion)
        count = sort_children(self.mutator, self._node(target), criterion)
        return CommandResult.success(count, f"Folder sorted by {criterion.value}.")

    # Persistence

    @command
    def save(self, path: Union[str, Path], compress: Optional[bool] = None) -> CommandResult:
        written = codec.save(self.tree, path, compress)
        return CommandResult.success(written, f"Directory structure saved to '{written}'.")

    @command
    def load(self, path: Union[str, Path]) -> CommandResult:
        """Replace the whole tree with a snapshot.

        The old tree is released only after the new one parsed completely;
        on failure the session keeps the old tree and current folder.
        """
        new_tree = codec.load(path, self.clock)
        old_tree = self.tree
        self._bind(new_tree)
        old_tree.clear()
        return CommandResult.success(new_tree, f"Directory structure loaded from '{path}'.")
