"""In-memory tree of folders, files and symlinks.

Architecture:

    ```
    Session                     # current tree + current folder, command surface
    ├── PathResolver            # path string -> node, symlink following
    ├── TreeMutator             # create / move / rename / edit / remove
    │   └── HostAdapter         # optional mirroring onto real storage
    ├── MergeEngine             # folder union with conflict resolution
    ├── sort_children           # reorder by name or date
    └── codec                   # snapshot save / load
    Tree                        # arena owning every node by handle
    ```

Node Types:

    - Node: Base class for all entries
    - FolderNode: Holds children (cd into them)
    - FileNode: Leaf with text content (cat them)
    - SymlinkNode: Stores an unresolved target path

Path Resolution:

    - Absolute paths: /docs/note.txt
    - Relative paths: ../other, ./files
    - Special: ., .. (.. at the root stays at the root)
    - Symlinks are followed only on request, one hop or a bounded chain

Usage Example:

    ```python
    from treefs.vfs import Session

    session = Session()
    session.create_folder("/", "docs")
    session.create_file("/docs", "note.txt", "hi")
    session.cd("docs")

    for node in session.list().value:
        print(node.name, node.get_info())

    print(session.read("note.txt").value)
    ```
"""

from treefs.vfs.base import (
    FileNode,
    FolderNode,
    Node,
    NodeType,
    SymlinkNode,
    Tree,
)
from treefs.vfs.errors import (
    CorruptSnapshotError,
    InvalidArgumentError,
    IOFailureError,
    NameConflictError,
    NotADirectoryError,
    NotFoundError,
    StructuralError,
    SymlinkLoopError,
    VFSError,
)
from treefs.vfs.host import DiskHostAdapter, HostAdapter, NullHostAdapter
from treefs.vfs.merge import ConflictAction, MergeEngine, MergeReport, Resolution
from treefs.vfs.mutator import TreeMutator
from treefs.vfs.resolver import PathResolver
from treefs.vfs.session import CommandResult, Session
from treefs.vfs.sort import SortCriterion, sort_children

__all__ = [
    # Main entry point
    "Session",
    "CommandResult",
    # Core classes
    "Tree",
    "Node",
    "FolderNode",
    "FileNode",
    "SymlinkNode",
    "NodeType",
    # Engines
    "PathResolver",
    "TreeMutator",
    "MergeEngine",
    "MergeReport",
    "Resolution",
    "ConflictAction",
    "SortCriterion",
    "sort_children",
    # Host mirroring
    "HostAdapter",
    "NullHostAdapter",
    "DiskHostAdapter",
    # Errors
    "VFSError",
    "NotFoundError",
    "NotADirectoryError",
    "NameConflictError",
    "InvalidArgumentError",
    "IOFailureError",
    "CorruptSnapshotError",
    "StructuralError",
    "SymlinkLoopError",
]
