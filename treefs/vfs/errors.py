"""Error kinds raised by the tree engine.

Every error carries a short ``kind`` string so the command boundary
(:class:`treefs.vfs.session.Session`) can report it without knowing the
concrete class.
"""

from typing import Optional


class VFSError(Exception):
    """Base class for all tree engine errors."""

    kind = "Error"


class NotFoundError(VFSError):
    """A path segment or named node does not exist."""

    kind = "NotFound"

    def __init__(self, segment: str, path: Optional[str] = None):
        self.segment = segment
        self.path = path if path is not None else segment
        if self.path != segment:
            message = f"'{segment}' not found while resolving '{self.path}'"
        else:
            message = f"'{segment}' not found"
        super().__init__(message)


class NotADirectoryError(NotFoundError):
    """A path descends through (or names) something that is not a folder."""

    def __init__(self, segment: str, path: Optional[str] = None):
        super().__init__(segment, path)
        self.args = (f"'{segment}' is not a folder",)


class NameConflictError(VFSError):
    """A sibling with the same name already exists."""

    kind = "NameConflict"

    def __init__(self, name: str, folder: str = ""):
        self.name = name
        self.folder = folder
        where = f" in '{folder}'" if folder else ""
        super().__init__(f"'{name}' already exists{where}")


class InvalidArgumentError(VFSError):
    """Wrong kind of node or otherwise unusable argument."""

    kind = "InvalidArgument"


class IOFailureError(VFSError):
    """A snapshot file could not be read or written."""

    kind = "IOFailure"


class CorruptSnapshotError(IOFailureError):
    """A snapshot file was readable but not parseable."""


class StructuralError(VFSError):
    """The operation would break acyclicity, the root, or arena handles."""

    kind = "Structural"


class SymlinkLoopError(StructuralError):
    """Following a chain of symlinks revisited a link or ran out of hops."""
