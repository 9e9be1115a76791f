"""
treefs - An in-memory tree of folders, files and symbolic links.

Main API:
    from treefs import Session, Resolution

    session = Session()
    session.create_folder("/", "docs")
    session.create_file("/docs", "note.txt", "hello")
    session.create_symlink("/", "docs/note.txt", "latest")

    # Commands return a CommandResult instead of raising
    result = session.read("latest")
    print(result.value)

    # Merge two folders, deciding every name conflict
    session.merge("/docs", "/inbox", lambda name: Resolution.skip())

    # Snapshots (".gz" paths are compressed)
    session.save("tree.json.gz")
    session.load("tree.json.gz")
"""

from .vfs import CommandResult, Resolution, Session, Tree

__version__ = "0.1.0"
__all__ = ["Session", "CommandResult", "Resolution", "Tree"]
