"""Host filesystem adapters.

The tree can mirror folder and file creation, content edits and removals
onto real storage. Mirroring is best effort: adapters raise ``OSError`` on
failure and the mutator logs it without undoing the in-memory change.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class HostAdapter(ABC):
    """Receives virtual paths (like /docs/note.txt) of changed nodes."""

    @abstractmethod
    def make_dir(self, path: str) -> None:
        pass

    @abstractmethod
    def make_file(self, path: str) -> None:
        pass

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        pass

    @abstractmethod
    def remove_dir(self, path: str) -> None:
        """Remove a directory. Fails if the directory is not empty."""
        pass

    @abstractmethod
    def remove_file(self, path: str) -> None:
        pass


class NullHostAdapter(HostAdapter):
    """Adapter that mirrors nothing."""

    def make_dir(self, path: str) -> None:
        pass

    def make_file(self, path: str) -> None:
        pass

    def write_file(self, path: str, content: str) -> None:
        pass

    def remove_dir(self, path: str) -> None:
        pass

    def remove_file(self, path: str) -> None:
        pass


class DiskHostAdapter(HostAdapter):
    """Mirror virtual paths below a real directory.

    Args:
        root_dir: Real directory standing in for the virtual root
    """

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)

    def real_path(self, path: str) -> Path:
        """Map a virtual absolute path to a path under ``root_dir``."""
        parts = [part for part in path.split("/") if part]
        return self.root_dir.joinpath(*parts)

    def make_dir(self, path: str) -> None:
        target = self.real_path(path)
        target.mkdir(mode=0o755)
        logger.debug(f"Created folder {target}")

    def make_file(self, path: str) -> None:
        target = self.real_path(path)
        target.touch()
        logger.debug(f"Created file {target}")

    def write_file(self, path: str, content: str) -> None:
        target = self.real_path(path)
        target.write_text(content, encoding="utf-8")
        logger.debug(f"Wrote {len(content)} characters to {target}")

    def remove_dir(self, path: str) -> None:
        target = self.real_path(path)
        target.rmdir()
        logger.debug(f"Removed folder {target}")

    def remove_file(self, path: str) -> None:
        target = self.real_path(path)
        target.unlink()
        logger.debug(f"Removed file {target}")
