"""Merge the children of one folder into another.

Children of the source folder are moved into the destination one by one.
A name that already exists in the destination is a conflict, settled by a
caller-supplied decider returning a :class:`Resolution`. The merge is not
atomic: when a decision aborts it, children moved earlier stay moved.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from treefs.vfs.base import FolderNode, Node, validate_name
from treefs.vfs.errors import (
    InvalidArgumentError,
    StructuralError,
    VFSError,
)
from treefs.vfs.mutator import TreeMutator

logger = logging.getLogger(__name__)


class ConflictAction(Enum):
    SKIP = "skip"
    RENAME = "rename"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class Resolution:
    """Decision for one conflicting name."""
    action: ConflictAction
    new_name: Optional[str] = None

    @classmethod
    def skip(cls) -> "Resolution":
        return cls(ConflictAction.SKIP)

    @classmethod
    def rename(cls, new_name: str) -> "Resolution":
        return cls(ConflictAction.RENAME, new_name)

    @classmethod
    def overwrite(cls) -> "Resolution":
        return cls(ConflictAction.OVERWRITE)


Decider = Callable[[str], Optional[Resolution]]


@dataclass
class MergeReport:
    """What a merge did, by child name (names as they were in the source)."""
    moved: List[str] = field(default_factory=list)
    renamed: List[str] = field(default_factory=list)
    overwritten: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    released: int = 0
    aborted: bool = False

    @property
    def relocated(self) -> int:
        return len(self.moved) + len(self.renamed) + len(self.overwritten)

    def summary(self) -> str:
        parts = [f"{self.relocated} moved"]
        if self.renamed:
            parts.append(f"{len(self.renamed)} renamed")
        if self.overwritten:
            parts.append(f"{len(self.overwritten)} overwritten")
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped")
        if self.rejected:
            parts.append(f"{len(self.rejected)} rejected")
        if self.aborted:
            parts.append("aborted")
        return ", ".join(parts)


class MergeEngine:
    """Union of two folders' children with conflict resolution."""

    def __init__(self, mutator: TreeMutator):
        self.mutator = mutator
        self.tree = mutator.tree

    def merge(self, destination: Node, source: Node, decide: Decider) -> MergeReport:
        """Move every child of ``source`` into ``destination``.

        Args:
            destination: Folder receiving the children
            source: Folder giving them up (left in place, possibly empty)
            decide: Called with a conflicting name, returns a Resolution

        Returns:
            MergeReport describing each child's fate

        Raises:
            InvalidArgumentError: If either node is not a folder, or they are the same
            StructuralError: If destination lies inside source
        """
        if not isinstance(destination, FolderNode) or not isinstance(source, FolderNode):
            raise InvalidArgumentError("Both merge arguments must be folders")
        if destination is source:
            raise InvalidArgumentError(f"Cannot merge '{source.name}' into itself")
        if self.tree.is_ancestor(source, destination):
            raise StructuralError(
                f"Cannot merge '{source.name}' into its own descendant '{destination.name}'"
            )

        report = MergeReport()
        try:
            for child in self.mutator.children_snapshot(source):
                existing = self.tree.find_child(destination, child.name)
                if existing is None:
                    self._relocate(child, destination)
                    report.moved.append(child.name)
                    continue

                resolution = decide(child.name)
                if not isinstance(resolution, Resolution):
                    logger.warning(f"Invalid decision for '{child.name}'; merge aborted")
                    report.aborted = True
                    break

                if resolution.action is ConflictAction.SKIP:
                    logger.info(f"Skipping {child.name}")
                    report.skipped.append(child.name)
                elif resolution.action is ConflictAction.RENAME:
                    self._rename_into(child, destination, resolution.new_name, report)
                elif existing is source or self.tree.is_ancestor(existing, source):
                    logger.warning(f"Cannot overwrite '{child.name}': it contains the source folder")
                    report.rejected.append(child.name)
                else:
                    logger.info(f"Overwriting {child.name}")
                    self.mutator.detach(existing)
                    report.released += self.tree.release(existing)
                    self._relocate(child, destination)
                    report.overwritten.append(child.name)
        finally:
            self.tree.refresh_counts(source)
            self.tree.refresh_counts(destination)
        logger.info(f"Merged '{source.name}' into '{destination.name}': {report.summary()}")
        return report

    def _relocate(self, child: Node, destination: FolderNode) -> None:
        self.mutator.detach(child)
        self.mutator.attach(destination, child)

    def _rename_into(
        self,
        child: Node,
        destination: FolderNode,
        new_name: Optional[str],
        report: MergeReport,
    ) -> None:
        """Rename a conflicting child and move it, or leave it in the source."""
        original = child.name
        try:
            validate_name(new_name or "")
            self.mutator.ensure_unique(destination, new_name)
            source = self.tree.parent_of(child)
            if source is not None:
                self.mutator.ensure_unique(source, new_name, exclude=child)
        except VFSError as e:
            logger.warning(f"Cannot rename '{original}': {e}")
            report.rejected.append(original)
            return

        child.name = new_name
        self._relocate(child, destination)
        logger.info(f"Renamed {original} to {new_name}")
        report.renamed.append(original)
