"""Reorder a folder's children by name or modification time."""

import logging
from enum import Enum
from typing import Optional

from treefs.vfs.base import FolderNode, Node
from treefs.vfs.errors import InvalidArgumentError
from treefs.vfs.mutator import TreeMutator

logger = logging.getLogger(__name__)


class SortCriterion(Enum):
    NAME = "name"
    DATE = "date"

    @classmethod
    def parse(cls, value: str) -> "SortCriterion":
        """Parse 'name' or 'date'.

        Raises:
            InvalidArgumentError: For any other value
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidArgumentError(
                f"Sort criterion must be 'name' or 'date', got '{value}'"
            ) from None


def sort_children(mutator: TreeMutator, folder: Optional[Node], criterion: SortCriterion) -> int:
    """Sort the direct children of ``folder`` in place.

    Names compare case-sensitively; dates ascend. Nothing happens for a
    missing or empty folder.

    Returns:
        Number of children reordered
    """
    if folder is None:
        return 0
    if not isinstance(folder, FolderNode):
        raise InvalidArgumentError(f"'{folder.name}' is not a folder")

    children = mutator.children_snapshot(folder)
    if not children:
        return 0

    if criterion is SortCriterion.NAME:
        children.sort(key=lambda node: node.name)
    else:
        children.sort(key=lambda node: node.modified_at)

    mutator.relink(folder, children)
    logger.info(f"Folder '{folder.name}' sorted by {criterion.value}")
    return len(children)
