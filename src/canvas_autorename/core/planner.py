"""grid-rename planner.

maps each image node on a canvas to a line/column cell by clustering
node centers along each axis, then derives the filename that encodes
that cell.
"""

from __future__ import annotations

import logging
import math
import numbers
import posixpath
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import SkippableNodeError
from .models import (
    DEFAULT_NODE_SIZE,
    CanvasNode,
    GridCell,
    PositionedImage,
    RenameEntry,
)

logger = logging.getLogger(__name__)

# centers closer than this share a line/column
CLUSTER_TOLERANCE = 1.0


@dataclass(frozen=True)
class RenamePlan:
    """ordered renames for one pass.

    qualifying counts the image nodes seen, including ones that need no
    rename; callers use it to tell "nothing to do" from "nothing there yet".
    """

    entries: tuple[RenameEntry, ...] = ()
    skipped: tuple[SkippableNodeError, ...] = ()
    qualifying: int = 0

    def __bool__(self) -> bool:
        return bool(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


def _number(node: CanvasNode, key: str, default=None) -> float:
    value = node.data.get(key, default)
    # bool is an int subclass, json true/false is not a coordinate
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise SkippableNodeError(node.id, f"'{key}' is not a number: {value!r}")
    if not math.isfinite(value):
        raise SkippableNodeError(node.id, f"'{key}' is not finite: {value!r}")
    return float(value)


def position_of(node: CanvasNode, index: int = 0) -> PositionedImage:
    """reduce an image node to its center point.

    index is the node's position in the document node list.

    width/height fall back to 100 when missing or zero.
    raises SkippableNodeError on missing or non-numeric coordinates.
    """
    if not node.file:
        raise SkippableNodeError(node.id, "empty file path")

    x = _number(node, "x")
    y = _number(node, "y")
    width = _number(node, "width", DEFAULT_NODE_SIZE) or DEFAULT_NODE_SIZE
    height = _number(node, "height", DEFAULT_NODE_SIZE) or DEFAULT_NODE_SIZE

    return PositionedImage(
        id=node.id,
        file=node.file,
        center_x=x + width / 2,
        center_y=y + height / 2,
        index=index,
    )


def cluster_axis(values: Iterable[float], tolerance: float = CLUSTER_TOLERANCE) -> list[float]:
    """sorted distinct values, collapsing runs closer than tolerance.

    each kept value absorbs the following values that sit less than
    tolerance above it.
    """
    distinct: list[float] = []
    for value in sorted(values):
        if not distinct or abs(value - distinct[-1]) >= tolerance:
            distinct.append(value)
    return distinct


def axis_index(value: float, distinct: Sequence[float], tolerance: float = CLUSTER_TOLERANCE) -> int:
    """1-based index of the first distinct value within tolerance."""
    for i, candidate in enumerate(distinct):
        if abs(candidate - value) < tolerance:
            return i + 1
    raise ValueError(f"{value} is not within {tolerance} of any clustered value")


def grid_cells(images: Sequence[PositionedImage]) -> dict[int, GridCell]:
    """line/column for every image, keyed by node list position."""
    xs = cluster_axis(img.center_x for img in images)
    ys = cluster_axis(img.center_y for img in images)
    return {
        img.index: GridCell(
            line=axis_index(img.center_y, ys),
            column=axis_index(img.center_x, xs),
        )
        for img in images
    }


def document_dir_prefix(document_path: str) -> str:
    """'' for a document at the vault root, else 'parent/dir/'."""
    parent = posixpath.dirname(document_path.strip("/"))
    return f"{parent}/" if parent else ""


def file_extension(path: str) -> str:
    """text after the last '.' of the last path segment."""
    name = path.split("/")[-1]
    if not name or "." not in name:
        raise ValueError(f"cannot parse file name from {path!r}")
    return name.rsplit(".", 1)[-1]


def grid_name(prefix: str, cell: GridCell, extension: str) -> str:
    return f"{prefix}L{cell.line}C{cell.column}.{extension}"


def plan_renames(
    nodes: Iterable[CanvasNode],
    prefix: str,
    document_path: str,
) -> RenamePlan:
    """compute the renames that bring every image in line with its cell.

    nodes that are not image file nodes are ignored. malformed image
    nodes are skipped and reported in plan.skipped. entries whose path
    is already correct are left out, so a second run after applying a
    plan comes back empty.
    """
    images: list[PositionedImage] = []
    skipped: list[SkippableNodeError] = []
    qualifying = 0

    for index, node in enumerate(nodes):
        if not node.is_image:
            continue
        qualifying += 1
        try:
            images.append(position_of(node, index))
        except SkippableNodeError as e:
            logger.warning(f"skipping node: {e}")
            skipped.append(e)

    if not images:
        return RenamePlan(skipped=tuple(skipped), qualifying=qualifying)

    cells = grid_cells(images)
    dir_prefix = document_dir_prefix(document_path)

    entries: list[RenameEntry] = []
    for img in images:
        try:
            extension = file_extension(img.file)
        except ValueError as e:
            err = SkippableNodeError(img.id, str(e))
            logger.warning(f"skipping node: {err}")
            skipped.append(err)
            continue

        new_path = f"{dir_prefix}{grid_name(prefix, cells[img.index], extension)}"
        if new_path == img.file:
            continue
        entries.append(
            RenameEntry(node_id=img.id, old_path=img.file, new_path=new_path, index=img.index)
        )

    logger.debug(
        f"planned {len(entries)} rename(s) for {qualifying} image node(s) "
        f"in {document_path}"
    )
    return RenamePlan(entries=tuple(entries), skipped=tuple(skipped), qualifying=qualifying)
