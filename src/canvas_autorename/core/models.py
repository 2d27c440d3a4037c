"""core data model for canvas autorename.

a canvas document is a json object with a list of positioned nodes.
we only ever touch the `file` field of file nodes; everything else
round-trips untouched.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ParseError


IMAGE_FILE_RE = re.compile(r"\.(png|jpg|jpeg|gif)$", re.IGNORECASE)
DEFAULT_NODE_SIZE = 100


@dataclass(frozen=True)
class CanvasNode:
    """single node in a canvas document.

    wraps the raw json object so unknown fields survive a round trip.
    """

    data: dict[str, Any]

    @property
    def id(self) -> str:
        return str(self.data.get("id", ""))

    @property
    def type(self) -> Optional[str]:
        return self.data.get("type")

    @property
    def file(self) -> Optional[str]:
        return self.data.get("file")

    @property
    def is_image(self) -> bool:
        """file node pointing at a png/jpg/jpeg/gif."""
        if self.type != "file":
            return False
        if not isinstance(self.file, str) or not self.file:
            return False
        return IMAGE_FILE_RE.search(self.file) is not None

    def with_file(self, path: str) -> CanvasNode:
        """copy of this node pointing at a different file."""
        data = copy.deepcopy(self.data)
        data["file"] = path
        return CanvasNode(data)

    def to_dict(self) -> dict[str, Any]:
        """serialize to dict for json."""
        return copy.deepcopy(self.data)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CanvasNode:
        """deserialize from dict."""
        return cls(copy.deepcopy(d))



def _reject_constant(name: str):
    # python accepts NaN/Infinity, json does not
    raise json.JSONDecodeError(f"non-standard constant {name}", name, 0)


@dataclass(frozen=True)
class CanvasDocument:
    """the full canvas: nodes plus whatever else the file carries."""

    nodes: tuple[CanvasNode, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)  # edges and unknown keys

    def with_files(self, files: dict[int, str]) -> CanvasDocument:
        """new snapshot with the nodes at the given positions pointing at new files.

        nodes are matched by position in the node list, not by id; canvas
        ids are not guaranteed unique or present. the current document is
        left as is.
        """
        nodes = tuple(
            node.with_file(files[i]) if i in files else node
            for i, node in enumerate(self.nodes)
        )
        return CanvasDocument(nodes=nodes, extra=copy.deepcopy(self.extra))

    def to_dict(self) -> dict[str, Any]:
        """serialize to dict for json, keeping the original key order."""
        d: dict[str, Any] = {}
        if "nodes" not in self.extra:
            d["nodes"] = [n.to_dict() for n in self.nodes]
        for key, value in self.extra.items():
            if key == "nodes":
                d["nodes"] = [n.to_dict() for n in self.nodes]
            else:
                d[key] = copy.deepcopy(value)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CanvasDocument:
        """deserialize from dict.

        raises ParseError if the nodes entry is not a list of objects.
        """
        raw_nodes = d.get("nodes", [])
        if raw_nodes is None:
            raw_nodes = []
        if not isinstance(raw_nodes, list):
            raise ParseError("'nodes' must be a list")

        nodes = []
        for raw in raw_nodes:
            if not isinstance(raw, dict):
                raise ParseError(f"node entry is not an object: {raw!r}")
            nodes.append(CanvasNode.from_dict(raw))

        # keep a placeholder for nodes so to_dict() can restore key order
        extra = {k: (None if k == "nodes" else copy.deepcopy(v)) for k, v in d.items()}
        return cls(nodes=tuple(nodes), extra=extra)

    @classmethod
    def parse(cls, text: str) -> CanvasDocument:
        """parse canvas json text.

        raises ParseError on invalid json or a non-object top level.
        """
        try:
            data = json.loads(text, parse_constant=_reject_constant) if text.strip() else {}
        except json.JSONDecodeError as e:
            raise ParseError(f"invalid canvas json: {e}") from e
        if not isinstance(data, dict):
            raise ParseError("canvas json must be an object")
        return cls.from_dict(data)

    def dumps(self) -> str:
        """serialize to compact json text."""
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class PositionedImage:
    """image node reduced to its center point."""

    id: str
    file: str
    center_x: float
    center_y: float
    index: int = 0  # position in the document node list


@dataclass(frozen=True)
class GridCell:
    """1-based line (row) / column position."""

    line: int
    column: int


@dataclass(frozen=True)
class RenameEntry:
    """one planned rename."""

    node_id: str
    old_path: str
    new_path: str
    index: int = 0  # position in the document node list

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "node_id": self.node_id,
            "old_path": self.old_path,
            "new_path": self.new_path,
        }
