"""pytest fixtures for canvas autorename tests."""

import json
import tempfile
from pathlib import Path

import pytest

from canvas_autorename.core.store import MemoryStore


def image_node(node_id, file, x, y, width=None, height=None, **extra):
    """file node dict the way a canvas stores it."""
    node = {"id": node_id, "type": "file", "file": file, "x": x, "y": y}
    if width is not None:
        node["width"] = width
    if height is not None:
        node["height"] = height
    node.update(extra)
    return node


def canvas_text(nodes, edges=None):
    return json.dumps({"nodes": nodes, "edges": edges or []})


@pytest.fixture
def temp_dir():
    """temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def grid_nodes():
    """2x2 grid of pasted images, default size."""
    return [
        image_node("a", "Pasted image 1.png", 0, 0),
        image_node("b", "Pasted image 2.png", 0, 50),
        image_node("c", "Pasted image 3.png", 100, 0),
        image_node("d", "Pasted image 4.png", 100, 50),
    ]


@pytest.fixture
def memory_store(grid_nodes):
    """store holding a canvas at the vault root and its four images."""
    files = {"grid.canvas": canvas_text(grid_nodes)}
    for node in grid_nodes:
        files[node["file"]] = "png-bytes"
    return MemoryStore(files)


@pytest.fixture
def vault(temp_dir, grid_nodes):
    """on-disk vault with boards/grid.canvas and its images under boards/."""
    boards = temp_dir / "boards"
    boards.mkdir()
    nodes = [dict(n, file=f"boards/{n['file']}") for n in grid_nodes]
    (boards / "grid.canvas").write_text(canvas_text(nodes), encoding="utf-8")
    for node in nodes:
        (temp_dir / node["file"]).write_bytes(b"\x89PNG")
    (temp_dir / "other.canvas").write_text('{"nodes":[]}', encoding="utf-8")
    return temp_dir
