"""tests for the grid-rename planner."""

import pytest

from canvas_autorename.core.models import CanvasNode, GridCell
from canvas_autorename.core.planner import (
    axis_index,
    cluster_axis,
    document_dir_prefix,
    file_extension,
    grid_cells,
    plan_renames,
    position_of,
)

from conftest import image_node


def nodes_of(*dicts):
    return [CanvasNode(d) for d in dicts]


def new_paths(plan):
    return {e.node_id: e.new_path for e in plan.entries}


class TestClustering:
    """tests for cluster_axis / axis_index."""

    def test_sorted_distinct(self):
        assert cluster_axis([300, 50, 150, 50]) == [50, 150, 300]

    def test_just_under_tolerance_clusters(self):
        """centers 0.999 apart collapse into one."""
        assert cluster_axis([0, 0.999]) == [0]

    def test_tolerance_apart_does_not_cluster(self):
        """centers exactly 1.0 apart stay separate."""
        assert cluster_axis([0, 1.0]) == [0, 1.0]

    def test_empty(self):
        assert cluster_axis([]) == []

    def test_axis_index_is_one_based(self):
        distinct = [50, 150, 300]
        assert axis_index(50, distinct) == 1
        assert axis_index(150.5, distinct) == 2
        assert axis_index(300, distinct) == 3

    def test_axis_index_no_match(self):
        with pytest.raises(ValueError):
            axis_index(1000, [50, 150])

    def test_same_center_x_same_column(self):
        """every node whose center-x is within tolerance shares a column."""
        nodes = nodes_of(
            image_node("a", "a.png", 0, 0),
            image_node("b", "b.png", 0.5, 200),
            image_node("c", "c.png", 0.9, 400),
            image_node("d", "d.png", 300, 0),
        )
        cells = grid_cells([position_of(n, i) for i, n in enumerate(nodes)])
        assert {cells[i].column for i in range(3)} == {1}
        assert cells[3].column == 2
        assert [cells[i].line for i in range(3)] == [1, 2, 3]


class TestPositions:
    """tests for center computation."""

    def test_default_size(self):
        """missing width/height count as 100."""
        pos = position_of(CanvasNode(image_node("a", "a.png", 10, 20)))
        assert (pos.center_x, pos.center_y) == (60, 70)

    def test_explicit_size(self):
        pos = position_of(CanvasNode(image_node("a", "a.png", 10, 20, width=400, height=200)))
        assert (pos.center_x, pos.center_y) == (210, 120)

    def test_zero_size_falls_back(self):
        """zero width/height also fall back to 100."""
        pos = position_of(CanvasNode(image_node("a", "a.png", 0, 0, width=0, height=0)))
        assert (pos.center_x, pos.center_y) == (50, 50)


class TestNames:
    """tests for name helpers."""

    def test_dir_prefix_root(self):
        assert document_dir_prefix("grid.canvas") == ""

    def test_dir_prefix_nested(self):
        assert document_dir_prefix("boards/houdini/grid.canvas") == "boards/houdini/"

    def test_extension_case_kept(self):
        assert file_extension("dir/Photo.JPG") == "JPG"

    def test_extension_uses_last_dot(self):
        assert file_extension("dir.v2/shot.final.png") == "png"


class TestPlanRenames:
    """tests for plan_renames."""

    def test_two_by_two_grid(self, grid_nodes):
        """line follows the y rank, column the x rank."""
        plan = plan_renames(nodes_of(*grid_nodes), "P_", "grid.canvas")
        assert new_paths(plan) == {
            "a": "P_L1C1.png",
            "b": "P_L2C1.png",
            "c": "P_L1C2.png",
            "d": "P_L2C2.png",
        }
        assert plan.qualifying == 4

    def test_entries_keep_document_order(self, grid_nodes):
        plan = plan_renames(nodes_of(*grid_nodes), "P_", "grid.canvas")
        assert [e.node_id for e in plan.entries] == ["a", "b", "c", "d"]
        assert plan.entries[0].old_path == "Pasted image 1.png"

    def test_nested_document(self, grid_nodes):
        """new names land next to the canvas."""
        plan = plan_renames(nodes_of(*grid_nodes), "P_", "boards/grid.canvas")
        assert new_paths(plan)["a"] == "boards/P_L1C1.png"

    def test_second_run_is_empty(self, grid_nodes):
        """applying a plan and planning again yields nothing."""
        nodes = nodes_of(*grid_nodes)
        plan = plan_renames(nodes, "P_", "grid.canvas")
        renamed = [
            n.with_file(new_paths(plan)[n.id]) if n.id in new_paths(plan) else n
            for n in nodes
        ]
        again = plan_renames(renamed, "P_", "grid.canvas")
        assert not again
        assert again.qualifying == 4

    def test_already_named_node_excluded(self):
        """a node already at its target is left out."""
        nodes = nodes_of(
            image_node("a", "P_L1C1.png", 0, 0),
            image_node("b", "Pasted.png", 200, 0),
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert new_paths(plan) == {"b": "P_L1C2.png"}

    def test_non_images_never_planned(self):
        """text, group, and non-image file nodes are ignored entirely."""
        nodes = nodes_of(
            {"id": "t", "type": "text", "text": "hi", "x": 0, "y": 0},
            {"id": "g", "type": "group", "x": -50, "y": -50, "width": 500, "height": 500},
            image_node("pdf", "paper.pdf", 0, 0),
            image_node("img", "shot.gif", 500, 500),
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert new_paths(plan) == {"img": "P_L1C1.gif"}
        assert plan.qualifying == 1

    def test_non_images_do_not_shift_grid(self):
        """only image centers take part in clustering."""
        nodes = nodes_of(
            {"id": "t", "type": "text", "text": "hi", "x": -1000, "y": -1000},
            image_node("img", "shot.png", 0, 0),
        )
        assert new_paths(plan_renames(nodes, "P_", "grid.canvas")) == {"img": "P_L1C1.png"}

    def test_malformed_node_skipped(self):
        """bad coordinates skip that node only."""
        nodes = nodes_of(
            image_node("bad", "bad.png", "left", 0),
            image_node("ok", "ok.png", 0, 0),
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert new_paths(plan) == {"ok": "P_L1C1.png"}
        assert [e.node_id for e in plan.skipped] == ["bad"]
        assert plan.qualifying == 2

    def test_missing_coordinate_skipped(self):
        nodes = nodes_of({"id": "m", "type": "file", "file": "m.png", "y": 0})
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert not plan
        assert len(plan.skipped) == 1

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_coordinate_skipped(self, value):
        """a nan or infinite coordinate skips that node and leaves the grid intact."""
        nodes = nodes_of(
            image_node("bad", "bad.png", value, 0),
            image_node("ok", "ok.png", 300, 0),
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert new_paths(plan) == {"ok": "P_L1C1.png"}
        assert [e.node_id for e in plan.skipped] == ["bad"]

    def test_nodes_without_ids(self):
        """nodes with no id still get their own cells."""
        nodes = nodes_of(
            {"type": "file", "file": "a.png", "x": 0, "y": 0},
            {"type": "file", "file": "b.png", "x": 300, "y": 0},
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert [(e.index, e.old_path, e.new_path) for e in plan.entries] == [
            (0, "a.png", "P_L1C1.png"),
            (1, "b.png", "P_L1C2.png"),
        ]

    def test_entry_index_counts_every_node(self):
        """index is the position in the full node list, non-images included."""
        nodes = nodes_of(
            {"id": "t", "type": "text", "text": "hi", "x": 0, "y": 0},
            image_node("img", "shot.png", 0, 0),
        )
        assert [e.index for e in plan_renames(nodes, "P_", "grid.canvas")] == [1]

    def test_empty_node_list(self):
        plan = plan_renames([], "P_", "grid.canvas")
        assert not plan
        assert plan.qualifying == 0

    def test_extension_kept(self):
        nodes = nodes_of(image_node("a", "img/Photo.JPEG", 0, 0))
        assert new_paths(plan_renames(nodes, "X", "grid.canvas")) == {"a": "XL1C1.JPEG"}

    def test_collision_targets_both_planned(self):
        """stacked images map to the same cell; the store decides who wins."""
        nodes = nodes_of(
            image_node("a", "a.png", 0, 0),
            image_node("b", "b.png", 0.5, 0.5),
        )
        plan = plan_renames(nodes, "P_", "grid.canvas")
        assert set(new_paths(plan).values()) == {"P_L1C1.png"}
        assert len(plan) == 2

    def test_grid_cell_values(self, grid_nodes):
        nodes = nodes_of(*grid_nodes)
        cells = grid_cells([position_of(n, i) for i, n in enumerate(nodes)])
        assert cells[3] == GridCell(line=2, column=2)
