from dataclasses import replace

import pytest

from flowcanvas.hierarchy import (
    can_reparent,
    compute_depths,
    descendant_ids,
    find_drop_target,
    get_descendants,
    node_at,
    parent_ids,
    render_order,
)
from flowcanvas.models import Node


@pytest.fixture
def nodes():
    return [
        Node(id="c2", type="ui", x=80, y=80, width=100, height=50, parent_id="p2"),
        Node(id="p", type="page", x=0, y=0, width=600, height=400),
        Node(id="c1", type="action", x=400, y=50, width=100, height=50, parent_id="p"),
        Node(id="p2", type="page", x=50, y=50, width=300, height=200, parent_id="p"),
        Node(id="q", type="page", x=800, y=0, width=600, height=400),
        Node(id="n", type="note", x=900, y=500, width=100, height=50),
    ]


def test_descendants_are_transitive(nodes):
    assert descendant_ids("p", nodes) == {"c1", "p2", "c2"}
    assert [n.id for n in get_descendants("p", nodes)] == ["c2", "c1", "p2"]
    assert descendant_ids("q", nodes) == set()


def test_parent_ids(nodes):
    assert parent_ids(nodes) == {"p", "p2"}


def test_render_order_puts_parents_first(nodes):
    order = [n.id for n in render_order(nodes)]
    assert order.index("p") < order.index("p2") < order.index("c2")
    assert order.index("p") < order.index("c1")


def test_invalid_parent_is_treated_as_root():
    nodes = [
        Node(id="ui1", type="ui", x=0, y=0, width=10, height=10),
        Node(id="a", type="ui", x=0, y=0, width=10, height=10, parent_id="ui1"),
        Node(id="b", type="ui", x=0, y=0, width=10, height=10, parent_id="missing"),
    ]
    assert compute_depths(nodes) == {"ui1": 0, "a": 0, "b": 0}
    assert descendant_ids("ui1", nodes) == set()


def test_parent_cycle_does_not_recurse_forever():
    nodes = [
        Node(id="a", type="page", x=0, y=0, width=10, height=10, parent_id="b"),
        Node(id="b", type="page", x=0, y=0, width=10, height=10, parent_id="a"),
    ]
    depths = compute_depths(nodes)
    assert set(depths) == {"a", "b"}
    assert descendant_ids("a", nodes) == {"b"}


class TestCanReparent:

    def test_detach_always_allowed(self, nodes):
        assert can_reparent("c1", None, nodes)

    def test_self_and_descendants_rejected(self, nodes):
        assert not can_reparent("p", "p", nodes)
        assert not can_reparent("p", "p2", nodes)

    def test_non_container_or_missing_rejected(self, nodes):
        assert not can_reparent("c1", "c2", nodes)
        assert not can_reparent("c1", "nope", nodes)

    def test_valid_move(self, nodes):
        assert can_reparent("p2", "q", nodes)
        assert can_reparent("c1", "p2", nodes)


class TestDropTarget:

    def test_deepest_container_wins(self, nodes):
        assert find_drop_target(100, 100, "c1", nodes).id == "p2"

    def test_dragged_subtree_excluded(self, nodes):
        assert find_drop_target(100, 100, "p2", nodes).id == "p"
        assert find_drop_target(100, 100, "p", nodes) is None

    def test_locked_container_skipped(self, nodes):
        locked = [replace(n, locked=True) if n.id == "p2" else n for n in nodes]
        assert find_drop_target(100, 100, "c1", locked).id == "p"

    def test_bounds_are_inclusive(self, nodes):
        assert find_drop_target(600, 300, "n", nodes).id == "p"
        assert find_drop_target(300, 400, "n", nodes).id == "p"
        assert find_drop_target(600.5, 300, "n", nodes) is None

    def test_empty_space(self, nodes):
        assert find_drop_target(700, 700, "c1", nodes) is None


def test_node_at_prefers_topmost(nodes):
    assert node_at(100, 100, nodes).id == "c2"
    assert node_at(100, 100, nodes, exclude=["c2"]).id == "p2"
    assert node_at(700, 700, nodes) is None
