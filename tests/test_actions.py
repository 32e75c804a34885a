"""
Tests for the canvas mutation API (CanvasActions).
"""

import pytest

from flowcanvas.engine import CanvasEngine
from flowcanvas.models import EDGE_KIND, NODE_KIND, Edge, Node, Selection, Snapshot, StateVariable


@pytest.fixture
def snapshot():
    return Snapshot.of(
        [
            Node(id="page", type="page", x=0, y=0, width=600, height=400, title="Home", docs=""),
            Node(id="c1", type="ui", x=50, y=100, width=200, height=100, parent_id="page"),
            Node(id="c2", type="action", x=300, y=100, width=200, height=100, parent_id="page"),
            Node(id="ext", type="external", x=800, y=100, width=200, height=100),
            Node(id="note", type="note", x=800, y=400, width=200, height=100),
            Node(id="ent", type="entity", x=800, y=700, width=200, height=100,
                 variables=(StateVariable(id="v1", key="email", value='""'),)),
        ],
        [
            Edge(id="e1", source_id="c1", target_id="ext", label="Open"),
            Edge(id="e2", source_id="ext", target_id="ent", label="Load"),
        ],
    )


@pytest.fixture
def engine(snapshot):
    return CanvasEngine(snapshot)


@pytest.fixture
def actions(engine):
    return engine.actions


class TestAddNode:

    def test_page_defaults(self, engine, actions):
        node_id = actions.add_node("page", (1000, 1000))
        node = engine.snapshot.node(node_id)
        assert node_id.startswith("node_")
        assert (node.x, node.y, node.width, node.height) == (700, 800, 600, 400)
        assert node.title == "New Page"
        assert node.docs == ""
        assert engine.selection == Selection(NODE_KIND, node_id)
        assert len(engine.history.past) == 1

    def test_regular_node_defaults(self, engine, actions):
        node = engine.snapshot.node(actions.add_node("ui", (125, 60)))
        assert (node.x, node.y, node.width, node.height) == (0, 0, 250, 120)
        assert node.title == "New UI Element"
        assert node.docs is None
        assert node.parent_id is None

    def test_unknown_type(self, actions):
        with pytest.raises(ValueError):
            actions.add_node("widget", (0, 0))


class TestUpdateNode:

    def test_update_records_one_entry(self, engine, actions):
        assert actions.update_node("c1", title="Login", description="Form")
        node = engine.snapshot.node("c1")
        assert (node.title, node.description) == ("Login", "Form")
        assert len(engine.history.past) == 1

    def test_same_value_is_noop(self, engine, actions):
        assert actions.update_node("c1", title="")
        assert engine.history.past == []

    @pytest.mark.parametrize("fields", [
        {"color": "red"},
        {"id": "other"},
        {"type": "widget"},
        {"type": "note"},
        {"type": "page"},
        {"parent_id": "c2"},
        {"parent_id": "missing"},
    ])
    def test_declined_updates_leave_history_alone(self, engine, actions, snapshot, fields):
        assert actions.update_node("c1", **fields) is False
        assert engine.snapshot == snapshot
        assert engine.history.past == []

    def test_unknown_node(self, actions):
        assert actions.update_node("ghost", title="x") is False

    def test_page_with_children_keeps_container_type(self, actions):
        assert actions.update_node("page", type="ui") is False

    def test_unconnected_node_can_become_note(self, engine, actions):
        assert actions.update_node("c2", type="note")
        assert engine.snapshot.node("c2").type == "note"
        assert actions.update_node("ent", type="note") is False

    def test_reparent_and_detach(self, engine, actions):
        assert actions.update_node("ext", parent_id="page")
        assert engine.snapshot.node("ext").parent_id == "page"
        assert actions.update_node("ext", parent_id="")
        assert engine.snapshot.node("ext").parent_id is None

    def test_page_cannot_go_under_itself(self, actions):
        assert actions.update_node("page", parent_id="page") is False

    def test_toggle_lock(self, engine, actions):
        assert actions.toggle_lock("c1")
        assert engine.snapshot.node("c1").locked
        assert actions.toggle_lock("c1")
        assert not engine.snapshot.node("c1").locked


class TestVariables:

    def test_add_update_remove(self, engine, actions):
        var_id = actions.add_variable("ent")
        assert [v.key for v in engine.snapshot.node("ent").variables] == ["email", "newVar"]

        assert actions.update_variable("ent", var_id, key="password")
        assert engine.snapshot.node("ent").variables[1].key == "password"
        assert engine.snapshot.node("ent").variables[1].value == '""'

        assert actions.remove_variable("ent", "v1")
        assert [v.id for v in engine.snapshot.node("ent").variables] == [var_id]
        assert len(engine.history.past) == 3

    def test_unknown_variable(self, actions):
        assert actions.update_variable("ent", "nope", key="x") is False
        assert actions.remove_variable("ent", "nope") is False


class TestEdges:

    def test_create_edge_defaults(self, engine, actions):
        edge_id = actions.create_edge("c2", "ext")
        edge = engine.snapshot.edge(edge_id)
        assert edge_id.startswith("edge_")
        assert (edge.label, edge.type, edge.condition) == ("New Interaction", "navigation", "")

    @pytest.mark.parametrize("source, target", [
        ("c1", "c1"),
        ("c1", "page"),
        ("page", "c1"),
        ("c1", "note"),
        ("c1", "missing"),
    ])
    def test_invalid_endpoints(self, engine, actions, snapshot, source, target):
        assert actions.create_edge(source, target) is None
        assert engine.snapshot == snapshot

    def test_update_edge(self, engine, actions):
        assert actions.update_edge("e1", label="Submit", condition="valid", type="data")
        edge = engine.snapshot.edge("e1")
        assert (edge.label, edge.condition, edge.type) == ("Submit", "valid", "data")
        assert actions.update_edge("e1", type="teleport") is False
        assert actions.update_edge("e1", target_id="page") is False
        assert actions.update_edge("e1", weight=3) is False


class TestDelete:

    def test_node_delete_cascades(self, engine, actions):
        assert actions.delete_element("page", NODE_KIND)
        snap = engine.snapshot
        assert {n.id for n in snap.nodes} == {"ext", "note", "ent"}
        assert [e.id for e in snap.edges] == ["e2"]
        assert len(engine.history.past) == 1

    def test_nested_delete_cascades(self):
        # c1 is a nested page; the c1 edge comes from an imported file
        nested = Snapshot.of(
            [
                Node(id="page", type="page", x=0, y=0, width=800, height=600, docs=""),
                Node(id="c1", type="page", x=50, y=50, width=400, height=300, parent_id="page", docs=""),
                Node(id="c2", type="ui", x=100, y=100, width=200, height=100, parent_id="c1"),
                Node(id="ext", type="external", x=1000, y=100, width=200, height=100),
            ],
            [
                Edge(id="e1", source_id="c1", target_id="ext"),
                Edge(id="e2", source_id="c2", target_id="ext"),
            ],
        )
        engine = CanvasEngine(nested)
        assert engine.actions.delete_element("page", NODE_KIND)
        assert [n.id for n in engine.snapshot.nodes] == ["ext"]
        assert engine.snapshot.edges == ()
        engine.undo()
        assert engine.snapshot == nested

    def test_undo_restores_subtree(self, engine, actions, snapshot):
        actions.delete_element("page", NODE_KIND)
        engine.undo()
        assert engine.snapshot == snapshot

    def test_delete_clears_selection_of_removed_child(self, engine, actions):
        engine.toggle_docs("page")
        engine.select(NODE_KIND, "c2")
        actions.delete_element("page", NODE_KIND)
        assert engine.selection is None
        assert engine.open_docs_node_id is None

    def test_edge_delete_leaves_nodes(self, engine, actions, snapshot):
        engine.select(EDGE_KIND, "e1")
        assert actions.delete_element("e1", EDGE_KIND)
        assert engine.snapshot.nodes == snapshot.nodes
        assert [e.id for e in engine.snapshot.edges] == ["e2"]
        assert engine.selection is None

    def test_unknown_element(self, actions):
        assert actions.delete_element("missing", NODE_KIND) is False
        with pytest.raises(ValueError):
            actions.delete_element("c1", "group")


def test_move_nodes_drops_invalid_reparent(engine, actions):
    assert actions.move_nodes({"c1": (10.0, 20.0)}, reparent=("c1", "ext"))
    node = engine.snapshot.node("c1")
    assert (node.x, node.y, node.parent_id) == (10.0, 20.0, "page")


def test_resize_only_unlocked_containers(engine, actions):
    assert actions.resize_node("page", 700, 500)
    assert (engine.snapshot.node("page").width, engine.snapshot.node("page").height) == (700, 500)
    assert actions.resize_node("c1", 700, 500) is False
    actions.toggle_lock("page")
    assert actions.resize_node("page", 800, 500) is False
