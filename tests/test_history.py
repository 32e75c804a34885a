"""
Tests for the undo/redo history store.
"""

import pytest

from flowcanvas.history import HistoryStore
from flowcanvas.models import Node, Snapshot


def _node(node_id, x=0.0):
    return Node(id=node_id, type="ui", x=x, y=0, width=100, height=50, title=node_id)


@pytest.fixture
def store():
    return HistoryStore(Snapshot.of([_node("a")]))


def _add(node_id):
    return lambda s: s.with_nodes(s.nodes + (_node(node_id),))


class TestHistoryStore:

    def test_commit_records_change(self, store):
        initial = store.present
        assert store.commit(_add("b")) is True
        assert store.past == [initial]
        assert [n.id for n in store.present.nodes] == ["a", "b"]
        assert store.future == []

    def test_noop_commit_is_absorbed(self, store):
        store.commit(_add("b"))
        store.undo()
        future_before = list(store.future)

        assert store.commit(lambda s: s) is False
        # An equal but newly built snapshot is still a no-op
        assert store.commit(lambda s: Snapshot.of(list(s.nodes), list(s.edges))) is False

        assert store.past == []
        assert store.future == future_before
        assert store.can_redo

    def test_undo_redo_restore_exact_snapshots(self, store):
        s0 = store.present
        store.commit(_add("b"))
        s1 = store.present
        store.commit(lambda s: s.replace_node("a", x=99.0))
        s2 = store.present

        assert store.undo()
        assert store.present == s1
        assert store.undo()
        assert store.present == s0
        assert not store.undo()

        assert store.redo()
        assert store.present == s1
        assert store.redo()
        assert store.present == s2
        assert not store.redo()

    def test_new_commit_discards_redo(self, store):
        store.commit(_add("b"))
        store.undo()
        assert store.can_redo
        store.commit(_add("c"))
        assert not store.can_redo
        assert [n.id for n in store.present.nodes] == ["a", "c"]

    def test_reset_clears_stacks(self, store):
        store.commit(_add("b"))
        store.undo()
        store.reset(Snapshot())
        assert store.present == Snapshot()
        assert not store.can_undo
        assert not store.can_redo
