"""
Parent/child containment for canvas nodes.

Containment is stored on the child (``parent_id``). This module builds a
NetworkX DiGraph (parent -> child) from a node list on demand and answers
the questions the editor needs: descendants for cascading deletes and rigid
subtree drags, paint order, and which container a point would drop into.

A parent_id that points to a missing or non-container node is treated as
unparented.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

import networkx as nx

from flowcanvas.geometry import contains
from flowcanvas.models import Node

logger = logging.getLogger(__name__)


def resolve_parent(node: Node, node_map: Dict[str, Node]) -> Optional[Node]:
    """Return the node's container, or None if the reference is dangling or invalid."""
    if not node.parent_id:
        return None
    parent = node_map.get(node.parent_id)
    if parent is None or not parent.is_container:
        return None
    return parent


def build_hierarchy_graph(nodes: Sequence[Node]) -> nx.DiGraph:
    """
    Build a DiGraph with an edge parent -> child for every valid containment.
    """
    G = nx.DiGraph()
    node_map = {n.id: n for n in nodes}
    for n in nodes:
        G.add_node(n.id)
    for n in nodes:
        parent = resolve_parent(n, node_map)
        if parent is not None:
            G.add_edge(parent.id, n.id)
    return G


def descendant_ids(node_id: str, nodes: Sequence[Node]) -> Set[str]:
    G = build_hierarchy_graph(nodes)
    if node_id not in G:
        return set()
    found = nx.descendants(G, node_id)
    # Corrupt data may contain a cycle back to the start node
    found.discard(node_id)
    return found


def get_descendants(node_id: str, nodes: Sequence[Node]) -> List[Node]:
    """
    All nodes transitively parented under node_id, in snapshot order.

    Used to forbid reparenting under a descendant, to move a subtree during
    a drag and to cascade deletes.
    """
    ids = descendant_ids(node_id, nodes)
    return [n for n in nodes if n.id in ids]


def parent_ids(nodes: Sequence[Node]) -> Set[str]:
    """Ids of nodes that currently contain at least one child."""
    G = build_hierarchy_graph(nodes)
    return {nid for nid in G.nodes if G.out_degree(nid) > 0}


def compute_depths(nodes: Sequence[Node]) -> Dict[str, int]:
    """
    Depth of each node: 0 for roots, parent depth + 1 otherwise.

    Memoized for the duration of the call. A parent chain that loops back on
    itself stops at the first repeated node.
    """
    node_map = {n.id: n for n in nodes}
    depths: Dict[str, int] = {}

    def depth_of(node: Node, visiting: Set[str]) -> int:
        if node.id in depths:
            return depths[node.id]
        if node.id in visiting:
            logger.warning(f"Cycle in parent chain at node {node.id}")
            return 0
        visiting.add(node.id)
        parent = resolve_parent(node, node_map)
        d = 0 if parent is None else 1 + depth_of(parent, visiting)
        depths[node.id] = d
        return d

    for n in nodes:
        depth_of(n, set())
    return depths


def render_order(nodes: Sequence[Node]) -> List[Node]:
    """Containers before their contents; ties keep snapshot order."""
    depths = compute_depths(nodes)
    return sorted(nodes, key=lambda n: depths[n.id])


def can_reparent(node_id: str, parent_id: Optional[str], nodes: Sequence[Node]) -> bool:
    """
    Check whether node_id may be placed under parent_id.

    Clearing the parent is always allowed. Otherwise the parent must exist,
    be a container, and be neither the node itself nor one of its descendants.
    """
    if parent_id is None:
        return True
    if parent_id == node_id:
        return False
    parent = next((n for n in nodes if n.id == parent_id), None)
    if parent is None or not parent.is_container:
        return False
    return parent_id not in descendant_ids(node_id, nodes)


def find_drop_target(px: float, py: float, dragged_id: str,
                     nodes: Sequence[Node]) -> Optional[Node]:
    """
    Topmost unlocked container whose bounds contain the world point (px, py).

    The dragged node and its whole subtree are never candidates.
    """
    excluded = descendant_ids(dragged_id, nodes) | {dragged_id}
    candidates = [
        n for n in render_order(nodes)
        if n.is_container
        and not n.locked
        and n.id not in excluded
        and contains(n.bounds, px, py)
    ]
    return candidates[-1] if candidates else None


def node_at(px: float, py: float, nodes: Sequence[Node],
            exclude: Iterable[str] = ()) -> Optional[Node]:
    """Topmost node (last in paint order) containing the world point."""
    skip = set(exclude)
    for n in reversed(render_order(nodes)):
        if n.id not in skip and contains(n.bounds, px, py):
            return n
    return None
