"""
Structural diff between a reference snapshot (usually a saved version) and
the current snapshot.

Nodes and edges are compared independently by id:

- in current only          -> 'added'
- in both, not equal        -> 'modified'
- in both, equal            -> 'unchanged'
- in reference only         -> 'deleted', and listed as a ghost

Ghosts are drawn on top of the current diagram at reduced opacity and are
not interactive. A ghost edge may point at a ghost node.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from flowcanvas.models import Edge, Node, Snapshot

ADDED = 'added'
MODIFIED = 'modified'
DELETED = 'deleted'
UNCHANGED = 'unchanged'

DIFF_MODES = ('off', 'simple', 'detailed')

# Display treatments consumed by the view layer
TREATMENT_HIGHLIGHT = 'highlight'


@dataclass
class DiffResult:
    node_status: Dict[str, str] = field(default_factory=dict)
    edge_status: Dict[str, str] = field(default_factory=dict)
    ghost_nodes: Tuple[Node, ...] = ()
    ghost_edges: Tuple[Edge, ...] = ()

    def node_state(self, node_id: str) -> str:
        return self.node_status.get(node_id, UNCHANGED)

    def edge_state(self, edge_id: str) -> str:
        return self.edge_status.get(edge_id, UNCHANGED)

    def is_ghost_node(self, node_id: str) -> bool:
        return self.node_status.get(node_id) == DELETED

    def is_ghost_edge(self, edge_id: str) -> bool:
        return self.edge_status.get(edge_id) == DELETED


def _compare(reference: Sequence, current: Sequence) -> Tuple[Dict[str, str], tuple]:
    old = {item.id: item for item in reference}
    new = {item.id: item for item in current}

    status: Dict[str, str] = {}
    for item_id, item in new.items():
        before = old.get(item_id)
        if before is None:
            status[item_id] = ADDED
        elif before != item:
            status[item_id] = MODIFIED
        else:
            status[item_id] = UNCHANGED

    ghosts = tuple(item for item in reference if item.id not in new)
    for g in ghosts:
        status[g.id] = DELETED
    return status, ghosts


def diff_snapshots(reference: Snapshot, current: Snapshot) -> DiffResult:
    node_status, ghost_nodes = _compare(reference.nodes, current.nodes)
    edge_status, ghost_edges = _compare(reference.edges, current.edges)
    return DiffResult(
        node_status=node_status,
        edge_status=edge_status,
        ghost_nodes=ghost_nodes,
        ghost_edges=ghost_edges,
    )


def diff_treatment(status: str, mode: str) -> Optional[str]:
    """
    Map a diff status to a display treatment for the given mode.

    'simple' collapses added/modified into one highlight; 'detailed' keeps
    each status distinct. Ghosts always get the 'deleted' treatment while a
    diff is shown.
    """
    if mode == 'off' or status == UNCHANGED:
        return None
    if status == DELETED:
        return DELETED
    if mode == 'simple':
        return TREATMENT_HIGHLIGHT
    if mode == 'detailed':
        return status
    raise ValueError(f"Unknown diff mode: {mode!r}")
