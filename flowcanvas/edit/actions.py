"""
Canvas Actions - the mutation API of the canvas engine.

Every method validates its input against the current committed snapshot and
then routes a single updater through CanvasEngine.commit(), so each call is
at most one undo step. Operations that would break a hierarchy or edge
invariant are declined: they log a warning and return False/None without
touching history.
"""

import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from flowcanvas.edit.constants import (
    CONTAINER_DEFAULT_SIZE,
    DEFAULT_EDGE_LABEL,
    DEFAULT_EDGE_TYPE,
    NODE_DEFAULT_SIZE,
)
from flowcanvas.hierarchy import can_reparent, descendant_ids, parent_ids
from flowcanvas.models import (
    EDGE_KIND,
    EDGE_TYPES,
    NODE_KIND,
    NODE_TYPES,
    Edge,
    Node,
    Snapshot,
    StateVariable,
    is_connectable_type,
    is_container_type,
    new_edge_id,
    new_node_id,
)

if TYPE_CHECKING:
    from flowcanvas.engine import CanvasEngine

logger = logging.getLogger(__name__)

NODE_FIELDS = frozenset([
    'type', 'x', 'y', 'width', 'height', 'title', 'description',
    'parent_id', 'locked', 'variables', 'docs',
])
EDGE_FIELDS = frozenset(['source_id', 'target_id', 'label', 'type', 'condition'])

DEFAULT_TITLES = {
    'page': 'New Page',
    'ui': 'New UI Element',
    'action': 'New Action',
    'logic': 'New Logic',
    'entity': 'New Entity',
    'external': 'New External System',
    'note': 'Note',
}


def _coerce_variables(values) -> Tuple[StateVariable, ...]:
    result = []
    for v in values or ():
        result.append(v if isinstance(v, StateVariable) else StateVariable.from_dict(v))
    return tuple(result)


class CanvasActions:
    """
    Handles execution of canvas mutations.

    Called by the property/toolbar UI directly and by the interaction
    controller when a drag, resize or connection completes.
    """

    def __init__(self, engine: "CanvasEngine"):
        self.engine = engine

    @property
    def _present(self) -> Snapshot:
        return self.engine.history.present

    # --- Nodes ---

    def add_node(self, node_type: str, viewport_center: Tuple[float, float]) -> str:
        """
        Create a node of node_type centred on viewport_center (world units).

        The new node becomes the selection.

        Returns:
            Created node ID
        """
        if node_type not in NODE_TYPES:
            raise ValueError(f"Unknown node type: {node_type!r}")

        width, height = CONTAINER_DEFAULT_SIZE if is_container_type(node_type) else NODE_DEFAULT_SIZE
        cx, cy = viewport_center
        node = Node(
            id=new_node_id(),
            type=node_type,
            x=cx - width / 2,
            y=cy - height / 2,
            width=width,
            height=height,
            title=DEFAULT_TITLES[node_type],
            docs='' if is_container_type(node_type) else None,
        )
        self.engine.commit(lambda s: s.with_nodes(s.nodes + (node,)))
        self.engine.select(NODE_KIND, node.id)
        logger.debug(f"Added {node_type} node {node.id}")
        return node.id

    def update_node(self, node_id: str, **fields: Any) -> bool:
        """
        Apply a partial update to a node.

        Declined (False) for unknown nodes or fields, id changes, unknown
        types, turning a parent into a non-container, turning an edge endpoint
        into a page or note, and parent_id values that are not a valid
        container or would create a cycle.
        """
        present = self._present
        node = present.node(node_id)
        if node is None:
            logger.warning(f"update_node: unknown node {node_id}")
            return False

        unknown = set(fields) - NODE_FIELDS
        if unknown:
            logger.warning(f"update_node: unsupported fields {sorted(unknown)}")
            return False

        changes: Dict[str, Any] = dict(fields)

        if 'type' in changes:
            new_type = changes['type']
            if new_type not in NODE_TYPES:
                logger.warning(f"update_node: unknown node type {new_type!r}")
                return False
            if node_id in parent_ids(present.nodes) and not is_container_type(new_type):
                logger.warning(f"update_node: {node_id} still contains nodes; type must stay a container")
                return False
            if not is_connectable_type(new_type) and any(
                    node_id in (e.source_id, e.target_id) for e in present.edges):
                logger.warning(f"update_node: {node_id} has edges; {new_type!r} cannot be an edge endpoint")
                return False

        if 'parent_id' in changes:
            parent_id = changes['parent_id'] or None
            if not can_reparent(node_id, parent_id, present.nodes):
                logger.warning(f"update_node: cannot place {node_id} under {parent_id}")
                return False
            changes['parent_id'] = parent_id

        if 'variables' in changes:
            changes['variables'] = _coerce_variables(changes['variables'])

        for key in ('x', 'y', 'width', 'height'):
            if key in changes:
                changes[key] = float(changes[key])

        self.engine.commit(lambda s: s.replace_node(node_id, **changes))
        return True

    def toggle_lock(self, node_id: str) -> bool:
        node = self._present.node(node_id)
        if node is None:
            return False
        return self.update_node(node_id, locked=not node.locked)

    def move_nodes(self, positions: Dict[str, Tuple[float, float]],
                   reparent: Optional[Tuple[str, Optional[str]]] = None) -> bool:
        """
        Commit the outcome of a drag as one history entry.

        Args:
            positions: node_id -> (x, y) for the dragged node and its subtree
            reparent: optional (node_id, new_parent_id); None as the parent detaches
        """
        present = self._present
        if reparent is not None:
            node_id, parent_id = reparent
            if not can_reparent(node_id, parent_id, present.nodes):
                logger.warning(f"move_nodes: dropping {node_id} into {parent_id} declined")
                reparent = None

        def updater(s: Snapshot) -> Snapshot:
            nodes = []
            for n in s.nodes:
                if n.id in positions:
                    n = n.moved_to(*positions[n.id])
                if reparent is not None and n.id == reparent[0]:
                    n = replace(n, parent_id=reparent[1])
                nodes.append(n)
            return s.with_nodes(nodes)

        return self.engine.commit(updater)

    def resize_node(self, node_id: str, width: float, height: float) -> bool:
        node = self._present.node(node_id)
        if node is None or not node.is_container or node.locked:
            return False
        return self.engine.commit(lambda s: s.replace_node(node_id, width=width, height=height))

    # --- Entity attributes ---

    def add_variable(self, node_id: str, key: str = 'newVar', value: str = '""') -> Optional[str]:
        node = self._present.node(node_id)
        if node is None:
            return None
        var = StateVariable(id=str(uuid.uuid4()), key=key, value=value)
        self.update_node(node_id, variables=node.variables + (var,))
        return var.id

    def update_variable(self, node_id: str, variable_id: str,
                        key: Optional[str] = None, value: Optional[str] = None) -> bool:
        node = self._present.node(node_id)
        if node is None or all(v.id != variable_id for v in node.variables):
            return False
        updated = []
        for v in node.variables:
            if v.id == variable_id:
                v = replace(v,
                            key=v.key if key is None else key,
                            value=v.value if value is None else value)
            updated.append(v)
        return self.update_node(node_id, variables=updated)

    def remove_variable(self, node_id: str, variable_id: str) -> bool:
        node = self._present.node(node_id)
        if node is None:
            return False
        remaining = [v for v in node.variables if v.id != variable_id]
        if len(remaining) == len(node.variables):
            return False
        return self.update_node(node_id, variables=remaining)

    # --- Edges ---

    def _valid_endpoints(self, source_id: str, target_id: str) -> bool:
        present = self._present
        source = present.node(source_id)
        target = present.node(target_id)
        if source is None or target is None:
            logger.warning(f"Edge endpoints must exist: {source_id} -> {target_id}")
            return False
        if source_id == target_id:
            logger.warning(f"Edge endpoints must differ: {source_id}")
            return False
        if not (is_connectable_type(source.type) and is_connectable_type(target.type)):
            logger.warning(f"Containers and notes cannot be edge endpoints: {source_id} -> {target_id}")
            return False
        if self.engine.is_ghost(source_id) or self.engine.is_ghost(target_id):
            return False
        return True

    def create_edge(self, source_id: str, target_id: str,
                    label: str = DEFAULT_EDGE_LABEL,
                    edge_type: str = DEFAULT_EDGE_TYPE,
                    condition: str = '') -> Optional[str]:
        """
        Connect two nodes.

        Returns:
            Created edge ID, or None if the endpoints are not a valid pair
        """
        if edge_type not in EDGE_TYPES:
            raise ValueError(f"Unknown edge type: {edge_type!r}")
        if not self._valid_endpoints(source_id, target_id):
            return None

        edge = Edge(
            id=new_edge_id(),
            source_id=source_id,
            target_id=target_id,
            label=label,
            type=edge_type,
            condition=condition,
        )
        self.engine.commit(lambda s: s.with_edges(s.edges + (edge,)))
        logger.debug(f"Connected {source_id} -> {target_id} ({edge.id})")
        return edge.id

    def update_edge(self, edge_id: str, **fields: Any) -> bool:
        edge = self._present.edge(edge_id)
        if edge is None:
            logger.warning(f"update_edge: unknown edge {edge_id}")
            return False

        unknown = set(fields) - EDGE_FIELDS
        if unknown:
            logger.warning(f"update_edge: unsupported fields {sorted(unknown)}")
            return False

        if 'type' in fields and fields['type'] not in EDGE_TYPES:
            logger.warning(f"update_edge: unknown edge type {fields['type']!r}")
            return False

        if 'source_id' in fields or 'target_id' in fields:
            source_id = fields.get('source_id', edge.source_id)
            target_id = fields.get('target_id', edge.target_id)
            if not self._valid_endpoints(source_id, target_id):
                return False

        self.engine.commit(lambda s: s.replace_edge(edge_id, **fields))
        return True

    # --- Deletion ---

    def delete_element(self, element_id: str, kind: str) -> bool:
        """
        Delete a node or edge.

        Deleting a node also removes all of its transitive descendants and
        every edge touching any removed node.
        """
        present = self._present
        if kind == NODE_KIND:
            if present.node(element_id) is None:
                return False
            doomed = {element_id} | descendant_ids(element_id, present.nodes)
            self.engine.commit(lambda s: Snapshot.of(
                (n for n in s.nodes if n.id not in doomed),
                (e for e in s.edges if not e.touches(doomed)),
            ))
            removed_edges = {e.id for e in present.edges if e.touches(doomed)}
            logger.debug(f"Deleted {len(doomed)} nodes and {len(removed_edges)} edges")
            self.engine.forget_elements(doomed, removed_edges)
            return True

        if kind == EDGE_KIND:
            if present.edge(element_id) is None:
                return False
            self.engine.commit(lambda s: s.with_edges(e for e in s.edges if e.id != element_id))
            self.engine.forget_elements(set(), {element_id})
            return True

        raise ValueError(f"Unknown element kind: {kind!r}")
