"""
Canvas data model for FlowCanvas.

Nodes, edges and snapshots are immutable records. Every edit produces a new
Snapshot, so two snapshots can be compared with plain ``==`` (dataclass
equality recurses through the tuples of nodes, edges and variables).

JSON format (camelCase keys, as written by the export bundle):

    Node:  {"id", "type", "x", "y", "width", "height", "title", "description",
            "parentId", "locked", "variables": [{"id", "key", "value"}], "docs"}
    Edge:  {"id", "sourceId", "targetId", "label", "type", "condition"}
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Closed set of node kinds
NODE_TYPES = frozenset(['page', 'ui', 'action', 'logic', 'entity', 'external', 'note'])

# Closed set of edge kinds (visual only)
EDGE_TYPES = frozenset(['navigation', 'logic', 'data', 'system'])

# Node kinds that can hold other nodes via parent_id
CONTAINER_TYPES = frozenset(['page'])

# Node kinds without a connection handle
UNCONNECTABLE_TYPES = CONTAINER_TYPES | frozenset(['note'])

NODE_KIND = 'node'
EDGE_KIND = 'edge'


def is_container_type(node_type: str) -> bool:
    return node_type in CONTAINER_TYPES


def is_connectable_type(node_type: str) -> bool:
    """Only non-container, non-note nodes can be edge endpoints."""
    return node_type in NODE_TYPES and node_type not in UNCONNECTABLE_TYPES


def new_node_id() -> str:
    return f"node_{uuid.uuid4()}"


def new_edge_id() -> str:
    return f"edge_{uuid.uuid4()}"


@dataclass(frozen=True)
class StateVariable:
    """A key/value attribute shown on entity nodes."""
    id: str
    key: str
    value: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateVariable":
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            key=str(data.get("key", "")),
            value=str(data.get("value", "")),
        )


@dataclass(frozen=True)
class Node:
    id: str
    type: str
    x: float
    y: float
    width: float
    height: float
    title: str = ""
    description: str = ""
    parent_id: Optional[str] = None
    locked: bool = False
    variables: Tuple[StateVariable, ...] = ()
    docs: Optional[str] = None

    @property
    def is_container(self) -> bool:
        return is_container_type(self.type)

    @property
    def is_connectable(self) -> bool:
        return is_connectable_type(self.type)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(left, top, right, bottom) in world units."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def moved_to(self, x: float, y: float) -> "Node":
        return replace(self, x=x, y=y)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "title": self.title,
            "description": self.description,
            "parentId": self.parent_id,
            "locked": self.locked,
            "variables": [v.to_dict() for v in self.variables],
        }
        if self.docs is not None:
            data["docs"] = self.docs
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """
        Build a Node from its JSON form.

        Raises:
            KeyError: if 'id' or 'type' is missing
            ValueError: if the type is unknown or geometry is not numeric
        """
        node_type = data["type"]
        if node_type not in NODE_TYPES:
            raise ValueError(f"Unknown node type: {node_type!r}")
        docs = data.get("docs")
        return cls(
            id=str(data["id"]),
            type=node_type,
            x=float(data.get("x", 0)),
            y=float(data.get("y", 0)),
            width=float(data.get("width", 0)),
            height=float(data.get("height", 0)),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            parent_id=data.get("parentId") or None,
            locked=bool(data.get("locked", False)),
            variables=tuple(StateVariable.from_dict(v) for v in data.get("variables") or []),
            docs=str(docs) if docs is not None else None,
        )


@dataclass(frozen=True)
class Edge:
    id: str
    source_id: str
    target_id: str
    label: str = ""
    type: str = "navigation"
    condition: str = ""

    def touches(self, node_ids) -> bool:
        """True if either endpoint is in node_ids."""
        return self.source_id in node_ids or self.target_id in node_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "label": self.label,
            "type": self.type,
            "condition": self.condition,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        edge_type = data.get("type") or "navigation"
        if edge_type not in EDGE_TYPES:
            raise ValueError(f"Unknown edge type: {edge_type!r}")
        return cls(
            id=str(data["id"]),
            source_id=str(data["sourceId"]),
            target_id=str(data["targetId"]),
            label=str(data.get("label", "")),
            type=edge_type,
            condition=str(data.get("condition") or ""),
        )


@dataclass(frozen=True)
class Snapshot:
    """The complete {nodes, edges} state of the diagram at one instant."""
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()

    @classmethod
    def of(cls, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()) -> "Snapshot":
        return cls(nodes=tuple(nodes), edges=tuple(edges))

    def node(self, node_id: Optional[str]) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def edge(self, edge_id: Optional[str]) -> Optional[Edge]:
        for e in self.edges:
            if e.id == edge_id:
                return e
        return None

    def node_map(self) -> Dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def with_nodes(self, nodes: Iterable[Node]) -> "Snapshot":
        return replace(self, nodes=tuple(nodes))

    def with_edges(self, edges: Iterable[Edge]) -> "Snapshot":
        return replace(self, edges=tuple(edges))

    def replace_node(self, node_id: str, **changes) -> "Snapshot":
        return self.with_nodes(replace(n, **changes) if n.id == node_id else n for n in self.nodes)

    def replace_edge(self, edge_id: str, **changes) -> "Snapshot":
        return self.with_edges(replace(e, **changes) if e.id == edge_id else e for e in self.edges)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        return cls.of(
            (Node.from_dict(n) for n in data.get("nodes") or []),
            (Edge.from_dict(e) for e in data.get("edges") or []),
        )


@dataclass(frozen=True)
class Version:
    """A named, timestamped copy of a Snapshot. Never mutated after creation."""
    id: str
    name: str
    timestamp: str
    snapshot: Snapshot = field(default_factory=Snapshot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            **self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            name=str(data.get("name", "")),
            timestamp=str(data.get("timestamp", "")),
            snapshot=Snapshot.from_dict(data),
        )


@dataclass(frozen=True)
class Selection:
    """The selected element: kind is 'node' or 'edge'."""
    kind: str
    id: str
