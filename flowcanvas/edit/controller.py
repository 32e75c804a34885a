"""
Interaction Controller - single source of truth for pointer interactions.

The controller is always in exactly one interaction state:

    Idle | Dragging | Resizing | Connecting | Panning

Pointer and keyboard events drive the transitions. While a drag or resize is
in flight the controller keeps a live *preview* snapshot; nothing reaches the
undo history until the interaction ends. A completed drag or resize is then
committed through CanvasActions as a single history entry, and an aborted one
(Escape) simply drops the preview.

Starting a new interaction while another is active resolves the old one
first: a drag commits its drop, a resize commits its size, a pending
connection is cancelled and a pan ends.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple, Union

from flowcanvas.edit.constants import (
    CONTAINER_MIN_HEIGHT,
    CONTAINER_MIN_WIDTH,
    EDGE_LABEL_HEIGHT,
    EDGE_LABEL_WIDTH,
    HANDLE_RADIUS,
    PRIMARY_BUTTON,
)
from flowcanvas.geometry import (
    bottom_right,
    contains,
    distance,
    left_center,
    midpoint,
    outside,
    right_center,
    zoom_at,
)
from flowcanvas.hierarchy import find_drop_target, get_descendants, node_at, render_order, resolve_parent
from flowcanvas.models import EDGE_KIND, NODE_KIND, Snapshot

if TYPE_CHECKING:
    from flowcanvas.engine import CanvasEngine

logger = logging.getLogger(__name__)


@dataclass
class Idle:
    pass


@dataclass
class Dragging:
    node_id: str
    offset_x: float
    offset_y: float
    initial_x: float
    initial_y: float
    descendant_origins: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    pointer: Tuple[float, float] = (0.0, 0.0)
    drop_target_id: Optional[str] = None


@dataclass
class Resizing:
    node_id: str
    initial_width: float
    initial_height: float
    initial_pointer_x: float
    initial_pointer_y: float


@dataclass
class Connecting:
    source_id: str
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class Panning:
    start_x: float
    start_y: float
    origin: Tuple[float, float] = (0.0, 0.0)


InteractionState = Union[Idle, Dragging, Resizing, Connecting, Panning]


@dataclass
class Hit:
    """What lies under a screen point: kind is one of the HIT_* values."""
    kind: str
    element_id: Optional[str] = None


HIT_RESIZE_HANDLE = 'resize_handle'
HIT_CONNECTION_HANDLE = 'connection_handle'
HIT_NODE = 'node'
HIT_EDGE_LABEL = 'edge_label'
HIT_CANVAS = 'canvas'


class InteractionController:
    """Turns pointer/keyboard events into engine mutations."""

    def __init__(self, engine: "CanvasEngine"):
        self.engine = engine
        self._state: InteractionState = Idle()
        self.preview: Optional[Snapshot] = None
        self.did_pan = False
        self.suppress_click = False
        self._on_state_change: Optional[Callable[[InteractionState], None]] = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return isinstance(self._state, Idle)

    @property
    def drop_target_id(self) -> Optional[str]:
        if isinstance(self._state, Dragging):
            return self._state.drop_target_id
        return None

    @property
    def connection_preview(self) -> Optional[Connecting]:
        if isinstance(self._state, Connecting):
            return self._state
        return None

    def set_on_state_change(self, callback: Callable[[InteractionState], None]):
        self._on_state_change = callback

    def _set_state(self, state: InteractionState) -> None:
        self._state = state
        self._notify_change()

    def _notify_change(self):
        if self._on_state_change:
            self._on_state_change(self._state)

    def _world(self, sx: float, sy: float) -> Tuple[float, float]:
        return self.engine.transform.screen_to_world(sx, sy)

    def _committed(self) -> Snapshot:
        return self.engine.history.present

    # --- Hit testing ---

    def hit_test(self, sx: float, sy: float) -> Hit:
        """
        Resolve the element under a screen point.

        Edge labels sit on the top layer; below them nodes are tested in
        reverse paint order, each node's handles before its body. Ghosts
        from a diff are never hit.
        """
        wx, wy = self._world(sx, sy)
        snapshot = self.engine.snapshot
        node_map = snapshot.node_map()

        for edge in reversed(snapshot.edges):
            source, target = node_map.get(edge.source_id), node_map.get(edge.target_id)
            if source is None or target is None:
                continue
            cx, cy = midpoint(right_center(source), left_center(target))
            label_box = (cx - EDGE_LABEL_WIDTH / 2, cy - EDGE_LABEL_HEIGHT / 2,
                         cx + EDGE_LABEL_WIDTH / 2, cy + EDGE_LABEL_HEIGHT / 2)
            if contains(label_box, wx, wy):
                return Hit(HIT_EDGE_LABEL, edge.id)

        selection = self.engine.selection
        for node in reversed(render_order(snapshot.nodes)):
            is_selected = selection is not None and selection.kind == NODE_KIND and selection.id == node.id
            if is_selected and node.is_container and not node.locked \
                    and distance((wx, wy), bottom_right(node)) <= HANDLE_RADIUS:
                return Hit(HIT_RESIZE_HANDLE, node.id)
            if node.is_connectable and distance((wx, wy), right_center(node)) <= HANDLE_RADIUS:
                return Hit(HIT_CONNECTION_HANDLE, node.id)
            if contains(node.bounds, wx, wy):
                return Hit(HIT_NODE, node.id)

        return Hit(HIT_CANVAS)

    # --- Pointer events ---

    def pointer_down(self, sx: float, sy: float, button: int = PRIMARY_BUTTON) -> None:
        if not self.is_idle:
            # A press while something is still in flight only finishes it
            self.resolve_active()
            self.suppress_click = True
            return

        if button != PRIMARY_BUTTON:
            return

        hit = self.hit_test(sx, sy)
        if hit.kind == HIT_RESIZE_HANDLE:
            self.begin_resize(hit.element_id, sx, sy)
        elif hit.kind == HIT_CONNECTION_HANDLE:
            self.begin_connection(hit.element_id, sx, sy)
        elif hit.kind == HIT_NODE:
            self.press_node(hit.element_id, sx, sy)
        elif hit.kind == HIT_EDGE_LABEL:
            self.engine.select(EDGE_KIND, hit.element_id)
        else:
            self.begin_pan(sx, sy)

    def press_node(self, node_id: str, sx: float, sy: float) -> None:
        """First press selects; a press on the already-selected node starts a drag."""
        if self.engine.is_ghost(node_id):
            return
        selection = self.engine.selection
        if selection is None or selection.kind != NODE_KIND or selection.id != node_id:
            self.engine.select(NODE_KIND, node_id)
            return
        self.begin_drag(node_id, sx, sy)

    def pointer_move(self, sx: float, sy: float) -> None:
        state = self._state
        if isinstance(state, Dragging):
            self._drag_to(state, *self._world(sx, sy))
        elif isinstance(state, Resizing):
            self._resize_to(state, sx, sy)
        elif isinstance(state, Connecting):
            state.x2, state.y2 = self._world(sx, sy)
            self._notify_change()
        elif isinstance(state, Panning):
            new_x, new_y = sx - state.start_x, sy - state.start_y
            self.engine.transform = self.engine.transform.panned_to(new_x, new_y)
            if (new_x, new_y) != state.origin:
                self.did_pan = True
            self._notify_change()

    def pointer_up(self, sx: float, sy: float, button: int = PRIMARY_BUTTON) -> None:
        """
        Global pointer release. Ends whatever interaction is active, wherever
        the pointer is.

        A pan is started by the primary button and only its release ends it;
        releasing another button while the primary is still held keeps panning.
        """
        state = self._state
        if isinstance(state, Dragging):
            state.pointer = self._world(sx, sy)
            self._commit_drop(state)
        elif isinstance(state, Resizing):
            self._commit_resize(state)
        elif isinstance(state, Connecting):
            self._finish_connection(state, *self._world(sx, sy))
        elif isinstance(state, Panning):
            if button == PRIMARY_BUTTON:
                self._set_state(Idle())

    def click(self, sx: float, sy: float) -> None:
        """
        Click after a press/release pair. Only an empty-canvas click that did
        not pan deselects.
        """
        if self.suppress_click:
            self.suppress_click = False
            return
        hit = self.hit_test(sx, sy)
        if hit.kind == HIT_CANVAS:
            if not self.did_pan:
                self.engine.clear_selection()
                self.engine.close_docs()
        elif hit.kind == HIT_NODE:
            if self.engine.open_docs_node_id not in (None, hit.element_id):
                self.engine.close_docs()
        elif hit.kind == HIT_EDGE_LABEL:
            self.engine.close_docs()
        self.did_pan = False

    def wheel(self, sx: float, sy: float, delta_y: float) -> None:
        """Zoom around the cursor."""
        settings = self.engine.settings
        self.engine.transform = zoom_at(
            self.engine.transform, sx, sy, delta_y,
            sensitivity=settings.zoom_sensitivity,
            min_scale=settings.zoom_min,
            max_scale=settings.zoom_max,
        )
        self._notify_change()

    def key_down(self, key: str, ctrl: bool = False, shift: bool = False, meta: bool = False) -> bool:
        """
        Keyboard shortcuts. Returns True if the key was handled.

        Ctrl/Cmd+Z undo, Ctrl/Cmd+Y or Ctrl/Cmd+Shift+Z redo, Escape aborts.
        """
        modifier = ctrl or meta
        lowered = key.lower()
        if modifier and lowered == 'z' and not shift:
            self.engine.undo()
            return True
        if modifier and (lowered == 'y' or (lowered == 'z' and shift)):
            self.engine.redo()
            return True
        if key == 'Escape':
            self.cancel()
            self.engine.close_docs()
            return True
        return False

    # --- Drag ---

    def begin_drag(self, node_id: str, sx: float, sy: float) -> bool:
        self.resolve_active()
        present = self._committed()
        node = present.node(node_id)
        if node is None or node.locked or self.engine.is_ghost(node_id):
            return False
        selection = self.engine.selection
        if selection is None or selection.kind != NODE_KIND or selection.id != node_id:
            return False

        wx, wy = self._world(sx, sy)
        origins = {d.id: (d.x, d.y) for d in get_descendants(node_id, present.nodes)}
        self.preview = present
        self._set_state(Dragging(
            node_id=node_id,
            offset_x=wx - node.x,
            offset_y=wy - node.y,
            initial_x=node.x,
            initial_y=node.y,
            descendant_origins=origins,
            pointer=(wx, wy),
        ))
        logger.debug(f"Drag started on {node_id} with {len(origins)} descendants")
        return True

    def _drag_to(self, state: Dragging, wx: float, wy: float) -> None:
        new_x, new_y = wx - state.offset_x, wy - state.offset_y
        dx, dy = new_x - state.initial_x, new_y - state.initial_y

        base = self._committed()
        nodes = []
        for n in base.nodes:
            if n.id == state.node_id:
                n = n.moved_to(new_x, new_y)
            elif n.id in state.descendant_origins:
                ox, oy = state.descendant_origins[n.id]
                n = n.moved_to(ox + dx, oy + dy)
            nodes.append(n)
        self.preview = base.with_nodes(nodes)
        state.pointer = (wx, wy)

        dragged = self.preview.node(state.node_id)
        if dragged is None or dragged.is_container:
            state.drop_target_id = None
        else:
            target = find_drop_target(wx, wy, state.node_id, self.preview.nodes)
            state.drop_target_id = target.id if target else None
        self._notify_change()

    def _commit_drop(self, state: Dragging) -> None:
        preview = self.preview or self._committed()
        self.preview = None
        self._set_state(Idle())

        node = preview.node(state.node_id)
        if node is None:
            return
        px, py = state.pointer
        positions = {n.id: (n.x, n.y) for n in preview.nodes
                     if n.id == state.node_id or n.id in state.descendant_origins}

        reparent = None
        if state.drop_target_id and not node.is_container:
            reparent = (node.id, state.drop_target_id)
        elif node.parent_id:
            parent = resolve_parent(node, preview.node_map())
            if parent is not None and outside(parent.bounds, px, py):
                reparent = (node.id, None)

        self.engine.actions.move_nodes(positions, reparent)

    # --- Resize ---

    def begin_resize(self, node_id: str, sx: float, sy: float) -> bool:
        self.resolve_active()
        node = self._committed().node(node_id)
        if node is None or not node.is_container or node.locked or self.engine.is_ghost(node_id):
            return False
        scale = self.engine.transform.scale
        self.preview = self._committed()
        self._set_state(Resizing(
            node_id=node_id,
            initial_width=node.width,
            initial_height=node.height,
            initial_pointer_x=sx / scale,
            initial_pointer_y=sy / scale,
        ))
        return True

    def _resize_to(self, state: Resizing, sx: float, sy: float) -> None:
        scale = self.engine.transform.scale
        dx = sx / scale - state.initial_pointer_x
        dy = sy / scale - state.initial_pointer_y
        width = max(CONTAINER_MIN_WIDTH, state.initial_width + dx)
        height = max(CONTAINER_MIN_HEIGHT, state.initial_height + dy)
        self.preview = self._committed().replace_node(state.node_id, width=width, height=height)
        self._notify_change()

    def _commit_resize(self, state: Resizing) -> None:
        preview = self.preview
        self.preview = None
        self._set_state(Idle())
        node = preview.node(state.node_id) if preview is not None else None
        if node is not None:
            self.engine.actions.resize_node(node.id, node.width, node.height)

    # --- Connection ---

    def begin_connection(self, node_id: str, sx: float, sy: float) -> bool:
        self.resolve_active()
        node = self._committed().node(node_id)
        if node is None or not node.is_connectable or self.engine.is_ghost(node_id):
            return False
        x1, y1 = right_center(node)
        x2, y2 = self._world(sx, sy)
        self._set_state(Connecting(source_id=node_id, x1=x1, y1=y1, x2=x2, y2=y2))
        return True

    def _finish_connection(self, state: Connecting, wx: float, wy: float) -> Optional[str]:
        self._set_state(Idle())
        target = node_at(wx, wy, self.engine.snapshot.nodes)
        if target is None or target.id == state.source_id or not target.is_connectable:
            return None
        return self.engine.actions.create_edge(state.source_id, target.id)

    # --- Pan ---

    def begin_pan(self, sx: float, sy: float) -> None:
        self.resolve_active()
        t = self.engine.transform
        self.did_pan = False
        self._set_state(Panning(start_x=sx - t.x, start_y=sy - t.y, origin=(t.x, t.y)))

    # --- Resolution ---

    def resolve_active(self) -> None:
        """Finish the active interaction the way a conflicting new one requires."""
        state = self._state
        if isinstance(state, Dragging):
            self._commit_drop(state)
        elif isinstance(state, Resizing):
            self._commit_resize(state)
        elif isinstance(state, (Connecting, Panning)):
            self._set_state(Idle())

    def cancel(self) -> None:
        """
        Abort the active interaction. Drag and resize previews are discarded,
        which puts every node back at its frozen start position; no history
        entry is recorded.
        """
        if isinstance(self._state, Idle):
            return
        if isinstance(self._state, Dragging):
            logger.debug(f"Drag of {self._state.node_id} aborted")
        self.preview = None
        self._set_state(Idle())
