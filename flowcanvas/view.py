"""
Canvas view builder: turns engine state into render-ready records and an SVG
document for the NiceGUI canvas.

Nothing here is stored; the view is rebuilt from the engine on every refresh.

Node records (list of dicts, in paint order, ghosts last):
  {
    "id", "type", "x", "y", "width", "height", "title", "description",
    "variables": [{"key", "value"}], "locked",
    "selected", "is_parent", "is_drop_target",
    "diff_status", "treatment", "ghost", "opacity",
    "show_connection_handle", "show_resize_handle", "show_docs_button",
    "stroke"
  }

Edge records:
  {"id", "label", "condition", "type", "x1", "y1", "x2", "y2",
   "selected", "diff_status", "treatment", "ghost", "opacity", "stroke"}

Only edges whose endpoints are both rendered (live nodes plus ghosts) are
included.
"""

from html import escape
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from flowcanvas.diff import UNCHANGED, diff_treatment
from flowcanvas.edit.constants import EDGE_LABEL_HEIGHT, EDGE_LABEL_WIDTH, HANDLE_RADIUS
from flowcanvas.geometry import left_center, midpoint, right_center
from flowcanvas.hierarchy import parent_ids, render_order
from flowcanvas.models import EDGE_KIND, NODE_KIND

if TYPE_CHECKING:
    from flowcanvas.engine import CanvasEngine

GHOST_OPACITY = 0.4

DEFAULT_STROKE = '#64748b'
SELECTED_STROKE = '#3b82f6'
DROP_TARGET_STROKE = '#22c55e'
TREATMENT_STROKES = {
    'highlight': '#3b82f6',
    'added': '#22c55e',
    'modified': '#f59e0b',
    'deleted': '#ef4444',
}

NODE_FILLS = {
    'page': '#f8fafc',
    'action': '#fefce8',
    'logic': '#ecfeff',
    'entity': '#f0fdf4',
    'ui': '#faf5ff',
    'external': '#fff7ed',
    'note': '#f3f4f6',
}


def stroke_for(treatment: Optional[str], selected: bool) -> str:
    if selected:
        return SELECTED_STROKE
    return TREATMENT_STROKES.get(treatment, DEFAULT_STROKE)


def build_canvas_view(engine: "CanvasEngine") -> Dict[str, Any]:
    """
    Build the render-ready view of the engine's live snapshot.
    """
    snapshot = engine.snapshot
    diff = engine.diff_result
    mode = engine.diff_mode if diff is not None else 'off'
    selection = engine.selection
    drop_target_id = engine.controller.drop_target_id
    parents = parent_ids(snapshot.nodes)

    def is_selected(kind: str, element_id: str) -> bool:
        return selection is not None and selection.kind == kind and selection.id == element_id

    rendered_nodes = render_order(snapshot.nodes) + list(diff.ghost_nodes if diff else ())
    node_positions = {}
    nodes: List[Dict[str, Any]] = []
    for n in rendered_nodes:
        status = diff.node_state(n.id) if diff else UNCHANGED
        ghost = diff is not None and diff.is_ghost_node(n.id)
        selected = not ghost and is_selected(NODE_KIND, n.id)
        treatment = diff_treatment(status, mode) if diff else None
        is_drop_target = n.id == drop_target_id
        node_positions[n.id] = n
        nodes.append({
            "id": n.id,
            "type": n.type,
            "x": n.x,
            "y": n.y,
            "width": n.width,
            "height": n.height,
            "title": n.title,
            "description": n.description,
            "variables": [{"key": v.key, "value": v.value} for v in n.variables],
            "locked": n.locked,
            "selected": selected,
            "is_parent": n.id in parents,
            "is_drop_target": is_drop_target,
            "diff_status": status,
            "treatment": treatment,
            "ghost": ghost,
            "opacity": GHOST_OPACITY if ghost else 1.0,
            "show_connection_handle": n.is_connectable and not ghost,
            "show_resize_handle": n.is_container and selected and not n.locked and not ghost,
            "show_docs_button": n.is_container and not ghost,
            "stroke": DROP_TARGET_STROKE if is_drop_target else stroke_for(treatment, selected),
        })

    rendered_edges = list(snapshot.edges) + list(diff.ghost_edges if diff else ())
    edges: List[Dict[str, Any]] = []
    for e in rendered_edges:
        source = node_positions.get(e.source_id)
        target = node_positions.get(e.target_id)
        if source is None or target is None:
            continue
        status = diff.edge_state(e.id) if diff else UNCHANGED
        ghost = diff is not None and diff.is_ghost_edge(e.id)
        selected = not ghost and is_selected(EDGE_KIND, e.id)
        treatment = diff_treatment(status, mode) if diff else None
        x1, y1 = right_center(source)
        x2, y2 = left_center(target)
        edges.append({
            "id": e.id,
            "label": e.label,
            "condition": e.condition,
            "type": e.type,
            "x1": x1, "y1": y1, "x2": x2, "y2": y2,
            "selected": selected,
            "diff_status": status,
            "treatment": treatment,
            "ghost": ghost,
            "opacity": GHOST_OPACITY if ghost else 1.0,
            "stroke": stroke_for(treatment, selected),
        })

    connection = engine.controller.connection_preview
    preview = None
    if connection is not None:
        preview = {"x1": connection.x1, "y1": connection.y1, "x2": connection.x2, "y2": connection.y2}

    t = engine.transform
    return {
        "nodes": nodes,
        "edges": edges,
        "connection_preview": preview,
        "transform": {"scale": t.scale, "x": t.x, "y": t.y},
        "diff_mode": mode,
    }


def to_svg(view: Dict[str, Any]) -> str:
    """
    Render a canvas view as SVG markup (used as interactive_image content).
    """
    t = view["transform"]
    parts = [
        '<defs><marker id="arrow" markerWidth="7" markerHeight="5" refX="6" refY="2.5" orient="auto">'
        '<polygon points="0 0, 7 2.5, 0 5" fill="context-stroke"/></marker></defs>',
        f'<g transform="translate({t["x"]} {t["y"]}) scale({t["scale"]})">',
    ]

    for n in view["nodes"]:
        dash = ' stroke-dasharray="6,4"' if n["ghost"] else ''
        width = 3 if (n["selected"] or n["treatment"] or n["is_drop_target"]) else 1
        parts.append(
            f'<g opacity="{n["opacity"]}">'
            f'<rect x="{n["x"]}" y="{n["y"]}" width="{n["width"]}" height="{n["height"]}" rx="8" '
            f'fill="{NODE_FILLS.get(n["type"], "#ffffff")}" stroke="{n["stroke"]}" stroke-width="{width}"{dash}/>'
            f'<text x="{n["x"] + 12}" y="{n["y"] + 24}" font-size="14" font-weight="bold" fill="#1e293b">'
            f'{escape(n["title"])}</text>'
        )
        for i, var in enumerate(n["variables"]):
            parts.append(
                f'<text x="{n["x"] + 12}" y="{n["y"] + 48 + i * 16}" font-size="11" font-family="monospace" '
                f'fill="#334155">{escape(var["key"])}: {escape(var["value"])}</text>'
            )
        if n["show_connection_handle"]:
            parts.append(
                f'<circle cx="{n["x"] + n["width"]}" cy="{n["y"] + n["height"] / 2}" r="{HANDLE_RADIUS}" '
                f'fill="#3b82f6" stroke="#ffffff" stroke-width="2"/>'
            )
        if n["show_resize_handle"]:
            parts.append(
                f'<circle cx="{n["x"] + n["width"]}" cy="{n["y"] + n["height"]}" r="{HANDLE_RADIUS}" '
                f'fill="#3b82f6" stroke="#ffffff" stroke-width="2"/>'
            )
        parts.append('</g>')

    for e in view["edges"]:
        mx, my = midpoint((e["x1"], e["y1"]), (e["x2"], e["y2"]))
        parts.append(
            f'<g opacity="{e["opacity"]}">'
            f'<path d="M {e["x1"]} {e["y1"]} L {e["x2"]} {e["y2"]}" stroke="{e["stroke"]}" '
            f'stroke-width="2" fill="none" marker-end="url(#arrow)"/>'
            f'<rect x="{mx - EDGE_LABEL_WIDTH / 2}" y="{my - EDGE_LABEL_HEIGHT / 4}" width="{EDGE_LABEL_WIDTH}" '
            f'height="{EDGE_LABEL_HEIGHT / 2}" rx="6" fill="#ffffff" stroke="{e["stroke"]}"/>'
            f'<text x="{mx}" y="{my + 4}" font-size="12" text-anchor="middle" fill="#334155">'
            f'{escape(e["label"])}</text>'
        )
        if e["condition"]:
            parts.append(
                f'<text x="{mx}" y="{my + 22}" font-size="10" font-family="monospace" text-anchor="middle" '
                f'fill="#4338ca">{escape(e["condition"])}</text>'
            )
        parts.append('</g>')

    preview = view["connection_preview"]
    if preview is not None:
        parts.append(
            f'<path d="M {preview["x1"]} {preview["y1"]} L {preview["x2"]} {preview["y2"]}" '
            f'stroke="{SELECTED_STROKE}" stroke-width="2" stroke-dasharray="5,5" fill="none" '
            f'marker-end="url(#arrow)"/>'
        )

    parts.append('</g>')
    return ''.join(parts)
