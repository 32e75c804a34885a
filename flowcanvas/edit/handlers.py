"""
Canvas Handlers - event handlers for the FlowCanvas editor in app.py

This module extracts all the canvas event handling from app.py
to keep the main application file focused on layout.

Pointer release and wheel events are captured on the document (see
GLOBAL_LISTENERS_JS) so an interaction always ends, even when the pointer is
released outside the canvas element.
"""

import logging
from typing import Any, Callable

from nicegui import ui

from flowcanvas.bundle import BundleError
from flowcanvas.edit.constants import PRIMARY_BUTTON
from flowcanvas.paths import ensure_exports_dir

logger = logging.getLogger(__name__)

CANVAS_CLASS = 'flow-canvas'

GLOBAL_LISTENERS_JS = f'''
<script>
(function() {{
    function canvasPoint(e) {{
        const el = document.querySelector('.{CANVAS_CLASS}');
        if (!el) return null;
        const rect = el.getBoundingClientRect();
        return {{x: e.clientX - rect.left, y: e.clientY - rect.top}};
    }}
    document.addEventListener('mouseup', function(e) {{
        const p = canvasPoint(e);
        if (!p) return;
        emitEvent('canvas_pointer_up', {{x: p.x, y: p.y, button: e.button}});
    }});
    document.addEventListener('wheel', function(e) {{
        if (!e.target.closest || !e.target.closest('.{CANVAS_CLASS}')) return;
        e.preventDefault();
        const p = canvasPoint(e);
        emitEvent('canvas_wheel', {{x: p.x, y: p.y, deltaY: e.deltaY}});
    }}, {{passive: false}});
}})();
</script>
'''


def _read_point(args: Any):
    if isinstance(args, dict):
        return float(args.get('x', 0)), float(args.get('y', 0))
    if isinstance(args, (list, tuple)) and len(args) >= 2:
        return float(args[0]), float(args[1])
    return None


def setup_canvas_handlers(
    engine,
    refresh_canvas: Callable[[], None],
    refresh_panels: Callable[[], None],
):
    """
    Set up all canvas event handlers.

    Args:
        engine: CanvasEngine instance
        refresh_canvas: Redraws the SVG canvas from the engine view
        refresh_panels: Rebuilds properties/version panels

    Returns:
        Dict with handler functions for binding to UI events
    """
    controller = engine.controller

    def handle_mouse(e):
        """interactive_image mouse events: mousedown, mousemove, click."""
        x, y = e.image_x, e.image_y
        if e.type == 'mousedown':
            before = (engine.selection, len(engine.history.past))
            controller.pointer_down(x, y, getattr(e, 'button', PRIMARY_BUTTON))
            refresh_canvas()
            if (engine.selection, len(engine.history.past)) != before:
                refresh_panels()
        elif e.type == 'mousemove':
            if not controller.is_idle:
                controller.pointer_move(x, y)
                refresh_canvas()
        elif e.type == 'click':
            selection_before = engine.selection
            controller.click(x, y)
            if engine.selection != selection_before:
                refresh_canvas()
                refresh_panels()

    def handle_global_pointer_up(e):
        """Document-level mouseup: terminates any active interaction."""
        if controller.is_idle:
            return
        point = _read_point(e.args)
        if point is None:
            controller.cancel()
        else:
            button = e.args.get('button', PRIMARY_BUTTON) if isinstance(e.args, dict) else PRIMARY_BUTTON
            controller.pointer_up(point[0], point[1], button)
        refresh_canvas()
        refresh_panels()

    def handle_wheel(e):
        point = _read_point(e.args)
        if point is None:
            return
        controller.wheel(point[0], point[1], float(e.args.get('deltaY', 0)))
        refresh_canvas()

    def handle_keyboard(e):
        """Undo/redo shortcuts and Escape."""
        if not e.action.keydown:
            return
        handled = controller.key_down(
            e.key.name,
            ctrl=e.modifiers.ctrl,
            shift=e.modifiers.shift,
            meta=e.modifiers.meta,
        )
        if handled:
            refresh_canvas()
            refresh_panels()

    def handle_upload(e):
        """Import a JSON bundle. A bad file leaves the editor untouched."""
        try:
            text = e.content.read().decode('utf-8')
            engine.import_text(text)
        except UnicodeDecodeError:
            ui.notify('Error reading or parsing file.', type='negative', position='bottom')
            return
        except BundleError as err:
            logger.warning(f"Import rejected: {err}")
            ui.notify(str(err), type='negative', position='bottom')
            return
        ui.notify('File imported', type='positive', position='bottom', timeout=1000)
        refresh_canvas()
        refresh_panels()

    def handle_export():
        """Keep a copy under exports/ and send the bundle to the browser."""
        filename = engine.settings.export_filename
        path = engine.export_to_file(ensure_exports_dir() / filename)
        ui.download(path.read_bytes(), filename)

    ui.add_body_html(GLOBAL_LISTENERS_JS)
    ui.on('canvas_pointer_up', handle_global_pointer_up)
    ui.on('canvas_wheel', handle_wheel)

    return {
        'handle_mouse': handle_mouse,
        'handle_keyboard': handle_keyboard,
        'handle_upload': handle_upload,
        'handle_export': handle_export,
    }
