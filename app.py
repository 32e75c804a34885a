"""
Main NiceGUI application for FlowCanvas.

Wires a CanvasEngine to an SVG canvas (ui.interactive_image), a toolbar, a
version history panel and a properties panel. All editing logic lives in
flowcanvas/; this file only lays out the page and forwards events.
"""

import logging
import sys

from nicegui import ui

from flowcanvas.config import load_settings, set_setting
from flowcanvas.edit.handlers import CANVAS_CLASS, setup_canvas_handlers
from flowcanvas.engine import CanvasEngine, build_demo_snapshot
from flowcanvas.models import EDGE_TYPES, NODE_KIND, NODE_TYPES
from flowcanvas.view import build_canvas_view, to_svg

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

CANVAS_SIZE = (1600, 1000)

TOOLBAR_TYPES = ['page', 'ui', 'action', 'logic', 'entity', 'external', 'note']


@ui.page('/')
def main_page():
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')

    engine = CanvasEngine(build_demo_snapshot() if settings.seed_demo else None, settings=settings)
    state = {'history_open': False, 'canvas': None}

    def refresh_canvas():
        if state['canvas'] is not None:
            state['canvas'].content = to_svg(build_canvas_view(engine))

    def refresh_panels():
        toolbar.refresh()
        properties_panel.refresh()
        history_panel.refresh()

    def refresh_all():
        refresh_canvas()
        refresh_panels()

    # --- Toolbar ---

    def add_node(node_type: str):
        center = engine.viewport_center(*CANVAS_SIZE)
        engine.actions.add_node(node_type, center)
        refresh_all()

    def run_and_refresh(fn, *args):
        fn(*args)
        refresh_all()

    @ui.refreshable
    def toolbar():
        with ui.row().classes('items-center gap-2 p-2 bg-white shadow rounded'):
            for node_type in TOOLBAR_TYPES:
                ui.button(node_type.title(), on_click=lambda t=node_type: add_node(t)).props('dense flat')
            ui.separator().props('vertical')
            ui.button(icon='undo', on_click=lambda: run_and_refresh(engine.undo)) \
                .props('dense flat').set_enabled(engine.can_undo)
            ui.button(icon='redo', on_click=lambda: run_and_refresh(engine.redo)) \
                .props('dense flat').set_enabled(engine.can_redo)
            ui.separator().props('vertical')
            ui.button('Export', icon='download', on_click=handlers['handle_export']).props('dense flat')
            ui.upload(label='Import', on_upload=handlers['handle_upload'], auto_upload=True) \
                .props('accept=.json flat dense').classes('w-48')
            ui.button('History', icon='history', on_click=toggle_history).props('dense flat')
            ui.button(icon='settings', on_click=show_settings_dialog).props('dense flat')
            if engine.diff_reference is not None:
                ui.toggle(['off', 'simple', 'detailed'], value=engine.diff_mode,
                          on_change=lambda e: set_diff_mode(e.value))

    def show_settings_dialog():
        """Edit the export file name and demo seeding; saved to config.json."""
        with ui.dialog() as dialog, ui.card().classes('w-96'):
            ui.label('Settings').classes('text-lg font-bold')
            filename_input = ui.input('Export file name', value=engine.settings.export_filename).classes('w-full')
            seed_switch = ui.switch('Start with demo diagram', value=engine.settings.seed_demo)

            def save():
                filename = (filename_input.value or '').strip()
                if not filename.endswith('.json'):
                    ui.notify('Export file name must end in .json', type='warning', position='bottom')
                    return
                set_setting('export_filename', filename)
                set_setting('seed_demo', bool(seed_switch.value))
                engine.settings.export_filename = filename
                engine.settings.seed_demo = bool(seed_switch.value)
                ui.notify('Settings saved', type='positive', position='bottom', timeout=1000)
                dialog.close()

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Save', on_click=save)
        dialog.open()

    def toggle_history():
        state['history_open'] = not state['history_open']
        history_panel.refresh()

    def set_diff_mode(mode: str):
        engine.set_diff_mode(mode)
        refresh_all()

    # --- Version history panel ---

    @ui.refreshable
    def history_panel():
        if not state['history_open']:
            return
        with ui.card().classes('w-80 h-full'):
            ui.label('Version History').classes('text-lg font-bold')
            name_input = ui.input('Save Current Version As')

            def save():
                name = (name_input.value or '').strip()
                if not name:
                    return
                engine.save_version(name)
                ui.notify(f"Saved '{name}'", type='positive', position='bottom', timeout=1000)
                refresh_all()

            name_input.on('keydown.enter', save)
            ui.button('Save', on_click=save).props('dense')

            for version in engine.versions.newest_first():
                is_active = version.id == engine.active_version_id
                is_diffing = engine.diff_reference is not None and engine.diff_reference.id == version.id
                with ui.row().classes('items-center w-full gap-1'):
                    ui.label(version.name).classes('font-bold' if is_active else '')
                    ui.label(version.timestamp[:19].replace('T', ' ')).classes('text-xs text-gray-500')
                    ui.button('Load', on_click=lambda v=version.id: run_and_refresh(engine.load_version, v)) \
                        .props('dense flat')
                    if is_diffing:
                        ui.button('Stop', on_click=lambda: run_and_refresh(engine.clear_diff)).props('dense flat')
                    else:
                        ui.button('Diff', on_click=lambda v=version.id: run_and_refresh(engine.start_diff, v)) \
                            .props('dense flat')
                    ui.button(icon='delete',
                              on_click=lambda v=version.id: run_and_refresh(engine.delete_version, v)) \
                        .props('dense flat color=negative')

    # --- Properties panel ---

    @ui.refreshable
    def properties_panel():
        element = engine.selected_element()
        if element is None:
            return
        selection = engine.selection
        with ui.card().classes('w-80 h-full overflow-auto'):
            ui.label(f'{selection.kind.title()} Properties').classes('text-lg font-bold')

            def field(label: str, key: str, value: str, multiline: bool = False):
                widget = ui.textarea(label, value=value) if multiline else ui.input(label, value=value)
                widget.classes('w-full')
                if selection.kind == NODE_KIND:
                    widget.on('blur', lambda: _commit_node(element.id, key, widget.value))
                else:
                    widget.on('blur', lambda: _commit_edge(element.id, key, widget.value))

            if selection.kind == NODE_KIND:
                field('Title', 'title', element.title)
                field('Description', 'description', element.description, multiline=True)
                ui.select(sorted(NODE_TYPES), value=element.type, label='Type',
                          on_change=lambda e: _commit_node(element.id, 'type', e.value))
                ui.button('Unlock' if element.locked else 'Lock',
                          icon='lock' if element.locked else 'lock_open',
                          on_click=lambda: run_and_refresh(engine.actions.toggle_lock, element.id)).props('dense flat')
                if element.is_container:
                    docs_open = engine.open_docs_node_id == element.id
                    ui.button('Hide docs' if docs_open else 'Docs', icon='description',
                              on_click=lambda: run_and_refresh(engine.toggle_docs, element.id)).props('dense flat')
                    if docs_open:
                        docs = ui.textarea('Docs', value=element.docs or '').classes('w-full')
                        docs.on('blur', lambda: run_and_refresh(engine.update_docs, element.id, docs.value))
                if element.type == 'entity':
                    ui.label('Attributes').classes('font-bold')
                    for var in element.variables:
                        with ui.row().classes('items-center gap-1'):
                            key_input = ui.input(value=var.key).classes('w-24')
                            value_input = ui.input(value=var.value).classes('w-32')
                            key_input.on('blur', lambda v=var, w=key_input: _update_var(element.id, v.id, key=w.value))
                            value_input.on('blur',
                                           lambda v=var, w=value_input: _update_var(element.id, v.id, value=w.value))
                            ui.button(icon='close',
                                      on_click=lambda v=var: run_and_refresh(
                                          engine.actions.remove_variable, element.id, v.id)).props('dense flat')
                    ui.button('Add attribute',
                              on_click=lambda: run_and_refresh(engine.actions.add_variable, element.id)) \
                        .props('dense flat')
            else:
                field('Label', 'label', element.label)
                field('Condition', 'condition', element.condition)
                ui.select(sorted(EDGE_TYPES), value=element.type, label='Type',
                          on_change=lambda e: _commit_edge(element.id, 'type', e.value))

            ui.button('Delete', icon='delete', on_click=lambda: run_and_refresh(
                engine.actions.delete_element, element.id, selection.kind)).props('color=negative')

    def _commit_node(node_id: str, key: str, value):
        if not engine.actions.update_node(node_id, **{key: value}):
            ui.notify(f'Cannot set {key}', type='warning', position='bottom')
        refresh_all()

    def _commit_edge(edge_id: str, key: str, value):
        if not engine.actions.update_edge(edge_id, **{key: value}):
            ui.notify(f'Cannot set {key}', type='warning', position='bottom')
        refresh_all()

    def _update_var(node_id: str, variable_id: str, **changes):
        engine.actions.update_variable(node_id, variable_id, **changes)
        refresh_all()

    # --- Event handlers (extracted to flowcanvas/edit/handlers.py) ---

    handlers = setup_canvas_handlers(
        engine=engine,
        refresh_canvas=refresh_canvas,
        refresh_panels=refresh_panels,
    )
    ui.keyboard(on_key=handlers['handle_keyboard'])

    # --- Layout Construction ---

    with ui.row().classes('w-screen h-screen no-wrap gap-0'):
        history_panel()
        with ui.column().classes('grow h-full relative overflow-hidden bg-slate-100'):
            toolbar()
            state['canvas'] = ui.interactive_image(
                size=CANVAS_SIZE,
                on_mouse=handlers['handle_mouse'],
                events=['mousedown', 'mousemove', 'click'],
                cross=False,
            ).classes(CANVAS_CLASS).style(f'width: {CANVAS_SIZE[0]}px; height: {CANVAS_SIZE[1]}px;')
        properties_panel()

    refresh_canvas()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='FlowCanvas',
        port=settings.port,
        reload=not getattr(sys, 'frozen', False),
    )
