"""
Canvas engine for FlowCanvas.

Owns everything the editor needs for one open diagram:

- history: undo/redo over snapshots (the only path that changes the diagram)
- versions: saved named snapshots and the "matches a saved version" marker
- selection, docs panel target and the viewport transform
- diff reference and display mode
- actions (mutation API) and controller (pointer interaction state machine)

Derived data (the live snapshot during a drag, the diff against the
reference version) is recomputed on every read rather than stored.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

from flowcanvas.bundle import ImportedBundle, dumps_bundle, parse_bundle, read_bundle, write_bundle
from flowcanvas.config import CanvasSettings
from flowcanvas.diff import DIFF_MODES, DiffResult, diff_snapshots
from flowcanvas.edit.actions import CanvasActions
from flowcanvas.edit.controller import InteractionController
from flowcanvas.geometry import Transform
from flowcanvas.history import HistoryStore, Updater
from flowcanvas.models import EDGE_KIND, NODE_KIND, Edge, Node, Selection, Snapshot, StateVariable, Version
from flowcanvas.versions import VersionStore

logger = logging.getLogger(__name__)


class CanvasEngine:
    def __init__(self, initial: Optional[Snapshot] = None, settings: Optional[CanvasSettings] = None):
        self.settings = settings or CanvasSettings()
        self.history = HistoryStore(initial)
        self.versions = VersionStore()
        self.active_version_id: Optional[str] = None
        self.selection: Optional[Selection] = None
        self.open_docs_node_id: Optional[str] = None
        self.transform = Transform()
        self.diff_reference: Optional[Version] = None
        self.diff_mode = 'off'
        self.actions = CanvasActions(self)
        self.controller = InteractionController(self)

    # --- Snapshot access ---

    @property
    def snapshot(self) -> Snapshot:
        """The live snapshot: the in-flight drag/resize preview if any, else the committed one."""
        if self.controller.preview is not None:
            return self.controller.preview
        return self.history.present

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def commit(self, updater: Updater) -> bool:
        """
        Route a mutation through the history store.

        A recorded change means the diagram no longer matches the loaded
        version, so the active-version marker is cleared.
        """
        changed = self.history.commit(updater)
        if changed:
            self.active_version_id = None
        return changed

    def undo(self) -> bool:
        self.controller.cancel()
        moved = self.history.undo()
        if moved:
            self.active_version_id = None
            self._drop_stale_selection()
        return moved

    def redo(self) -> bool:
        self.controller.cancel()
        moved = self.history.redo()
        if moved:
            self.active_version_id = None
            self._drop_stale_selection()
        return moved

    def _reset(self, snapshot: Snapshot) -> None:
        self.controller.cancel()
        self.history.reset(snapshot)
        self.selection = None
        self.open_docs_node_id = None
        self.diff_reference = None

    # --- Selection ---

    def select(self, kind: str, element_id: str) -> bool:
        """Select a node or edge of the committed snapshot. Ghosts cannot be selected."""
        present = self.history.present
        if kind == NODE_KIND:
            found = present.node(element_id) is not None
        elif kind == EDGE_KIND:
            found = present.edge(element_id) is not None
        else:
            raise ValueError(f"Unknown element kind: {kind!r}")
        if not found:
            return False
        self.selection = Selection(kind=kind, id=element_id)
        return True

    def clear_selection(self) -> None:
        self.selection = None

    def selected_element(self) -> Optional[Any]:
        """The selected Node or Edge record, for the properties panel."""
        if self.selection is None:
            return None
        if self.selection.kind == NODE_KIND:
            return self.snapshot.node(self.selection.id)
        return self.snapshot.edge(self.selection.id)

    def forget_elements(self, node_ids: Iterable[str], edge_ids: Iterable[str]) -> None:
        """Drop selection/docs references to elements that were just deleted."""
        node_ids, edge_ids = set(node_ids), set(edge_ids)
        sel = self.selection
        if sel is not None and ((sel.kind == NODE_KIND and sel.id in node_ids)
                                or (sel.kind == EDGE_KIND and sel.id in edge_ids)):
            self.selection = None
        if self.open_docs_node_id in node_ids:
            self.open_docs_node_id = None

    def _drop_stale_selection(self) -> None:
        present = self.history.present
        sel = self.selection
        if sel is not None:
            exists = present.node(sel.id) if sel.kind == NODE_KIND else present.edge(sel.id)
            if exists is None:
                self.selection = None
        if self.open_docs_node_id and present.node(self.open_docs_node_id) is None:
            self.open_docs_node_id = None

    # --- Docs panel ---

    def toggle_docs(self, node_id: str) -> bool:
        """Open the docs panel of a page node, or close it if already open."""
        node = self.history.present.node(node_id)
        if node is None or not node.is_container:
            return False
        if self.open_docs_node_id == node_id:
            self.open_docs_node_id = None
        else:
            self.select(NODE_KIND, node_id)
            self.open_docs_node_id = node_id
        return True

    def close_docs(self) -> None:
        self.open_docs_node_id = None

    def update_docs(self, node_id: str, docs: str) -> bool:
        return self.actions.update_node(node_id, docs=docs)

    # --- Viewport ---

    def viewport_center(self, width: float, height: float) -> Tuple[float, float]:
        """World coordinates of the centre of a viewport of the given screen size."""
        return self.transform.screen_to_world(width / 2, height / 2)

    # --- Versions ---

    def save_version(self, name: str) -> Version:
        self.controller.resolve_active()
        version = self.versions.save(name, self.history.present)
        self.active_version_id = version.id
        return version

    def load_version(self, version_id: str) -> bool:
        version = self.versions.get(version_id)
        if version is None:
            return False
        self._reset(version.snapshot)
        self.active_version_id = version.id
        self.diff_mode = 'off'
        logger.info(f"Loaded version '{version.name}'")
        return True

    def delete_version(self, version_id: str) -> bool:
        if not self.versions.delete(version_id):
            return False
        if self.active_version_id == version_id:
            self.active_version_id = None
        if self.diff_reference is not None and self.diff_reference.id == version_id:
            self.clear_diff()
        return True

    # --- Diff ---

    def start_diff(self, version_id: str) -> bool:
        version = self.versions.get(version_id)
        if version is None:
            return False
        self.diff_reference = version
        self.diff_mode = 'simple'
        return True

    def set_diff_mode(self, mode: str) -> None:
        """Switch between off/simple/detailed. Never touches the snapshot."""
        if mode not in DIFF_MODES:
            raise ValueError(f"Unknown diff mode: {mode!r}")
        if mode == 'off':
            self.clear_diff()
        else:
            self.diff_mode = mode

    def clear_diff(self) -> None:
        self.diff_reference = None
        self.diff_mode = 'off'

    @property
    def diff_result(self) -> Optional[DiffResult]:
        if self.diff_reference is None:
            return None
        return diff_snapshots(self.diff_reference.snapshot, self.snapshot)

    def is_ghost(self, node_id: str) -> bool:
        diff = self.diff_result
        return diff is not None and diff.is_ghost_node(node_id)

    # --- Import / export ---

    def export_text(self) -> str:
        return dumps_bundle(self.history.present, self.versions.all())

    def export_to_file(self, path: Path) -> Path:
        return write_bundle(path, self.history.present, self.versions.all())

    def import_text(self, text: str) -> ImportedBundle:
        """
        Replace the diagram with an imported file.

        Raises:
            BundleError: the file is malformed; no state was changed
        """
        bundle = parse_bundle(text)
        self._apply_import(bundle)
        return bundle

    def import_file(self, path: Path) -> ImportedBundle:
        bundle = read_bundle(path)
        self._apply_import(bundle)
        return bundle

    def _apply_import(self, bundle: ImportedBundle) -> None:
        if bundle.is_full_bundle:
            self.versions.replace_all(bundle.versions)
            latest = self.versions.latest()
            if latest is not None:
                self._reset(latest.snapshot)
                self.active_version_id = latest.id
            else:
                self._reset(Snapshot())
                self.active_version_id = None
        else:
            self._reset(bundle.snapshot)
            self.versions.replace_all([])
            self.active_version_id = None
        self.diff_mode = 'off'
        logger.info(f"Imported {len(self.history.present.nodes)} nodes, {len(self.versions)} versions")


def build_demo_snapshot() -> Snapshot:
    """Two pages with a login form flowing into a dashboard."""
    nodes = [
        Node(id='page1', type='page', x=50, y=50, width=600, height=400, title='Onboarding',
             docs='This page handles the entire user onboarding flow, including login and registration.'),
        Node(id='page2', type='page', x=700, y=50, width=600, height=400, title='Main Application', docs=''),
        Node(id='node3', type='ui', parent_id='page1', x=100, y=150, width=250, height=140,
             title='Login Modal', description='Pops up on the start page.'),
        Node(id='node4', type='entity', parent_id='page1', x=380, y=150, width=250, height=140,
             title='Credentials', description='Form state.',
             variables=(StateVariable(id='v1', key='email', value='""'),
                        StateVariable(id='v2', key='password', value='""'))),
        Node(id='node2', type='action', parent_id='page2', x=750, y=150, width=250, height=120,
             title='Dashboard', description='User is logged in.'),
    ]
    edges = [
        Edge(id='edge1', source_id='node3', target_id='node2', label='Successful Login',
             condition='email != "" && password != ""'),
    ]
    return Snapshot.of(nodes, edges)
