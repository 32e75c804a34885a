"""
Canvas editing system for FlowCanvas.

This package provides the pointer-driven editing layer:
- InteractionController: interaction state machine and hit detection
- CanvasActions: graph mutation execution
- handlers: NiceGUI event handlers for app.py integration

Usage:
    from flowcanvas.edit import InteractionController, CanvasActions
    from flowcanvas.edit.handlers import setup_canvas_handlers
"""

from flowcanvas.edit.constants import (
    CONTAINER_MIN_HEIGHT,
    CONTAINER_MIN_WIDTH,
    HANDLE_RADIUS,
    ZOOM_MAX,
    ZOOM_MIN,
)
from flowcanvas.edit.controller import (
    Connecting,
    Dragging,
    Hit,
    Idle,
    InteractionController,
    Panning,
    Resizing,
)
from flowcanvas.edit.actions import CanvasActions

__all__ = [
    'InteractionController',
    'CanvasActions',
    'Idle',
    'Dragging',
    'Resizing',
    'Connecting',
    'Panning',
    'Hit',
    'CONTAINER_MIN_WIDTH',
    'CONTAINER_MIN_HEIGHT',
    'HANDLE_RADIUS',
    'ZOOM_MIN',
    'ZOOM_MAX',
]
