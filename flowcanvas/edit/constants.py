"""
Shared constants for the canvas editing system.

These values are used by both Python (controller, actions, view)
and the SVG canvas in app.py. Keep them in sync!
"""

# Zoom limits and wheel sensitivity (scale units per wheel deltaY unit)
ZOOM_MIN = 0.2
ZOOM_MAX = 3.0
ZOOM_SENSITIVITY = 0.001

# Minimum container size enforced while resizing
CONTAINER_MIN_WIDTH = 300.0
CONTAINER_MIN_HEIGHT = 200.0

# Default sizes for new nodes
CONTAINER_DEFAULT_SIZE = (600.0, 400.0)
NODE_DEFAULT_SIZE = (250.0, 120.0)

# Radius in world units around the connection/resize handle centres
HANDLE_RADIUS = 8.0

# Edge label box, centred on the edge midpoint
EDGE_LABEL_WIDTH = 150.0
EDGE_LABEL_HEIGHT = 50.0

# Defaults for edges created by a connection drag
DEFAULT_EDGE_LABEL = 'New Interaction'
DEFAULT_EDGE_TYPE = 'navigation'

# Primary pointer button
PRIMARY_BUTTON = 0
