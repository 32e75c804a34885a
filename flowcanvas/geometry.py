"""
Viewport geometry: the pan/zoom transform between screen and world space.

A screen point s maps to world point w = (s - t) / scale, where t is the
translation of the canvas layer. Zooming keeps the world point under the
cursor fixed.
"""

import math
from dataclasses import dataclass, replace
from typing import Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class Transform:
    scale: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def screen_to_world(self, sx: float, sy: float) -> Point:
        return ((sx - self.x) / self.scale, (sy - self.y) / self.scale)

    def panned_to(self, x: float, y: float) -> "Transform":
        return replace(self, x=x, y=y)


def zoom_at(transform: Transform, sx: float, sy: float, delta_y: float,
            sensitivity: float, min_scale: float, max_scale: float) -> Transform:
    """
    Apply a wheel step at screen point (sx, sy).

    The new scale is clamped to [min_scale, max_scale]; the translation is
    recomputed so the world coordinate under the cursor does not move.
    """
    new_scale = clamp(transform.scale - delta_y * sensitivity, min_scale, max_scale)
    wx, wy = transform.screen_to_world(sx, sy)
    return Transform(scale=new_scale, x=sx - wx * new_scale, y=sy - wy * new_scale)


def clamp(value: float, low: float, high: float) -> float:
    return min(max(low, value), high)


def contains(bounds: Tuple[float, float, float, float], px: float, py: float) -> bool:
    """Closed-interval containment of a point in (left, top, right, bottom)."""
    left, top, right, bottom = bounds
    return left <= px <= right and top <= py <= bottom


def outside(bounds: Tuple[float, float, float, float], px: float, py: float) -> bool:
    return not contains(bounds, px, py)


def distance(a: Point, b: Point) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)


def right_center(node) -> Point:
    """Outgoing anchor of a node: the middle of its right side."""
    return (node.x + node.width, node.y + node.height / 2)


def left_center(node) -> Point:
    """Incoming anchor of a node: the middle of its left side."""
    return (node.x, node.y + node.height / 2)


def bottom_right(node) -> Point:
    return (node.x + node.width, node.y + node.height)


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)
