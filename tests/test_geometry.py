import pytest

from flowcanvas.geometry import Transform, clamp, contains, midpoint, right_center, zoom_at
from flowcanvas.models import Node


def test_screen_to_world():
    t = Transform(scale=2.0, x=10.0, y=20.0)
    assert t.screen_to_world(30, 60) == (10.0, 20.0)


def test_zoom_keeps_point_under_cursor_fixed():
    t = Transform(scale=1.0, x=40.0, y=-25.0)
    before = t.screen_to_world(300, 200)

    zoomed = zoom_at(t, 300, 200, -250, sensitivity=0.001, min_scale=0.2, max_scale=3.0)

    assert zoomed.scale == pytest.approx(1.25)
    after = zoomed.screen_to_world(300, 200)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


@pytest.mark.parametrize("delta_y, expected", [(100000, 0.2), (-100000, 3.0)])
def test_zoom_is_clamped(delta_y, expected):
    zoomed = zoom_at(Transform(), 0, 0, delta_y, sensitivity=0.001, min_scale=0.2, max_scale=3.0)
    assert zoomed.scale == pytest.approx(expected)


def test_contains_is_closed_interval():
    bounds = (0, 0, 10, 10)
    assert contains(bounds, 10, 10)
    assert contains(bounds, 0, 5)
    assert not contains(bounds, 10.01, 5)


def test_anchor_helpers():
    n = Node(id="n", type="ui", x=10, y=20, width=100, height=40)
    assert right_center(n) == (110, 40)
    assert midpoint((0, 0), (10, 20)) == (5, 10)
    assert clamp(5, 0, 3) == 3
