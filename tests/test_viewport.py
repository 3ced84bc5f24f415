"""Unit tests for camera gestures, zoom and fit-to-view."""

import pytest

from graph_view import Camera, GraphState
from layout_engine import NodeBox
from viewport import (
    FIT_MAX,
    ZOOM_MAX,
    ZOOM_MIN,
    NodeDragGesture,
    PanGesture,
    ViewportController,
    ViewportSize,
)


def _controller(scale=1.0, **boxes):
    state = GraphState(positions=dict(boxes), camera=Camera(0.0, 0.0, scale))
    return ViewportController(state), state


# ─── Gestures ────────────────────────────────────────────────────────────────

def test_pan_tracks_pointer_one_to_one():
    """Panning moves the camera offset by the raw screen delta."""
    vp, state = _controller(scale=2.0)
    assert isinstance(vp.pointer_down(100, 100), PanGesture)
    assert vp.pointer_move(130, 90) is None
    assert (state.camera.x, state.camera.y) == (30, -10)
    vp.pointer_up()
    assert not vp.is_dragging


def test_node_drag_is_scale_invariant():
    """Dragging moves the node by screen delta / scale in world units."""
    vp, state = _controller(scale=2.0, A=NodeBox(10, 20, 300, 100))
    assert isinstance(vp.pointer_down(50, 50, node="A"), NodeDragGesture)
    assert vp.pointer_move(150, 70) == "A"
    assert (state.positions["A"].x, state.positions["A"].y) == (60, 30)
    # camera untouched by a node drag
    assert (state.camera.x, state.camera.y) == (0, 0)


def test_overlapping_gesture_start_is_ignored():
    """A second pointer_down while dragging does not replace the gesture."""
    vp, state = _controller(A=NodeBox(0, 0, 300, 100))
    first = vp.pointer_down(0, 0, node="A")
    assert vp.pointer_down(5, 5) is None
    assert vp.gesture is first


def test_non_primary_button_and_unknown_node_are_ignored():
    vp, _ = _controller()
    assert vp.pointer_down(0, 0, button=2) is None
    assert vp.pointer_down(0, 0, node="Ghost") is None
    assert vp.gesture is None


def test_release_always_ends_gesture():
    """pointer_up ends any gesture, and moves afterwards do nothing."""
    vp, state = _controller()
    vp.pointer_down(0, 0)
    vp.pointer_up()
    vp.pointer_up()
    assert vp.pointer_move(50, 50) is None
    assert (state.camera.x, state.camera.y) == (0, 0)


# ─── Zoom ────────────────────────────────────────────────────────────────────

def test_zoom_keeps_world_point_under_cursor():
    """The world point under the cursor stays put across a zoom step."""
    vp, state = _controller(scale=0.85)
    state.camera.x, state.camera.y = 100, 60
    before = vp.screen_to_world(400, 300)
    vp.wheel(400, 300, delta_y=-120)
    assert state.camera.scale == pytest.approx(0.85 * 1.08)
    assert vp.screen_to_world(400, 300) == pytest.approx(before)
    vp.wheel(400, 300, delta_y=120)
    assert vp.screen_to_world(400, 300) == pytest.approx(before)


def test_zoom_is_clamped():
    """Repeated zooming never leaves the bounded scale range."""
    vp, state = _controller()
    for _ in range(200):
        vp.wheel(0, 0, delta_y=-1)
    assert state.camera.scale == ZOOM_MAX
    for _ in range(200):
        vp.wheel(0, 0, delta_y=1)
    assert state.camera.scale == ZOOM_MIN
    assert state.camera.scale > 0


def test_world_screen_round_trip():
    vp, state = _controller(scale=1.5)
    state.camera.x, state.camera.y = 20, -40
    assert vp.screen_to_world(*vp.world_to_screen(123, 456)) == pytest.approx((123, 456))


def test_center_on_puts_point_mid_viewport():
    vp, _ = _controller()
    size = ViewportSize(1000, 600)
    vp.center_on((2600, 2600), 0.85, size)
    assert vp.world_to_screen(2600, 2600) == pytest.approx((500, 300))
    assert vp.visible_world_center(size) == pytest.approx((2600, 2600))


# ─── Fit to view ─────────────────────────────────────────────────────────────

def test_fit_single_entity_hits_upper_clamp():
    """A small box in a large viewport fits at the maximum fit scale."""
    vp, state = _controller()
    assert vp.fit_to_view([NodeBox(0, 0, 300, 92)], ViewportSize(1200, 720))
    assert state.camera.scale == FIT_MAX


def test_fit_single_entity_small_viewport_uses_tighter_axis():
    """In a small viewport the tighter axis ratio wins."""
    vp, state = _controller()
    vp.fit_to_view([NodeBox(0, 0, 300, 92)], ViewportSize(300, 200))
    assert state.camera.scale == pytest.approx(min(300 / 440, 200 / 232))


def test_fit_centres_bounding_box():
    """After fitting, the bounding box centre is the viewport centre."""
    vp, _ = _controller()
    boxes = [NodeBox(0, 0, 300, 100), NodeBox(2000, 1500, 300, 200)]
    size = ViewportSize(800, 600)
    vp.fit_to_view(boxes, size)
    assert vp.world_to_screen(1150, 850) == pytest.approx((400, 300))


def test_fit_with_nothing_visible_leaves_camera():
    """No boxes: report False and keep the camera."""
    vp, state = _controller(scale=0.5)
    assert vp.fit_to_view([], ViewportSize(800, 600)) is False
    assert state.camera == Camera(0.0, 0.0, 0.5)
