"""
viewport.py — Atlas
Camera control: pan, node drag, zoom around the cursor, fit to view.

The camera maps world coordinates to screen pixels as
``screen = world · scale + offset``. Pointer input arrives in screen
pixels relative to the viewport's top-left corner. Exactly one gesture
(pan or node drag) can be active; pointer release ends it wherever it
happens.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from graph_view import Camera, GraphState
from layout_engine import NodeBox


# ─── Constants ───────────────────────────────────────────────────────────────

ZOOM_IN_FACTOR  = 1.08
ZOOM_OUT_FACTOR = 0.92
ZOOM_MIN        = 0.18
ZOOM_MAX        = 2.8

FIT_MARGIN      = 140.0     # total, split evenly on both sides
FIT_MIN         = 0.2
FIT_MAX         = 1.2

PRIMARY_BUTTON  = 0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ViewportSize:
    width:  float
    height: float


# ─── Gestures ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PanGesture:
    start_x:  float
    start_y:  float
    origin_x: float     # camera offset at gesture start
    origin_y: float


@dataclass(frozen=True)
class NodeDragGesture:
    entity:   str
    start_x:  float
    start_y:  float
    origin_x: float     # box position at gesture start, world units
    origin_y: float


Gesture = PanGesture | NodeDragGesture


# ─── Controller ──────────────────────────────────────────────────────────────

class ViewportController:
    """
    Translates pointer and wheel input into camera / node updates.

    Usage
    -----
        vp = ViewportController(state)
        vp.pointer_down(400, 300, node="Post")
        moved = vp.pointer_move(420, 310)   # → "Post"; re-route edges
        vp.pointer_up()

    Operates on the GraphState it was given; it never replaces the
    state's Camera object, only its fields.
    """

    def __init__(
        self,
        state: GraphState,
        zoom_in_factor: float = ZOOM_IN_FACTOR,
        zoom_out_factor: float = ZOOM_OUT_FACTOR,
        zoom_min: float = ZOOM_MIN,
        zoom_max: float = ZOOM_MAX,
        fit_margin: float = FIT_MARGIN,
        fit_min: float = FIT_MIN,
        fit_max: float = FIT_MAX,
    ) -> None:
        self.state           = state
        self.zoom_in_factor  = zoom_in_factor
        self.zoom_out_factor = zoom_out_factor
        self.zoom_min        = zoom_min
        self.zoom_max        = zoom_max
        self.fit_margin      = fit_margin
        self.fit_min         = fit_min
        self.fit_max         = fit_max
        self.gesture: Optional[Gesture] = None

    @property
    def camera(self) -> Camera:
        return self.state.camera

    # ── Coordinate transforms ─────────────────────────────────────────────

    def screen_to_world(self, px: float, py: float) -> tuple[float, float]:
        cam = self.camera
        return (px - cam.x) / cam.scale, (py - cam.y) / cam.scale

    def world_to_screen(self, wx: float, wy: float) -> tuple[float, float]:
        cam = self.camera
        return wx * cam.scale + cam.x, wy * cam.scale + cam.y

    def center_on(self, point: tuple[float, float], scale: float, viewport: ViewportSize) -> None:
        """Put world ``point`` in the middle of the viewport at ``scale``."""
        cam = self.camera
        cam.scale = clamp(scale, self.zoom_min, self.zoom_max)
        cam.x = viewport.width / 2 - point[0] * cam.scale
        cam.y = viewport.height / 2 - point[1] * cam.scale

    def visible_world_center(self, viewport: ViewportSize) -> tuple[float, float]:
        """World point currently under the middle of the viewport."""
        return self.screen_to_world(viewport.width / 2, viewport.height / 2)

    # ── Gestures ──────────────────────────────────────────────────────────

    @property
    def is_dragging(self) -> bool:
        return self.gesture is not None

    def pointer_down(
        self,
        px: float,
        py: float,
        node: str | None = None,
        button: int = PRIMARY_BUTTON,
    ) -> Optional[Gesture]:
        """
        Start a pan (empty canvas) or node drag (``node`` given).

        Ignored for non-primary buttons, while another gesture is active,
        and for nodes that have no layout box.
        """
        if button != PRIMARY_BUTTON or self.gesture is not None:
            return None

        if node is not None:
            box = self.state.positions.get(node)
            if box is None:
                return None
            self.gesture = NodeDragGesture(node, px, py, box.x, box.y)
        else:
            cam = self.camera
            self.gesture = PanGesture(px, py, cam.x, cam.y)
        return self.gesture

    def pointer_move(self, px: float, py: float) -> str | None:
        """
        Advance the active gesture.

        Returns the dragged entity's name when a node moved, so the
        caller can re-route its edges; None otherwise.
        """
        g = self.gesture
        if g is None:
            return None

        if isinstance(g, PanGesture):
            self.camera.x = g.origin_x + (px - g.start_x)
            self.camera.y = g.origin_y + (py - g.start_y)
            return None

        box = self.state.positions.get(g.entity)
        if box is None:
            return None
        scale = self.camera.scale
        box.move_to(
            g.origin_x + (px - g.start_x) / scale,
            g.origin_y + (py - g.start_y) / scale,
        )
        return g.entity

    def pointer_up(self) -> None:
        self.gesture = None

    # ── Zoom ──────────────────────────────────────────────────────────────

    def zoom_at(self, px: float, py: float, factor: float) -> float:
        """
        Multiply the scale by ``factor`` keeping the world point under
        (px, py) fixed on screen. Returns the new, clamped scale.
        """
        wx, wy = self.screen_to_world(px, py)
        cam = self.camera
        cam.scale = clamp(cam.scale * factor, self.zoom_min, self.zoom_max)
        cam.x = px - wx * cam.scale
        cam.y = py - wy * cam.scale
        return cam.scale

    def wheel(self, px: float, py: float, delta_y: float) -> float:
        """Wheel up zooms in, wheel down zooms out, one fixed step each."""
        factor = self.zoom_in_factor if delta_y < 0 else self.zoom_out_factor
        return self.zoom_at(px, py, factor)

    # ── Fit ───────────────────────────────────────────────────────────────

    def fit_to_view(self, boxes: Iterable[NodeBox], viewport: ViewportSize) -> bool:
        """
        Frame every given box with a margin, scale clamped to the fit range.

        Returns False, leaving the camera untouched, when there is
        nothing to frame.
        """
        boxes = list(boxes)
        if not boxes:
            return False

        min_x = min(b.x for b in boxes)
        min_y = min(b.y for b in boxes)
        max_x = max(b.right for b in boxes)
        max_y = max(b.bottom for b in boxes)

        bounds_w = max_x - min_x + self.fit_margin
        bounds_h = max_y - min_y + self.fit_margin
        half     = self.fit_margin / 2

        scale = clamp(
            min(viewport.width / bounds_w, viewport.height / bounds_h),
            self.fit_min, self.fit_max,
        )
        cam = self.camera
        cam.scale = scale
        cam.x = (viewport.width - bounds_w * scale) / 2 - (min_x - half) * scale
        cam.y = (viewport.height - bounds_h * scale) / 2 - (min_y - half) * scale
        return True
