"""
layout_engine.py — Atlas
Initial placement of entity boxes in world coordinates.

Entities are spread on a golden-angle (sunflower) spiral around a world
centre point: entity i sits at angle i·φ and radius spacing·√i, its
estimated box centred on that point. The result is deterministic for a
given entity order and needs no collision pass. Overlap is possible
for very uneven field counts and is left as is.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from schema_model import Entity


# ─── Constants ───────────────────────────────────────────────────────────────

WORLD_CENTER   = (2600.0, 2600.0)
NODE_WIDTH     = 300.0
SPIRAL_SPACING = 240.0

BASE_HEIGHT    = 92.0
FIELD_HEIGHT   = 25.0
FIELD_CAP      = 18
OPTION_HEIGHT  = 22.0

GOLDEN_ANGLE   = math.pi * (3 - math.sqrt(5))


# ─── Layout position ─────────────────────────────────────────────────────────

@dataclass
class NodeBox:
    """Top-left corner and size of one entity box, world units."""
    x:      float
    y:      float
    width:  float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.mid_y

    def move_to(self, x: float, y: float) -> None:
        self.x, self.y = x, y


def estimate_node_height(
    entity: Entity,
    base: float = BASE_HEIGHT,
    per_field: float = FIELD_HEIGHT,
    field_cap: int = FIELD_CAP,
    per_option: float = OPTION_HEIGHT,
) -> float:
    """Header + field rows (capped) + option chips, before anything is rendered."""
    return base + min(len(entity.fields), field_cap) * per_field + len(entity.options) * per_option


def spiral_layout(
    entities: Iterable[Entity],
    center: tuple[float, float] = WORLD_CENTER,
    spacing: float = SPIRAL_SPACING,
    width: float = NODE_WIDTH,
    **height_kw,
) -> dict[str, NodeBox]:
    """
    Place every entity on the golden-angle spiral.

    Parameters
    ----------
    entities  : in placement order; index 0 lands on the centre
    center    : world point the spiral grows from
    spacing   : radial scale, radius = spacing · √i
    width     : constant box width
    height_kw : forwarded to ``estimate_node_height``

    Returns
    -------
    {entity name: NodeBox}
    """
    cx, cy = center
    positions: dict[str, NodeBox] = {}

    for index, entity in enumerate(entities):
        height = estimate_node_height(entity, **height_kw)
        radius = spacing * math.sqrt(index)
        angle  = index * GOLDEN_ANGLE
        positions[entity.name] = NodeBox(
            x      = cx + math.cos(angle) * radius - width / 2,
            y      = cy + math.sin(angle) * radius - height / 2,
            width  = width,
            height = height,
        )

    return positions
