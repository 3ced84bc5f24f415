"""Unit tests for the spiral layout."""

import math

import pytest

from layout_engine import (
    BASE_HEIGHT,
    GOLDEN_ANGLE,
    NODE_WIDTH,
    SPIRAL_SPACING,
    NodeBox,
    estimate_node_height,
    spiral_layout,
)
from schema_model import Entity, Field


def _entity(name, n_fields=0, n_options=0):
    return Entity(
        name=name,
        fields=tuple(Field(f"f{i}", "Int") for i in range(n_fields)),
        options=tuple(f"@@index([f{i}])" for i in range(n_options)),
    )


def test_empty_entity_gets_base_height():
    """No fields, no options → just the header height."""
    positions = spiral_layout([_entity("Empty")], center=(0, 0))
    box = positions["Empty"]
    assert box.height == BASE_HEIGHT == 92
    assert box.width == NODE_WIDTH


def test_height_caps_field_rows():
    """Field rows stop counting after 18; options always count."""
    assert estimate_node_height(_entity("A", 3, 2)) == 92 + 3 * 25 + 2 * 22
    assert estimate_node_height(_entity("B", 40)) == estimate_node_height(_entity("C", 18))


def test_first_entity_is_centred():
    """Index 0 sits on the centre point."""
    box = spiral_layout([_entity("A", 2)], center=(1000, 500))["A"]
    assert box.center == pytest.approx((1000, 500))


def test_spiral_polar_coordinates():
    """Entity i is centred at angle i·φ, radius spacing·√i."""
    entities = [_entity(f"E{i}", i % 5, i % 2) for i in range(12)]
    positions = spiral_layout(entities, center=(2600, 2600))
    for i, e in enumerate(entities):
        cx, cy = positions[e.name].center
        r = SPIRAL_SPACING * math.sqrt(i)
        assert cx == pytest.approx(2600 + math.cos(i * GOLDEN_ANGLE) * r)
        assert cy == pytest.approx(2600 + math.sin(i * GOLDEN_ANGLE) * r)


def test_layout_is_deterministic_and_complete():
    """Same order, same boxes; one box per entity."""
    entities = [_entity(n, 3) for n in "ABCDEFG"]
    first, second = spiral_layout(entities), spiral_layout(entities)
    assert first == second
    assert set(first) == set("ABCDEFG")


def test_node_box_geometry():
    box = NodeBox(10, 20, 300, 100)
    assert (box.right, box.bottom, box.mid_y) == (310, 120, 70)
    box.move_to(0, 0)
    assert (box.x, box.y) == (0, 0)
