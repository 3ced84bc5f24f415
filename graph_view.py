"""
graph_view.py — Atlas
Mutable view state for one loaded schema, plus the edge router and the
render description handed to whatever draws the diagram.

Only selected entities are drawn. A relation between two selected
entities becomes one edge per entity pair, even when both ends declare
it; a relation into an unselected entity becomes a dashed stub that can
be activated to bring the target into view.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from layout_engine import NodeBox
from schema_model import Entity, Field, Relation, SchemaModel


# ─── Geometry constants ──────────────────────────────────────────────────────

STUB_TOP_OFFSET  = 28.0     # first stub, below the node's top edge
STUB_SLOT_HEIGHT = 18.0     # vertical step per additional stub
STUB_LENGTH      = 138.0
STUB_LINK_GAP    = 8.0      # stub end → reveal control
STUB_LINK_RISE   = 10.0
REVEAL_GAP       = 56.0     # stub end → revealed node's left edge

EDGE_MIN_BEND    = 40.0
EDGE_BEND_RATIO  = 0.45
EDGE_LABEL_RISE  = 6.0


# ─── State records ───────────────────────────────────────────────────────────

@dataclass
class Camera:
    """screen = world · scale + (x, y)"""
    x:     float = 100.0
    y:     float = 60.0
    scale: float = 0.85


@dataclass
class FieldVisibility:
    show_relations: bool = False
    show_others:    bool = True


@dataclass
class GraphState:
    """
    Everything the user can change about the current diagram.

    ``positions`` holds a box for every entity of the model, selected or
    not; selection changes never add or remove boxes.
    """
    positions:    dict[str, NodeBox] = field(default_factory=dict)
    selected:     set[str] = field(default_factory=set)
    visibility:   dict[str, FieldVisibility] = field(default_factory=dict)
    search_query: str = ""
    camera:       Camera = field(default_factory=Camera)

    # ── Selection ─────────────────────────────────────────────────────────

    def is_selected(self, name: str) -> bool:
        return name in self.selected

    def select(self, name: str) -> None:
        self.selected.add(name)

    def deselect(self, name: str) -> None:
        self.selected.discard(name)

    def toggle(self, name: str) -> bool:
        """Flip membership; returns the new state."""
        if name in self.selected:
            self.selected.discard(name)
            return False
        self.selected.add(name)
        return True

    def select_all(self, names) -> None:
        self.selected = set(names)

    def clear_selection(self) -> None:
        self.selected = set()

    # ── Field visibility ──────────────────────────────────────────────────

    def visibility_for(self, name: str) -> FieldVisibility:
        if name not in self.visibility:
            self.visibility[name] = FieldVisibility()
        return self.visibility[name]

    def set_field_visibility(
        self,
        name: str,
        show_relations: bool | None = None,
        show_others: bool | None = None,
    ) -> FieldVisibility:
        vis = self.visibility_for(name)
        if show_relations is not None:
            vis.show_relations = show_relations
        if show_others is not None:
            vis.show_others = show_others
        return vis

    # ── Positions ─────────────────────────────────────────────────────────

    def update_rendered_height(self, name: str, height: float) -> bool:
        """
        Record the height a renderer actually measured for ``name``.

        Returns True when the stored height changed by more than a pixel,
        i.e. when edges computed earlier are now stale.
        """
        box = self.positions.get(name)
        if box is None or abs(box.height - height) <= 1:
            return False
        box.height = height
        return True

    def reveal(self, stub: "RelationStub") -> None:
        """Select the stub's target and park it just right of the stub."""
        self.selected.add(stub.target)
        box = self.positions.get(stub.target)
        if box is not None:
            x, y = stub.reveal_origin
            box.move_to(x, y - box.height / 2)


# ─── Field filtering ─────────────────────────────────────────────────────────

def visible_fields(entity: Entity, visibility: FieldVisibility) -> list[Field]:
    return [
        f for f in entity.fields
        if (visibility.show_relations if f.is_relation else visibility.show_others)
    ]


def visible_entities(model: SchemaModel | None, state: GraphState) -> list[Entity]:
    """Selected entities in declaration order."""
    if model is None:
        return []
    return [e for e in model.entities if e.name in state.selected]


# ─── Edges and stubs ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RelationSide:
    is_list:     bool = False
    is_optional: bool = False

    @classmethod
    def of(cls, relation: Relation) -> "RelationSide":
        return cls(is_list=relation.is_list, is_optional=relation.is_optional)


def cardinality_label(side_a: RelationSide | None, side_b: RelationSide | None) -> str:
    """
    Both ends list → N:M, one end list → 1:N, neither → 1:1.
    An optional end on either side appends ' (optional)'.
    """
    a_list = bool(side_a and side_a.is_list)
    b_list = bool(side_b and side_b.is_list)
    if a_list and b_list:
        kind = "N:M"
    elif a_list or b_list:
        kind = "1:N"
    else:
        kind = "1:1"

    optional = bool(side_a and side_a.is_optional) or bool(side_b and side_b.is_optional)
    return f"{kind} (optional)" if optional else kind


@dataclass(frozen=True)
class Edge:
    """One rendered connection between two selected entities."""
    source: str                  # alphabetically first of the pair
    target: str
    sides:  tuple[tuple[str, RelationSide], ...]
    label:  str
    x1: float
    y1: float
    x2: float
    y2: float
    dashed: bool = False

    @property
    def key(self) -> str:
        return f"{self.source}::{self.target}"

    @property
    def bend(self) -> float:
        return max(EDGE_MIN_BEND, abs(self.x2 - self.x1) * EDGE_BEND_RATIO)

    @property
    def label_position(self) -> tuple[float, float]:
        return (self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2 - EDGE_LABEL_RISE

    @property
    def path(self) -> str:
        """SVG path data, cubic curve leaving and entering horizontally."""
        b = self.bend
        return (
            f"M {self.x1} {self.y1} "
            f"C {self.x1 + b} {self.y1}, {self.x2 - b} {self.y2}, {self.x2} {self.y2}"
        )


@dataclass(frozen=True)
class RelationStub:
    """Dashed affordance for a relation into an unselected entity."""
    source: str
    field:  str
    target: str
    slot:   int
    x1: float
    y1: float
    x2: float
    y2: float
    dashed: bool = True

    @property
    def key(self) -> str:
        """Unique per scene; a model may declare the same field name twice."""
        return f"{self.source}::{self.field}::{self.slot}"

    @property
    def label(self) -> str:
        return f"... {self.target}"

    @property
    def link_position(self) -> tuple[float, float]:
        """Top-left of the reveal control."""
        return self.x2 + STUB_LINK_GAP, self.y2 - STUB_LINK_RISE

    @property
    def reveal_origin(self) -> tuple[float, float]:
        """Left edge x and vertical centre y for the revealed node."""
        return self.x2 + REVEAL_GAP, self.y2

    @property
    def path(self) -> str:
        return f"M {self.x1} {self.y1} L {self.x2} {self.y2}"


@dataclass(frozen=True)
class EdgeRoute:
    edges: tuple[Edge, ...] = ()
    stubs: tuple[RelationStub, ...] = ()


def _stub_for(source: str, relation: Relation, box: NodeBox, slot: int) -> RelationStub:
    x1 = box.right
    y1 = box.y + STUB_TOP_OFFSET + slot * STUB_SLOT_HEIGHT
    return RelationStub(
        source=source, field=relation.field, target=relation.to, slot=slot,
        x1=x1, y1=y1, x2=x1 + STUB_LENGTH, y2=y1,
    )


def route_edges(model: SchemaModel | None, state: GraphState) -> EdgeRoute:
    """
    Compute edges and stubs for the current selection.

    Relations declared on both ends of a pair are merged into one edge;
    each end's list/optional flags are kept under the entity that
    declared them so the label reflects both. Stub slots count per
    source entity in relation order, so repeated calls on unchanged
    state give identical results.
    """
    visible = visible_entities(model, state)
    names   = {e.name for e in visible}

    pairs: dict[str, tuple[tuple[str, str], dict[str, RelationSide]]] = {}
    stubs: list[RelationStub] = []

    for entity in visible:
        box = state.positions.get(entity.name)
        if box is None:
            continue

        slot = 0
        for relation in entity.relations:
            if relation.to not in names:
                stubs.append(_stub_for(entity.name, relation, box, slot))
                slot += 1
                continue

            pair = tuple(sorted((entity.name, relation.to)))
            key  = f"{pair[0]}::{pair[1]}"
            _, sides = pairs.setdefault(key, (pair, {}))
            sides[entity.name] = RelationSide.of(relation)

    edges: list[Edge] = []
    for (name_a, name_b), sides in pairs.values():
        box_a = state.positions.get(name_a)
        box_b = state.positions.get(name_b)
        if box_a is None or box_b is None:
            continue
        edges.append(Edge(
            source = name_a,
            target = name_b,
            sides  = tuple(sides.items()),
            label  = cardinality_label(sides.get(name_a), sides.get(name_b)),
            x1 = box_a.right, y1 = box_a.mid_y,
            x2 = box_b.x,     y2 = box_b.mid_y,
        ))

    return EdgeRoute(edges=tuple(edges), stubs=tuple(stubs))


# ─── Render description ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class NodeView:
    name:         str
    x:            float
    y:            float
    width:        float
    height:       float
    fields:       tuple[Field, ...]
    total_fields: int
    options:      tuple[str, ...]
    show_relations: bool
    show_others:    bool

    @property
    def fields_title(self) -> str:
        return f"Fields ({len(self.fields)}/{self.total_fields})"

    @property
    def options_title(self) -> str:
        return f"Model Options ({len(self.options)})"


@dataclass(frozen=True)
class Scene:
    nodes: tuple[NodeView, ...] = ()
    edges: tuple[Edge, ...] = ()
    stubs: tuple[RelationStub, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes


def build_scene(model: SchemaModel | None, state: GraphState) -> Scene:
    """Nodes, edges and stubs for every selected entity, from current boxes."""
    nodes: list[NodeView] = []
    for entity in visible_entities(model, state):
        box = state.positions.get(entity.name)
        if box is None:
            continue
        vis = state.visibility_for(entity.name)
        nodes.append(NodeView(
            name=entity.name, x=box.x, y=box.y, width=box.width, height=box.height,
            fields=tuple(visible_fields(entity, vis)),
            total_fields=len(entity.fields),
            options=entity.options,
            show_relations=vis.show_relations,
            show_others=vis.show_others,
        ))

    route = route_edges(model, state)
    return Scene(nodes=tuple(nodes), edges=route.edges, stubs=route.stubs)
