"""
schema_model.py — Atlas
Typed records recovered from a schema file, the relation resolver, and
the summary / tabular / graph views the UI reads from a parsed model.

Everything here is immutable once built. A new schema load produces a
new SchemaModel; nothing is patched field-by-field.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property

import networkx as nx
import pandas as pd


# ─── Constants ───────────────────────────────────────────────────────────────

BLOCK_KINDS: tuple[str, ...] = ("datasource", "generator", "model", "enum")

_TYPE_MARKERS = "[]?"


def base_type_of(type_expr: str) -> str:
    """'Post[]' → 'Post', 'User?' → 'User'"""
    return "".join(ch for ch in type_expr if ch not in _TYPE_MARKERS)


# ─── Records ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Block:
    """A brace-delimited top-level declaration, body kept verbatim."""
    kind: str
    name: str
    body: tuple[str, ...] = ()


@dataclass(frozen=True)
class Field:
    name:        str
    type:        str
    attributes:  tuple[str, ...] = ()
    raw:         str = ""
    is_relation: bool = False

    @property
    def base_type(self) -> str:
        return base_type_of(self.type)

    @property
    def is_list(self) -> bool:
        return "[]" in self.type

    @property
    def is_nullable(self) -> bool:
        return "?" in self.type


@dataclass(frozen=True)
class Relation:
    field: str
    to:    str
    type:  str

    @property
    def is_list(self) -> bool:
        return "[]" in self.type

    @property
    def is_optional(self) -> bool:
        # a list is never "optional" in the cardinality sense
        return "?" in self.type and "[]" not in self.type


@dataclass(frozen=True)
class Entity:
    name:      str
    fields:    tuple[Field, ...] = ()
    options:   tuple[str, ...] = ()
    relations: tuple[Relation, ...] = ()
    kind:      str = "model"


@dataclass(frozen=True)
class SchemaInfo:
    lines:           int
    models:          int
    enums:           int
    generators:      int
    datasources:     int
    total_fields:    int
    total_options:   int
    total_relations: int
    largest_model:   str

    def as_items(self) -> list[tuple[str, int | str]]:
        """Label/value pairs in info-panel order."""
        return [
            ("Lines",         self.lines),
            ("Models",        self.models),
            ("Enums",         self.enums),
            ("Datasources",   self.datasources),
            ("Generators",    self.generators),
            ("Fields",        self.total_fields),
            ("Model Options", self.total_options),
            ("Relations",     self.total_relations),
            ("Largest Model", self.largest_model),
        ]


# ─── Relation resolver ───────────────────────────────────────────────────────

def resolve_relations(drafts: list[Entity]) -> list[Entity]:
    """
    Classify every field as scalar or relational and attach Relation
    records to the owning entity.

    The full name set is collected before any field is looked at, so a
    field may reference an entity declared further down the file.

    Parameters
    ----------
    drafts : entities whose fields have not been classified yet

    Returns
    -------
    New Entity objects, same order, with ``is_relation`` set and
    ``relations`` filled in field-declaration order.
    """
    names = {e.name for e in drafts}
    resolved: list[Entity] = []

    for entity in drafts:
        fields:    list[Field]    = []
        relations: list[Relation] = []
        for f in entity.fields:
            base   = f.base_type
            is_rel = base in names
            fields.append(replace(f, is_relation=is_rel))
            if is_rel:
                relations.append(Relation(field=f.name, to=base, type=f.type))
        resolved.append(replace(entity, fields=tuple(fields), relations=tuple(relations)))

    return resolved


def summarize(blocks: list[Block], entities: list[Entity], line_count: int) -> SchemaInfo:
    """Counts per block kind, totals, and the model with the most fields."""
    kinds = [b.kind for b in blocks]
    # sorted() is stable, so ties keep declaration order
    ranked  = sorted(entities, key=lambda e: len(e.fields), reverse=True)
    largest = f"{ranked[0].name} ({len(ranked[0].fields)} fields)" if ranked else "n/a"

    return SchemaInfo(
        lines           = line_count,
        models          = len(entities),
        enums           = kinds.count("enum"),
        generators      = kinds.count("generator"),
        datasources     = kinds.count("datasource"),
        total_fields    = sum(len(e.fields) for e in entities),
        total_options   = sum(len(e.options) for e in entities),
        total_relations = sum(len(e.relations) for e in entities),
        largest_model   = largest,
    )


# ─── Schema model ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SchemaModel:
    """
    The complete parse result for one schema text.

    Attributes
    ----------
    raw      : the source text exactly as loaded
    blocks   : every recognised block, in file order
    entities : one Entity per ``model`` block, relations resolved
    info     : summary statistics
    """
    raw:      str
    blocks:   tuple[Block, ...]
    entities: tuple[Entity, ...]
    info:     SchemaInfo
    _index:   dict[str, Entity] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        # name collisions: last declaration wins
        self._index.update({e.name: e for e in self.entities})

    # ── Lookups ───────────────────────────────────────────────────────────

    @property
    def entity_names(self) -> list[str]:
        return [e.name for e in self.entities]

    def entity(self, name: str) -> Entity:
        """Raises KeyError for unknown names."""
        return self._index[name]

    def has_entity(self, name: str) -> bool:
        return name in self._index

    def blocks_of(self, kind: str) -> list[Block]:
        return [b for b in self.blocks if b.kind == kind]

    @property
    def datasources(self) -> list[Block]:
        return self.blocks_of("datasource")

    @property
    def generators(self) -> list[Block]:
        return self.blocks_of("generator")

    @property
    def enums(self) -> list[Block]:
        return self.blocks_of("enum")

    def filter_entities(self, query: str = "") -> list[Entity]:
        """Entities sorted by name, kept when ``query`` is a case-insensitive substring."""
        needle  = query.strip().lower()
        ordered = sorted(self.entities, key=lambda e: (e.name.lower(), e.name))
        return [e for e in ordered if needle in e.name.lower()]

    # ── Tabular views ─────────────────────────────────────────────────────

    def entities_frame(self) -> pd.DataFrame:
        """One row per entity: counts of fields, options and relations."""
        return pd.DataFrame({
            "Model":     [e.name for e in self.entities],
            "Fields":    [len(e.fields) for e in self.entities],
            "Options":   [len(e.options) for e in self.entities],
            "Relations": [len(e.relations) for e in self.entities],
            "Targets":   [", ".join(dict.fromkeys(r.to for r in e.relations)) for e in self.entities],
        })

    def fields_frame(self, name: str) -> pd.DataFrame:
        """Column summary for one entity, in declaration order."""
        fields = self.entity(name).fields
        return pd.DataFrame({
            "Field":      [f.name for f in fields],
            "Type":       [f.type for f in fields],
            "Attributes": [" ".join(f.attributes) for f in fields],
            "Nullable":   ["✓" if f.is_nullable else "" for f in fields],
            "Relation":   ["✓" if f.is_relation else "" for f in fields],
        })

    # ── Graph view ────────────────────────────────────────────────────────

    @cached_property
    def _graph(self) -> nx.MultiDiGraph:
        g = nx.MultiDiGraph()
        for e in self.entities:
            g.add_node(e.name, fields=len(e.fields), options=len(e.options))
        for e in self.entities:
            for r in e.relations:
                g.add_edge(e.name, r.to, key=r.field, type=r.type)
        return g

    def relation_graph(self) -> nx.MultiDiGraph:
        """Directed multigraph: one edge per Relation, keyed by source field."""
        return self._graph.copy()

    def neighbors(self, name: str) -> list[str]:
        """
        Entities linked to ``name`` in either direction, in declaration
        order, excluding ``name`` itself.
        """
        if name not in self._graph:
            raise KeyError(name)
        linked = set(nx.all_neighbors(self._graph, name)) - {name}
        return [n for n in self.entity_names if n in linked]
