"""Unit tests for relation resolution and the model's derived views."""

import networkx as nx
import pytest

from schema_model import (
    Entity,
    Field,
    Relation,
    base_type_of,
    resolve_relations,
)
from schema_parser import SchemaParser


def _draft(name, *fields):
    return Entity(name=name, fields=tuple(Field(n, t) for n, t in fields))


def test_base_type_strips_markers():
    """List and optional markers are removed, nothing else."""
    assert base_type_of("Post[]") == "Post"
    assert base_type_of("User?") == "User"
    assert base_type_of("Decimal") == "Decimal"


def test_relation_flags():
    """Lists are never optional; ? alone is optional."""
    assert Relation("a", "A", "A[]").is_list
    assert not Relation("a", "A", "A[]").is_optional
    assert Relation("a", "A", "A?").is_optional
    assert not Relation("a", "A", "A").is_optional


def test_resolve_classifies_exactly_the_entity_typed_fields():
    """Every field whose base type names an entity gets exactly one relation."""
    drafts = [
        _draft("A", ("id", "Int"), ("bs", "B[]"), ("c", "C?"), ("self", "A"), ("e", "Role")),
        _draft("B", ("id", "Int"), ("a", "A")),
        _draft("C", ("name", "String")),
    ]
    resolved = resolve_relations(drafts)
    names = {"A", "B", "C"}

    for entity in resolved:
        related = [f for f in entity.fields if f.base_type in names]
        assert all(f.is_relation for f in related)
        assert not any(f.is_relation for f in entity.fields if f.base_type not in names)
        assert [r.field for r in entity.relations] == [f.name for f in related]

    a = resolved[0]
    assert [(r.field, r.to, r.type) for r in a.relations] == [
        ("bs", "B", "B[]"), ("c", "C", "C?"), ("self", "A", "A"),
    ]


def test_forward_references_resolve():
    """A field may reference an entity declared later in the file."""
    model = SchemaParser().parse("model A {\n  b B\n}\nmodel B {\n  id Int\n}\n")
    assert model.entity("A").relations == (Relation("b", "B", "B"),)


def test_largest_model_tie_keeps_declaration_order():
    """Ties on field count go to the first declared entity."""
    model = SchemaParser().parse(
        "model A {\n  x Int\n}\nmodel B {\n  x Int\n  y Int\n}\nmodel C {\n  x Int\n  y Int\n}\n"
    )
    assert model.info.largest_model == "B (2 fields)"


def test_info_items_order():
    """Info panel rows come in a fixed order."""
    model = SchemaParser().parse("model A {\n  x Int\n}\n")
    labels = [label for label, _ in model.info.as_items()]
    assert labels[0] == "Lines" and labels[-1] == "Largest Model"
    assert len(labels) == 9


def test_filter_entities_sorted_case_insensitive():
    """Search is a case-insensitive substring over name-sorted entities."""
    model = SchemaParser().parse(
        "model post {\n}\nmodel User {\n}\nmodel PostTag {\n}\nmodel Account {\n}\n"
    )
    assert [e.name for e in model.filter_entities()] == ["Account", "post", "PostTag", "User"]
    assert [e.name for e in model.filter_entities("POST")] == ["post", "PostTag"]
    assert model.filter_entities("zzz") == []


def test_entity_lookup_raises_for_unknown():
    model = SchemaParser().parse("model A {\n}\n")
    with pytest.raises(KeyError):
        model.entity("Nope")


def test_entities_frame():
    """One row per entity with counts and distinct targets."""
    model = SchemaParser().parse(
        "model A {\n  b1 B\n  b2 B?\n  @@map(\"a\")\n}\nmodel B {\n  id Int\n}\n"
    )
    frame = model.entities_frame()
    assert list(frame["Model"]) == ["A", "B"]
    row = frame.iloc[0]
    assert (row["Fields"], row["Options"], row["Relations"], row["Targets"]) == (2, 1, 2, "B")


def test_fields_frame():
    """Field table flags nullable and relation columns."""
    model = SchemaParser().parse("model A {\n  id Int @id\n  b B?\n}\nmodel B {\n}\n")
    frame = model.fields_frame("A")
    assert list(frame["Field"]) == ["id", "b"]
    assert list(frame["Attributes"]) == ["@id", ""]
    assert list(frame["Nullable"]) == ["", "✓"]
    assert list(frame["Relation"]) == ["", "✓"]


def test_relation_graph_and_neighbors():
    """The relation graph has one edge per relation; neighbors look both ways."""
    model = SchemaParser().parse(
        "model A {\n  b B\n}\nmodel B {\n  a A[]\n  c C\n}\nmodel C {\n  id Int\n}\nmodel D {\n  id Int\n}\n"
    )
    g = model.relation_graph()
    assert isinstance(g, nx.MultiDiGraph)
    assert g.number_of_nodes() == 4
    assert g.number_of_edges() == 3
    assert g.has_edge("B", "C", key="c")

    assert model.neighbors("A") == ["B"]
    assert model.neighbors("C") == ["B"]
    assert model.neighbors("B") == ["A", "C"]
    assert model.neighbors("D") == []
