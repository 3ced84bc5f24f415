"""
explorer.py — Atlas
Session controller: owns the loaded SchemaModel and all view state, and
is the only thing the UI talks to.

Lifecycle
---------
  load_schema_text()  → parse; on success replace model, layout, selection,
                        field filters, search and camera in one go; on
                        failure keep whatever was loaded before
  select/... , pointer_*/wheel, fit_view(), activate_stub()
                      → mutate the current session
  scene()             → render description for the current state

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from atlas_config import AtlasSettings, get_logger, get_settings
from graph_view import (
    EdgeRoute,
    FieldVisibility,
    GraphState,
    RelationStub,
    Scene,
    build_scene,
    route_edges,
    visible_entities,
)
from layout_engine import spiral_layout
from schema_model import Entity, SchemaModel
from schema_parser import SchemaParser
from viewport import ViewportController, ViewportSize

logger = get_logger(__name__)


DEMO_SCHEMA = """datasource db {
  provider = "postgresql"
  url      = env("DATABASE_URL")
}

generator client {
  provider = "prisma-client-js"
}

model User {
  id        String   @id @default(cuid())
  email     String   @unique
  name      String?
  posts     Post[]
  comments  Comment[]
  createdAt DateTime @default(now())
  updatedAt DateTime @updatedAt
}

model Post {
  id        String    @id @default(cuid())
  title     String
  content   String?
  published Boolean   @default(false)
  author    User      @relation(fields: [authorId], references: [id])
  authorId  String
  comments  Comment[]
  createdAt DateTime  @default(now())
  updatedAt DateTime  @updatedAt
}

model Comment {
  id        String   @id @default(cuid())
  body      String
  post      Post     @relation(fields: [postId], references: [id])
  postId    String
  author    User     @relation(fields: [authorId], references: [id])
  authorId  String
  createdAt DateTime @default(now())
}"""


# The bundled diagram drags nodes client-side; positions are not sent back.
DIAGRAM_HINT = (
    "drag to move nodes · scroll to zoom · dashed links point at hidden models · "
    "dragged positions are not kept after the next interaction"
)


@dataclass(frozen=True)
class Status:
    message:  str
    is_error: bool = False


class SchemaExplorer:
    """
    One interactive schema-diagram session.

    Usage
    -----
        ex = SchemaExplorer()
        ex.load_schema_text(text, "schema.prisma")
        ex.select("Post")
        ex.fit_view()
        scene = ex.scene()
    """

    def __init__(
        self,
        settings: AtlasSettings | None = None,
        parser: SchemaParser | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.parser   = parser or SchemaParser()
        self.model: Optional[SchemaModel] = None
        self.state    = GraphState()
        self.viewport = self._make_viewport(self.state)
        self.viewport_size = ViewportSize(self.settings.viewport_width, self.settings.viewport_height)
        self.status   = Status("Load a schema to begin.")

    # ── Status ────────────────────────────────────────────────────────────

    def set_status(self, message: str, is_error: bool = False) -> None:
        self.status = Status(message, is_error)
        (logger.warning if is_error else logger.info)(message)

    # ── Loading ───────────────────────────────────────────────────────────

    def load_schema_text(self, raw: str, source_label: str) -> bool:
        """
        Parse ``raw`` and make it the current schema.

        Returns False (status set, previous schema kept) when the
        pipeline raises.
        """
        try:
            model = self.parser.parse(raw)
            positions = self._layout(model)
        except Exception as e:
            logger.exception("Failed to parse %s", source_label)
            self.set_status(f"Failed to parse schema: {e}", is_error=True)
            return False

        self.model = model
        self.state = GraphState(positions=positions)
        self.viewport = self._make_viewport(self.state)
        self.viewport.center_on(self.settings.world_center, self.settings.initial_scale, self.viewport_size)
        self.set_status(
            f"Loaded {source_label}: {model.info.models} models found. "
            "Pick models from the selection panel."
        )
        return True

    def load_schema_file(self, path: str | Path | None = None) -> bool:
        """Load a schema from disk; defaults to the configured schema path."""
        path = Path(path or self.settings.default_schema_path)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.exception("Could not read %s", path)
            self.set_status(f"Could not load {path.name} automatically. Use the file picker.", is_error=True)
            return False
        return self.load_schema_text(raw, path.name)

    def load_demo(self) -> bool:
        """Built-in three-model schema, everything selected and framed."""
        if not self.load_schema_text(DEMO_SCHEMA, "demo schema"):
            return False
        self.select_all()
        self.fit_view()
        return True

    # ── Selection ─────────────────────────────────────────────────────────

    def select(self, name: str) -> None:
        self._require_entity(name)
        self.state.select(name)

    def hide(self, name: str) -> None:
        self.state.deselect(name)

    def toggle(self, name: str) -> bool:
        self._require_entity(name)
        return self.state.toggle(name)

    def select_all(self) -> None:
        if self.model is not None:
            self.state.select_all(self.model.entity_names)

    def clear_selection(self) -> None:
        self.state.clear_selection()

    def set_search(self, query: str) -> None:
        self.state.search_query = query.strip()

    def filtered_entities(self) -> list[Entity]:
        if self.model is None:
            return []
        return self.model.filter_entities(self.state.search_query)

    def selection_hint(self) -> str:
        if self.model is None or not self.model.entities:
            return "Load a schema to choose models."
        return (
            f"{len(self.state.selected)} of {len(self.model.entities)} selected "
            f"({len(self.filtered_entities())} shown)"
        )

    def visible_entities(self) -> list[Entity]:
        return visible_entities(self.model, self.state)

    def set_field_visibility(
        self,
        name: str,
        show_relations: bool | None = None,
        show_others: bool | None = None,
    ) -> FieldVisibility:
        self._require_entity(name)
        return self.state.set_field_visibility(name, show_relations, show_others)

    # ── Progressive disclosure ────────────────────────────────────────────

    def neighbors(self, name: str) -> list[str]:
        self._require_entity(name)
        return self.model.neighbors(name)

    def hidden_neighbors(self, name: str) -> list[str]:
        return [n for n in self.neighbors(name) if not self.state.is_selected(n)]

    def reveal_neighbors(self, name: str) -> list[str]:
        """Select every entity related to ``name`` that is not shown yet."""
        revealed = self.hidden_neighbors(name)
        for n in revealed:
            self.state.select(n)
        if revealed:
            self.set_status(f"Revealed {len(revealed)} related model(s) of {name}.")
        return revealed

    def activate_stub(self, stub: RelationStub) -> None:
        self.state.reveal(stub)
        self.fit_view()
        self.set_status(f"Revealed related model {stub.target} from {stub.source}.")

    # ── Viewport ──────────────────────────────────────────────────────────

    def set_viewport_size(self, width: float, height: float) -> None:
        self.viewport_size = ViewportSize(width, height)

    def fit_view(self) -> bool:
        boxes = [self.state.positions[e.name] for e in self.visible_entities()
                 if e.name in self.state.positions]
        if not self.viewport.fit_to_view(boxes, self.viewport_size):
            self.set_status("Select at least one model to fit the graph.")
            return False
        return True

    def pointer_down(self, px: float, py: float, node: str | None = None, button: int = 0) -> None:
        self.viewport.pointer_down(px, py, node=node, button=button)

    def pointer_move(self, px: float, py: float) -> EdgeRoute | None:
        """Returns freshly routed edges when a node moved."""
        if self.viewport.pointer_move(px, py) is None:
            return None
        return self.route()

    def pointer_up(self) -> None:
        self.viewport.pointer_up()

    def wheel(self, px: float, py: float, delta_y: float) -> float:
        return self.viewport.wheel(px, py, delta_y)

    # ── Rendering ─────────────────────────────────────────────────────────

    def report_rendered_height(self, name: str, height: float) -> EdgeRoute | None:
        """Measured-size feedback; returns re-routed edges when a height changed."""
        if not self.state.update_rendered_height(name, height):
            return None
        return self.route()

    def route(self) -> EdgeRoute:
        return route_edges(self.model, self.state)

    def scene(self) -> Scene:
        return build_scene(self.model, self.state)

    # ── Internal ──────────────────────────────────────────────────────────

    def _layout(self, model: SchemaModel):
        s = self.settings
        return spiral_layout(
            model.entities,
            center=s.world_center,
            spacing=s.spiral_spacing,
            width=s.node_width,
            base=s.base_height,
            per_field=s.field_height,
            field_cap=s.field_cap,
            per_option=s.option_height,
        )

    def _make_viewport(self, state: GraphState) -> ViewportController:
        s = self.settings
        return ViewportController(
            state,
            zoom_in_factor=s.zoom_in_factor,
            zoom_out_factor=s.zoom_out_factor,
            zoom_min=s.zoom_min,
            zoom_max=s.zoom_max,
            fit_margin=s.fit_margin,
            fit_min=s.fit_min,
            fit_max=s.fit_max,
        )

    def _require_entity(self, name: str) -> None:
        if self.model is None or not self.model.has_entity(name):
            raise KeyError(name)
