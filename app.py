"""
Atlas — Schema Explorer
Turn a Prisma schema into an explorable entity diagram: pick models,
reveal related ones on demand, filter fields per model.
"""

import hashlib
import json

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

# ─── Module imports ──────────────────────────────────────────────────────────
from atlas_config import get_settings, setup_logging
from explorer import DIAGRAM_HINT, SchemaExplorer
from graph_view import Scene
from viewport import ViewportController

setup_logging()
_settings = get_settings()


# ─── Page config ────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Atlas",
    page_icon="◫",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ─── Inject CSS ──────────────────────────────────────────────────────────────
# Streamlit re-runs this on every interaction, so the :root values are
# simply picked from session state.
_DARK = dict(
    bg="#141e30", surface="#1a2640", card="#1e2d4a",
    border="#2a3f60", border2="#344f78",
    accent="#5badff", yellow="#fbbf24", red="#f87171",
    text="#e8eef6", text2="#9ab0cc", text3="#5a7898",
    edge="#7f9cc2",
)
_LIGHT = dict(
    bg="#f0f4fa", surface="#ffffff", card="#f7f9fc",
    border="#d0daea", border2="#a8bdd4",
    accent="#1a62c7", yellow="#854d0e", red="#991b1b",
    text="#0d1829", text2="#334155", text3="#64748b",
    edge="#5c7394",
)
_T = _DARK if st.session_state.get("dark_mode", True) else _LIGHT

st.markdown(f"""<style>
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&family=JetBrains+Mono:wght@400;500;700&display=swap');

:root {{
  --bg:      {_T["bg"]};
  --surface: {_T["surface"]};
  --card:    {_T["card"]};
  --border:  {_T["border"]};
  --border2: {_T["border2"]};
  --accent:  {_T["accent"]};
  --yellow:  {_T["yellow"]};
  --red:     {_T["red"]};
  --text:    {_T["text"]};
  --text2:   {_T["text2"]};
  --text3:   {_T["text3"]};
  --mono:    'JetBrains Mono', 'Fira Code', monospace;
  --sans:    'Inter', system-ui, sans-serif;
}}

html, body, [class*="css"] {{
  font-family: var(--sans) !important;
  background: var(--bg) !important;
  color: var(--text) !important;
}}
.stApp {{ background: var(--bg) !important; }}
section[data-testid="stSidebar"] {{
  background: var(--surface) !important;
  border-right: 1px solid var(--border) !important;
}}
.sidebar-section {{
  font-family: var(--mono); font-size: 10px; letter-spacing: 2px;
  text-transform: uppercase; color: var(--accent);
  margin: 18px 0 8px; padding-bottom: 4px; border-bottom: 1px solid var(--border);
}}
.sidebar-hint {{ font-size: 11px; color: var(--text3); margin-bottom: 8px; }}
.info-grid {{ display: grid; grid-template-columns: repeat(9, 1fr); gap: 8px; margin-bottom: 12px; }}
.info-item {{
  background: var(--card); border: 1px solid var(--border); border-radius: 8px;
  padding: 8px 10px; display: flex; flex-direction: column;
}}
.info-item .label {{ font-family: var(--mono); font-size: 9px; letter-spacing: 1px; color: var(--text3); text-transform: uppercase; }}
.info-item .value {{ font-family: var(--mono); font-size: 13px; color: var(--text); }}
.status {{ font-family: var(--mono); font-size: 12px; color: var(--text2); margin: 4px 0 12px; }}
.empty-state {{ text-align: center; padding: 80px 20px; color: var(--text2); }}
.empty-state .icon {{ font-size: 42px; color: var(--accent); }}
.erd-hint {{ font-family: var(--mono); font-size: 10px; color: var(--text3); margin-top: 4px; }}
</style>""", unsafe_allow_html=True)


# ═══════════════════════════════════════════════════════════════════════════
# Network builder (pyvis)
# ═══════════════════════════════════════════════════════════════════════════

def _node_label(node) -> str:
    lines = [node.name, node.fields_title]
    for f in node.fields:
        attrs = f"  {' '.join(f.attributes)}" if f.attributes else ""
        tag = "  nullable" if f.is_nullable else ""
        lines.append(f"{f.name}: {f.type}{tag}{attrs}")
    lines.append(node.options_title)
    lines.extend(node.options or ["none"])
    return "\n".join(lines)


def build_pyvis_html(scene: Scene, camera_center: tuple, scale: float, height: int, dark_mode: bool = True) -> str:
    """
    Render the scene as a vis.js network with fixed, pre-computed
    positions and return the HTML string.

    vis.js positions nodes by their centre, so every box is shifted by
    half its size. The initial camera is applied with network.moveTo().
    """
    from pyvis.network import Network

    _bg      = "#141e30" if dark_mode else "#f1f5fb"
    _fg      = "#e8eef6" if dark_mode else "#0d1829"
    _node_bg = "#1e2d4a" if dark_mode else "#ffffff"
    _node_bd = "#2a3f60" if dark_mode else "#aabdd4"
    _node_hb = "#5badff" if dark_mode else "#1a62c7"
    _edge    = _T["edge"]
    _muted   = "#9ab0cc" if dark_mode else "#475569"

    net = Network(height=f"{height}px", width="100%", bgcolor=_bg, font_color=_fg,
                  directed=False, notebook=False)
    net.toggle_physics(False)

    for node in scene.nodes:
        cx, cy = node.x + node.width / 2, node.y + node.height / 2
        net.add_node(node.name, label=_node_label(node), title=node.name,
                     x=cx, y=cy, physics=False, shape="box",
                     color={"background": _node_bg, "border": _node_bd,
                            "highlight": {"background": _node_bg, "border": _node_hb}},
                     font={"color": _fg, "size": 13, "face": "JetBrains Mono", "align": "left"},
                     widthConstraint={"minimum": node.width, "maximum": node.width})

    for edge in scene.edges:
        net.add_edge(edge.source, edge.target, label=edge.label, id=edge.key,
                     color={"color": _edge, "opacity": 0.7},
                     smooth={"type": "cubicBezier", "forceDirection": "horizontal"},
                     font={"color": _muted, "size": 11, "face": "JetBrains Mono",
                           "strokeWidth": 3, "strokeColor": _bg})

    for stub in scene.stubs:
        ghost_id = f"stub::{stub.key}"
        lx, ly = stub.link_position
        net.add_node(ghost_id, label=stub.label, title=f"{stub.source}.{stub.field} → {stub.target}",
                     x=lx + 40, y=ly + 10, physics=False, shape="text",
                     font={"color": _muted, "size": 11, "face": "JetBrains Mono"})
        net.add_edge(stub.source, ghost_id, dashes=[6, 5],
                     color={"color": _edge, "opacity": 0.8}, smooth=False)

    net.set_options("""
    {
      "interaction": {"hover": true, "navigationButtons": true, "dragNodes": true},
      "physics": {"enabled": false}
    }
    """)

    raw_html = net.generate_html(notebook=False)

    move_js = f"""
<script>
(function() {{
  var attempts = 0;
  var poll = setInterval(function() {{
    attempts++;
    if (attempts > 100) {{ clearInterval(poll); return; }}
    if (typeof network === 'undefined' || !network) return;
    clearInterval(poll);
    network.moveTo({{position: {json.dumps({"x": camera_center[0], "y": camera_center[1]})}, scale: {scale}}});
  }}, 50);
}})();
</script>
"""
    return raw_html.replace("</body>", move_js + "\n</body>")


# ═══════════════════════════════════════════════════════════════════════════
# Session state initialisation
# ═══════════════════════════════════════════════════════════════════════════

if "dark_mode" not in st.session_state:
    st.session_state.dark_mode = True
if "explorer" not in st.session_state:
    st.session_state.explorer = SchemaExplorer(_settings)
    st.session_state.explorer.load_demo()
if "upload_digest" not in st.session_state:
    st.session_state.upload_digest = ""
if "widget_gen" not in st.session_state:
    st.session_state.widget_gen = 0        # bumped to reset keyed checkboxes

explorer: SchemaExplorer = st.session_state.explorer


def _refresh_widgets() -> None:
    st.session_state.widget_gen += 1


def _on_toggle(name: str) -> None:
    if explorer.toggle(name):
        explorer.fit_view()


def _on_field_toggle(name: str, which: str, key: str) -> None:
    explorer.set_field_visibility(name, **{which: st.session_state[key]})


# ═══════════════════════════════════════════════════════════════════════════
# Sidebar
# ═══════════════════════════════════════════════════════════════════════════

with st.sidebar:
    st.markdown("""
<div style="padding:4px 12px 0; font-family:'JetBrains Mono',monospace;">
  <div style="font-size:20px;font-weight:700;color:var(--text);letter-spacing:1px;margin-bottom:3px;">ATLAS</div>
  <div style="font-size:11px;color:var(--text3);font-family:'Inter',sans-serif;line-height:1.4;">
    Explore Prisma schemas model by model</div>
</div>""", unsafe_allow_html=True)

    toggle_label = "☀  Light mode" if st.session_state.dark_mode else "☾  Dark mode"
    if st.button(toggle_label, key="theme_btn", width="stretch"):
        st.session_state.dark_mode = not st.session_state.dark_mode
        st.rerun()

    # ── 01 Load schema ───────────────────────────────────────────────────
    st.markdown('<div class="sidebar-section">01 // Load Schema</div>', unsafe_allow_html=True)
    schema_file = st.file_uploader("Upload schema file", type=["prisma", "txt"], key="schema_upload",
                                   label_visibility="collapsed")
    if schema_file:
        raw_bytes = schema_file.getvalue()
        digest = hashlib.md5(raw_bytes).hexdigest()
        if digest != st.session_state.upload_digest:
            st.session_state.upload_digest = digest
            try:
                raw = raw_bytes.decode("utf-8")
            except UnicodeDecodeError:
                explorer.set_status("Could not read the selected file.", is_error=True)
            else:
                if explorer.load_schema_text(raw, schema_file.name):
                    _refresh_widgets()

    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("Load example", width="stretch",
                     help=f"Read {_settings.default_schema_path} from the working directory"):
            if explorer.load_schema_file():
                _refresh_widgets()
    with col_b:
        if st.button("Demo schema", width="stretch"):
            explorer.load_demo()
            _refresh_widgets()

    # ── 02 Models ────────────────────────────────────────────────────────
    st.markdown('<div class="sidebar-section">02 // Models</div>', unsafe_allow_html=True)
    query = st.text_input("Search models", value=explorer.state.search_query,
                          key=f"search_{st.session_state.widget_gen}",
                          placeholder="filter by name…", label_visibility="collapsed")
    explorer.set_search(query)

    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("Select all", width="stretch"):
            explorer.select_all()
            explorer.fit_view()
            _refresh_widgets()
            st.rerun()
    with col_b:
        if st.button("Clear", width="stretch"):
            explorer.clear_selection()
            _refresh_widgets()
            st.rerun()

    st.markdown(f'<div class="sidebar-hint">{explorer.selection_hint()}</div>', unsafe_allow_html=True)
    for entity in explorer.filtered_entities():
        st.checkbox(entity.name, value=explorer.state.is_selected(entity.name),
                    key=f"sel_{st.session_state.widget_gen}_{entity.name}",
                    on_change=_on_toggle, args=(entity.name,))

    # ── 03 Field filters ─────────────────────────────────────────────────
    visible = explorer.visible_entities()
    if visible:
        st.markdown('<div class="sidebar-section">03 // Fields</div>', unsafe_allow_html=True)
        for entity in visible:
            vis = explorer.state.visibility_for(entity.name)
            with st.expander(entity.name):
                for which, label, current in (
                    ("show_relations", "Show relation fields", vis.show_relations),
                    ("show_others",    "Show other fields",    vis.show_others),
                ):
                    key = f"{which}_{st.session_state.widget_gen}_{entity.name}"
                    st.checkbox(label, value=current, key=key,
                                on_change=_on_field_toggle, args=(entity.name, which, key))
                hidden = explorer.hidden_neighbors(entity.name)
                if hidden and st.button(f"Reveal {len(hidden)} related", key=f"nb_{entity.name}"):
                    explorer.reveal_neighbors(entity.name)
                    explorer.fit_view()
                    _refresh_widgets()
                    st.rerun()
                if st.button(f"Hide {entity.name}", key=f"hide_{entity.name}"):
                    explorer.hide(entity.name)
                    _refresh_widgets()
                    st.rerun()


# ═══════════════════════════════════════════════════════════════════════════
# Main
# ═══════════════════════════════════════════════════════════════════════════

if explorer.status.is_error:
    st.error(explorer.status.message)
else:
    st.markdown(f'<div class="status">{explorer.status.message}</div>', unsafe_allow_html=True)

model = explorer.model
if model is None:
    st.markdown("""<div class="empty-state">
      <div class="icon">◫</div>
      <h3>No schema loaded</h3>
      <p>Upload a .prisma file or load the demo schema from the sidebar.</p>
    </div>""", unsafe_allow_html=True)
    st.stop()

items = "".join(
    f'<div class="info-item"><span class="label">{label}</span><span class="value">{value}</span></div>'
    for label, value in model.info.as_items()
)
st.markdown(f'<div class="info-grid">{items}</div>', unsafe_allow_html=True)

tab_erd, tab_details, tab_rels = st.tabs(["Diagram", "Model Details", "Relations"])

# ─── Diagram ─────────────────────────────────────────────────────────────────
with tab_erd:
    scene = explorer.scene()
    if scene.is_empty:
        st.markdown("""<div class="empty-state">
          <div class="icon">◫</div>
          <h3>No models selected</h3>
          <p>Pick models from the selection panel.</p>
        </div>""", unsafe_allow_html=True)
    else:
        size = explorer.viewport_size
        c1, c2, c3, _ = st.columns([1, 1, 1, 5])
        with c1:
            if st.button("⊡ Fit", width="stretch"):
                explorer.fit_view()
        with c2:
            if st.button("+ Zoom", width="stretch"):
                explorer.wheel(size.width / 2, size.height / 2, -1)
        with c3:
            if st.button("− Zoom", width="stretch"):
                explorer.wheel(size.width / 2, size.height / 2, 1)

        vp: ViewportController = explorer.viewport
        try:
            html = build_pyvis_html(scene, vp.visible_world_center(size),
                                    vp.camera.scale, int(size.height),
                                    dark_mode=st.session_state.dark_mode)
            components.html(html, height=int(size.height) + 20, scrolling=False)
            st.markdown(f'<div class="erd-hint">{DIAGRAM_HINT}</div>', unsafe_allow_html=True)
        except Exception as e:
            st.error(f"Diagram render error: {e}")

        if scene.stubs:
            st.markdown('<div class="sidebar-section">Hidden relations</div>', unsafe_allow_html=True)
            cols = st.columns(4)
            for i, stub in enumerate(scene.stubs):
                with cols[i % 4]:
                    if st.button(f"{stub.label}", key=f"stub_{stub.key}",
                                 help=f"{stub.source}.{stub.field}"):
                        explorer.activate_stub(stub)
                        _refresh_widgets()
                        st.rerun()

# ─── Model Details ───────────────────────────────────────────────────────────
with tab_details:
    st.dataframe(model.entities_frame(), width="stretch", hide_index=True)
    for entity in explorer.visible_entities():
        st.markdown(f"**{entity.name}**")
        frame = model.fields_frame(entity.name)
        st.dataframe(frame, width="stretch", hide_index=True,
                     height=min(len(frame) * 35 + 50, 320))
        if entity.options:
            st.code("\n".join(entity.options), language="text")

# ─── Relations ───────────────────────────────────────────────────────────────
with tab_rels:
    route = explorer.route()
    if not route.edges and not route.stubs:
        st.markdown("""<div class="empty-state">
          <div class="icon">⇌</div>
          <h3>No relations between the selected models</h3>
        </div>""", unsafe_allow_html=True)
    else:
        rows = [
            {"From": e.source, "To": e.target, "Cardinality": e.label, "Shown": "✓"}
            for e in route.edges
        ] + [
            {"From": f"{s.source}.{s.field}", "To": s.target, "Cardinality": "", "Shown": ""}
            for s in route.stubs
        ]
        st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)
