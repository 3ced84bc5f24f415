"""Tests for settings loading and logger naming."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from atlas_config import AtlasSettings, get_logger, load_settings, setup_logging


def test_defaults_match_stock_geometry():
    s = AtlasSettings()
    assert s.world_center == (2600.0, 2600.0)
    assert (s.node_width, s.spiral_spacing) == (300.0, 240.0)
    assert (s.zoom_min, s.zoom_max, s.fit_min, s.fit_max) == (0.18, 2.8, 0.2, 1.2)


def test_yaml_overrides_and_unknown_keys(tmp_path):
    """YAML values override defaults; unknown keys are ignored."""
    cfg = tmp_path / "atlas.yaml"
    cfg.write_text("node_width: 320\nworld_center: [10, 20]\nnot_a_setting: 1\n", encoding="utf-8")
    s = load_settings(cfg)
    assert s.node_width == 320
    assert s.world_center == (10.0, 20.0)


def test_env_config_path_and_log_level(tmp_path, monkeypatch):
    cfg = tmp_path / "atlas.yaml"
    cfg.write_text("default_schema_path: other.prisma\n", encoding="utf-8")
    monkeypatch.setenv("ATLAS_CONFIG", str(cfg))
    monkeypatch.setenv("ATLAS_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.default_schema_path == Path("other.prisma")
    assert s.log_level == "debug"


def test_empty_yaml_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("ATLAS_LOG_LEVEL", raising=False)
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_settings(cfg) == AtlasSettings()


def test_invalid_zoom_range_rejected():
    with pytest.raises(ValueError):
        AtlasSettings(zoom_min=0)
    with pytest.raises(ValueError):
        AtlasSettings(fit_min=2.0, fit_max=1.0)


def test_non_mapping_yaml_rejected(tmp_path):
    cfg = tmp_path / "list.yaml"
    cfg.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(cfg)


def test_logger_namespace():
    """Module loggers live under the atlas namespace."""
    assert get_logger("schema_parser").name == "atlas.schema_parser"
    assert get_logger("atlas.viewport").name == "atlas.viewport"
    assert get_logger("atlas_config").name == "atlas.atlas_config"


def test_setup_logging_configures_atlas_logger():
    setup_logging(level="warning")
    root = logging.getLogger("atlas")
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert root.propagate is False


@pytest.mark.parametrize("body", [
    "default_schema_path: null\n",
    "node_width: wide\n",
    "zoom_out_factor: 1.5\n",
    "world_center: [1, 2, 3]\n",
])
def test_bad_yaml_values_rejected(tmp_path, body):
    """Wrongly typed or out-of-range file values fail validation."""
    cfg = tmp_path / "bad.yaml"
    cfg.write_text(body, encoding="utf-8")
    with pytest.raises(ValidationError):
        load_settings(cfg)


def test_bad_env_value_rejected(monkeypatch):
    monkeypatch.setenv("ATLAS_NODE_WIDTH", "not-a-number")
    with pytest.raises(ValidationError):
        AtlasSettings()


def test_env_overrides_file_value(tmp_path, monkeypatch):
    """ATLAS_* variables take precedence over the YAML file."""
    cfg = tmp_path / "atlas.yaml"
    cfg.write_text("node_width: 320\nfit_max: 1.0\n", encoding="utf-8")
    monkeypatch.setenv("ATLAS_NODE_WIDTH", "410")
    s = load_settings(cfg)
    assert s.node_width == 410
    assert s.fit_max == 1.0
