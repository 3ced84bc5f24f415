"""
atlas_config.py — Atlas
Settings and logging setup.

Settings are a pydantic-settings model whose defaults reproduce the stock
diagram geometry. An optional YAML file overrides any subset of them:

    node_width: 320
    zoom_max: 3.5
    world_center: [3000, 3000]

The file is located via the ``ATLAS_CONFIG`` environment variable when
no path is passed explicitly. Any setting can also be set as an
``ATLAS_<NAME>`` environment variable (``ATLAS_LOG_LEVEL=debug``), which
wins over the file.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOGGER_ROOT = "atlas"


# ─── Settings ────────────────────────────────────────────────────────────────

class AtlasSettings(BaseSettings):
    """Layout, viewport and runtime configuration."""

    # Layout
    world_center:   tuple[float, float] = (2600.0, 2600.0)
    node_width:     float = Field(300.0, gt=0)
    spiral_spacing: float = Field(240.0, gt=0)
    base_height:    float = Field(92.0, ge=0)
    field_height:   float = Field(25.0, ge=0)
    field_cap:      int   = Field(18, ge=0)
    option_height:  float = Field(22.0, ge=0)

    # Viewport
    initial_scale:   float = Field(0.85, gt=0)
    zoom_in_factor:  float = Field(1.08, gt=1)
    zoom_out_factor: float = Field(0.92, gt=0, lt=1)
    zoom_min:        float = Field(0.18, gt=0)
    zoom_max:        float = Field(2.8, gt=0)
    fit_margin:      float = Field(140.0, ge=0)
    fit_min:         float = Field(0.2, gt=0)
    fit_max:         float = Field(1.2, gt=0)
    viewport_width:  float = Field(1200.0, gt=0)
    viewport_height: float = Field(720.0, gt=0)

    # Runtime
    default_schema_path: Path = Path("schema.prisma")
    log_level: str = "INFO"
    log_file:  Optional[Path] = None

    model_config = SettingsConfigDict(
        env_prefix="ATLAS_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # ATLAS_* variables beat values read from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @model_validator(mode="after")
    def check_ranges(self) -> "AtlasSettings":
        if self.zoom_min > self.zoom_max:
            raise ValueError(f"zoom range must be ordered: {self.zoom_min}..{self.zoom_max}")
        if self.fit_min > self.fit_max:
            raise ValueError(f"fit range must be ordered: {self.fit_min}..{self.fit_max}")
        return self


def load_settings(path: str | Path | None = None) -> AtlasSettings:
    """
    Build settings from an optional YAML file plus environment overrides.

    Parameters
    ----------
    path : YAML file; falls back to $ATLAS_CONFIG, then to defaults

    Raises
    ------
    ValueError : the file is not a mapping, or a value fails validation
                 (pydantic's ValidationError is a ValueError)
    """
    path = path or os.environ.get("ATLAS_CONFIG")
    data: dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
    return AtlasSettings(**data)


_settings: Optional[AtlasSettings] = None


def get_settings() -> AtlasSettings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


# ─── Logging ─────────────────────────────────────────────────────────────────

def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> None:
    """
    Configure the ``atlas`` logger.

    Args:
        level: Logging level name; defaults to the settings value
        log_file: Optional file path for file logging
        format_string: Optional custom format string
    """
    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    log_file_path = log_file or settings.log_file

    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - %(message)s"
        )

    root_logger = logging.getLogger(LOGGER_ROOT)
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(format_string))
    root_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(format_string))
        root_logger.addHandler(file_handler)

    root_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``atlas`` namespace, e.g. 'atlas.schema_parser'."""
    if name == LOGGER_ROOT or name.startswith(f"{LOGGER_ROOT}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")
