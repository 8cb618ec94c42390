# ============================================================================
# CLAUDE CONTEXT - POLYGON EDITOR CONFIGURATION
# ============================================================================
# STATUS: Module Configuration - Interaction and persistence settings
# PURPOSE: Editor-level settings (colors, styling, feature-info window, store paths)
# EXPORTS: EditorConfig, get_editor_config
# INTERFACES: Pydantic BaseModel
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from polygon_editor.config import get_editor_config
# ============================================================================

"""
Polygon Editor Configuration

Settings that shape the interaction rather than where services live
(service locations are in the application config.py).

Environment Variables (all optional):
    - EDITOR_DEFAULT_FILL_COLOR: Initially selected fill color (default: yellow)
    - EDITOR_STROKE_COLOR: Outline color of drawn polygons (default: black)
    - EDITOR_STROKE_WIDTH: Outline width of drawn polygons (default: 2)
    - EDITOR_INFO_FORMAT: GetFeatureInfo output format (default: application/json)
    - EDITOR_INFO_BUFFER_PX: Pixels around the query pixel (default: 50)
    - EDITOR_FEATURE_COUNT: Features requested per lookup (default: 1)
    - EDITOR_CREATE_PATH / EDITOR_EDIT_PATH / EDITOR_DELETE_PATH / EDITOR_RECOLOR_PATH
    - EDITOR_VIEW_CENTER_X / EDITOR_VIEW_CENTER_Y / EDITOR_VIEW_ZOOM: Initial view
    - EDITOR_SESSION_IDLE_TIMEOUT: Seconds before an unused session is unmounted (default: 1800)
"""

import os
from typing import Optional, Tuple
from pydantic import BaseModel, Field, field_validator

from .models import RECOGNIZED_COLORS


class EditorConfig(BaseModel):
    """
    Configuration for the polygon editor interaction.
    """

    # Styling of locally drawn polygons
    default_fill_color: str = Field(
        default_factory=lambda: os.getenv("EDITOR_DEFAULT_FILL_COLOR", "yellow"),
        description="Fill color selected when a session mounts"
    )
    stroke_color: str = Field(
        default_factory=lambda: os.getenv("EDITOR_STROKE_COLOR", "black"),
        description="Fixed contrasting outline color"
    )
    stroke_width: float = Field(
        default_factory=lambda: float(os.getenv("EDITOR_STROKE_WIDTH", "2")),
        gt=0,
        description="Fixed outline width in pixels"
    )

    # Feature-info lookups
    info_format: str = Field(
        default_factory=lambda: os.getenv("EDITOR_INFO_FORMAT", "application/json"),
        description="GetFeatureInfo INFO_FORMAT"
    )
    info_buffer_px: int = Field(
        default_factory=lambda: int(os.getenv("EDITOR_INFO_BUFFER_PX", "50")),
        ge=0,
        le=512,
        description="Pixels on each side of the query pixel"
    )
    feature_count: int = Field(
        default_factory=lambda: int(os.getenv("EDITOR_FEATURE_COUNT", "1")),
        ge=1,
        le=50,
        description="FEATURE_COUNT sent with lookups (only the first is used)"
    )

    # Polygon store endpoint paths
    create_path: str = Field(default_factory=lambda: os.getenv("EDITOR_CREATE_PATH", "/polygons"))
    edit_path: str = Field(default_factory=lambda: os.getenv("EDITOR_EDIT_PATH", "/polygons/edit"))
    delete_path: str = Field(default_factory=lambda: os.getenv("EDITOR_DELETE_PATH", "/polygons/delete"))
    recolor_path: str = Field(default_factory=lambda: os.getenv("EDITOR_RECOLOR_PATH", "/polygons/editColor"))

    # Initial view handed to the rendering surface
    view_center: Tuple[float, float] = Field(
        default_factory=lambda: (
            float(os.getenv("EDITOR_VIEW_CENTER_X", "700000")),
            float(os.getenv("EDITOR_VIEW_CENTER_Y", "3450000"))
        ),
        description="Initial view center in the map CRS"
    )
    view_zoom: int = Field(
        default_factory=lambda: int(os.getenv("EDITOR_VIEW_ZOOM", "8")),
        ge=0,
        le=28
    )

    # Session lifetime
    session_idle_timeout: float = Field(
        default_factory=lambda: float(os.getenv("EDITOR_SESSION_IDLE_TIMEOUT", "1800")),
        gt=0,
        description="Seconds a mounted session may go unused before it is unmounted"
    )

    @field_validator("default_fill_color")
    @classmethod
    def validate_fill_color(cls, v: str) -> str:
        """The selectable fill colors are the recognized color values."""
        if v not in RECOGNIZED_COLORS:
            raise ValueError(
                f"default_fill_color must be one of {', '.join(RECOGNIZED_COLORS)}, got {v}"
            )
        return v

    @field_validator("create_path", "edit_path", "delete_path", "recolor_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Endpoint paths must start with '/', got '{v}'")
        return v


_config_cache: Optional[EditorConfig] = None


def get_editor_config() -> EditorConfig:
    """
    Get singleton editor configuration instance.

    Raises:
        ValueError: If environment variables hold invalid values
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = EditorConfig()

    return _config_cache
