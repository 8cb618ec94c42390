# ============================================================================
# CLAUDE CONTEXT - POLYGON EDITOR MODELS
# ============================================================================
# STATUS: Module Models - Features, geometry, snapshots and event requests
# PURPOSE: In-memory feature representation and HTTP request/response models
# EXPORTS: Feature, PolygonGeometry, RenderStyle, InteractionMode, EditorSnapshot, EditorEventRequest, toggle_color
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: All classes in this file except InteractionMode
# DEPENDENCIES: pydantic, typing
# PATTERNS: Data Transfer Objects (DTOs)
# ENTRY_POINTS: from polygon_editor.models import Feature
# ============================================================================

"""
Polygon Editor Pydantic Models

The in-memory Feature keeps its rings implicitly closed: the repeated
closing vertex that GeoJSON requires is stripped on the way in (see
codec.py) and appended again on the way out.

The only property inspected by name is "color", an enum-like string whose
recognized values are "yellow" and "black".
"""

from enum import Enum
from typing import List, Dict, Any, Optional, Literal, Tuple, Union
from pydantic import BaseModel, Field, field_validator, model_validator

COLOR_YELLOW = "yellow"
COLOR_BLACK = "black"
RECOGNIZED_COLORS = (COLOR_YELLOW, COLOR_BLACK)

FeatureId = Union[int, str]
Coordinate = Tuple[float, float]


def toggle_color(color: Optional[str]) -> str:
    """black -> yellow, anything else (yellow, unknown, missing) -> black."""
    return COLOR_YELLOW if color == COLOR_BLACK else COLOR_BLACK


class InteractionMode(str, Enum):
    """Exactly one mode is active at any time."""
    IDLE = "idle"
    DRAWING = "drawing"
    EDITING = "editing"


def open_ring(ring: List[Coordinate]) -> List[Coordinate]:
    """Drop trailing vertices that repeat the first one."""
    ring = list(ring)
    while len(ring) > 1 and ring[-1] == ring[0]:
        ring.pop()
    return ring


class PolygonGeometry(BaseModel):
    """
    Polygon as an ordered list of implicitly closed rings.

    The first ring is the exterior, the rest are holes. Coordinates are in
    the fixed map CRS and are never reprojected.
    """
    rings: List[List[Coordinate]] = Field(
        description="Rings without the repeated closing vertex"
    )

    @field_validator("rings")
    @classmethod
    def validate_rings(cls, rings: List[List[Coordinate]]) -> List[List[Coordinate]]:
        if not rings:
            raise ValueError("Polygon needs at least an exterior ring")
        normalized = []
        for index, ring in enumerate(rings):
            ring = open_ring(ring)
            if len(set(ring)) < 3:
                raise ValueError(f"Ring {index} needs at least 3 distinct vertices, got {len(set(ring))}")
            normalized.append(ring)
        return normalized

    @property
    def exterior(self) -> List[Coordinate]:
        return self.rings[0]

    @property
    def interiors(self) -> List[List[Coordinate]]:
        return self.rings[1:]


class RenderStyle(BaseModel):
    """Render style given to a locally drawn polygon."""
    fill_color: str
    stroke_color: str
    stroke_width: float


class Feature(BaseModel):
    """
    A polygon feature.

    The id is assigned by the polygon store and is None only for a freshly
    drawn feature that has not been created yet.
    """
    id: Optional[FeatureId] = None
    geometry: PolygonGeometry
    properties: Dict[str, Any] = Field(default_factory=dict)
    style: Optional[RenderStyle] = None

    @property
    def color(self) -> Optional[str]:
        value = self.properties.get("color")
        return value if isinstance(value, str) else None

    def with_geometry(self, geometry: PolygonGeometry) -> "Feature":
        return self.model_copy(update={"geometry": geometry}, deep=True)


class Notice(BaseModel):
    """Operator-visible message."""
    level: Literal["info", "warning", "error"]
    message: str


class EditorSnapshot(BaseModel):
    """
    State of one editor session as seen by the rendering surface.

    can_commit drives the save affordance; overlay is the scratch layer as a
    GeoJSON FeatureCollection; tile_params must be applied to the WMS tile
    layer (they carry the cache-busting value).
    """
    session_id: str
    mode: InteractionMode
    can_commit: bool
    awaiting_response: bool
    selected_color: str
    epoch: int
    reshape_armed: bool
    overlay: Dict[str, Any]
    tile_params: Dict[str, Any]
    view: Dict[str, Any]
    notices: List[Notice] = Field(default_factory=list)


EventType = Literal[
    "single_click",
    "double_click",
    "secondary_action",
    "draw_start",
    "draw_vertex",
    "draw_complete",
    "reshape",
    "select_color",
    "commit",
    "cancel",
]

_POINT_EVENTS = {"single_click", "double_click", "secondary_action"}


class EditorEventRequest(BaseModel):
    """
    Gesture posted by the rendering surface.

    Pointer gestures carry the map-space point and the view resolution;
    draw_vertex carries a point; draw_complete may carry the finished ring;
    reshape carries the edited GeoJSON geometry; select_color carries a color.
    """
    type: EventType
    point: Optional[Coordinate] = None
    resolution: Optional[float] = Field(default=None, gt=0)
    ring: Optional[List[Coordinate]] = None
    geometry: Optional[Dict[str, Any]] = None
    color: Optional[str] = None

    @model_validator(mode="after")
    def check_payload(self) -> "EditorEventRequest":
        if self.type in _POINT_EVENTS and (self.point is None or self.resolution is None):
            raise ValueError(f"'{self.type}' requires 'point' and 'resolution'")
        if self.type == "draw_vertex" and self.point is None:
            raise ValueError("'draw_vertex' requires 'point'")
        if self.type == "reshape" and self.geometry is None:
            raise ValueError("'reshape' requires 'geometry'")
        if self.type == "select_color" and self.color not in RECOGNIZED_COLORS:
            raise ValueError(f"'select_color' requires 'color' in {', '.join(RECOGNIZED_COLORS)}")
        return self
