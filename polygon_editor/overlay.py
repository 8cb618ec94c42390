# ============================================================================
# CLAUDE CONTEXT - SCRATCH OVERLAY
# ============================================================================
# STATUS: Module Core - Local draw/edit buffer
# PURPOSE: Single-feature buffer decoupled from the authoritative store
# EXPORTS: ScratchOverlay, EmptyContent, DrawBuffer, LoadedFeature, ReshapeInteraction, OverlayStateError
# DEPENDENCIES: dataclasses, pydantic (via models)
# ============================================================================

"""
Scratch Overlay

Holds at most one feature: either a drawing in progress (DrawBuffer) or a
feature loaded from a feature-info lookup for reshaping (LoadedFeature).
Content is a tagged union, so a draw buffer and a loaded feature can never
coexist.

The overlay is owned by exactly one InteractionStateMachine; nothing else
writes to it.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from util_logger import LoggerFactory, ComponentType
from .models import Coordinate, Feature, FeatureId, PolygonGeometry, RenderStyle

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ScratchOverlay")


class OverlayStateError(RuntimeError):
    """Operation does not apply to the current overlay content."""


@dataclass(frozen=True)
class EmptyContent:
    kind: str = "empty"


@dataclass
class DrawBuffer:
    """Vertices of a polygon being drawn; feature is set once the gesture completes."""
    vertices: List[Coordinate] = field(default_factory=list)
    feature: Optional[Feature] = None
    kind: str = "drawing"

    @property
    def completed(self) -> bool:
        return self.feature is not None


@dataclass
class LoadedFeature:
    """Copy of a stored feature being reshaped."""
    feature: Feature
    kind: str = "loaded"


OverlayContent = Union[EmptyContent, DrawBuffer, LoadedFeature]

EMPTY = EmptyContent()


@dataclass(frozen=True)
class ReshapeInteraction:
    """Handle of the reshape interaction attached to the loaded feature."""
    interaction_id: int
    target_id: Optional[FeatureId]


class ScratchOverlay:
    """
    Single-feature scratch buffer with one reshape interaction slot.

    Usage:
        overlay = ScratchOverlay()
        overlay.load(feature)
        overlay.attach_reshape_interaction()
        overlay.reshape(new_geometry)
        overlay.current_features()   # [feature with new geometry]
        overlay.clear()
    """

    def __init__(self):
        self._content: OverlayContent = EMPTY
        self._reshape: Optional[ReshapeInteraction] = None
        self._next_interaction_id = 1

    @property
    def content(self) -> OverlayContent:
        return self._content

    @property
    def is_empty(self) -> bool:
        return isinstance(self._content, EmptyContent)

    @property
    def draw_buffer(self) -> Optional[DrawBuffer]:
        return self._content if isinstance(self._content, DrawBuffer) else None

    @property
    def loaded_feature(self) -> Optional[Feature]:
        if isinstance(self._content, LoadedFeature):
            return self._content.feature
        return None

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def load(self, feature: Feature) -> None:
        """Load a copy of a feature, replacing whatever was there."""
        if not self.is_empty:
            logger.debug(f"Replacing overlay content ({self._content.kind}) with feature {feature.id}")
        self._content = LoadedFeature(feature=feature.model_copy(deep=True))

    def clear(self) -> None:
        """Drop the content. Idempotent."""
        if self.is_empty:
            return
        logger.debug(f"Overlay cleared ({self._content.kind})")
        self._content = EMPTY

    def current_features(self) -> List[Feature]:
        """Features currently shown on the scratch layer (0 or 1)."""
        content = self._content
        if isinstance(content, LoadedFeature):
            return [content.feature]
        if isinstance(content, DrawBuffer) and content.feature is not None:
            return [content.feature]
        return []

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def begin_draw(self) -> DrawBuffer:
        """Start an empty draw buffer, replacing whatever was there."""
        self._content = DrawBuffer()
        return self._content

    def add_vertex(self, point: Coordinate) -> None:
        buffer = self.draw_buffer
        if buffer is None or buffer.completed:
            raise OverlayStateError("No drawing in progress")
        buffer.vertices.append((float(point[0]), float(point[1])))

    def complete_draw(
        self,
        properties: dict,
        style: RenderStyle,
        ring: Optional[List[Coordinate]] = None
    ) -> Feature:
        """
        Close the drawing into an unsaved feature.

        Args:
            properties: Properties of the new feature (its color)
            style: Render style of the new feature
            ring: Finished exterior ring; defaults to the accumulated vertices

        Raises:
            OverlayStateError: If no drawing is in progress
            ValueError: If the ring is not a valid polygon ring
        """
        buffer = self.draw_buffer
        if buffer is None or buffer.completed:
            raise OverlayStateError("No drawing in progress")

        vertices = list(ring) if ring is not None else list(buffer.vertices)
        geometry = PolygonGeometry(rings=[vertices])
        buffer.vertices = list(geometry.exterior)
        buffer.feature = Feature(geometry=geometry, properties=dict(properties), style=style)
        return buffer.feature

    # ------------------------------------------------------------------
    # Reshape interaction
    # ------------------------------------------------------------------

    @property
    def reshape_interaction(self) -> Optional[ReshapeInteraction]:
        return self._reshape

    @property
    def reshape_interaction_count(self) -> int:
        return 0 if self._reshape is None else 1

    def attach_reshape_interaction(self) -> ReshapeInteraction:
        """Arm a reshape interaction on the loaded feature, detaching any previous one."""
        feature = self.loaded_feature
        if feature is None:
            raise OverlayStateError("Reshape needs a loaded feature")
        self.detach_reshape_interaction()
        self._reshape = ReshapeInteraction(
            interaction_id=self._next_interaction_id,
            target_id=feature.id
        )
        self._next_interaction_id += 1
        logger.debug(f"Reshape interaction {self._reshape.interaction_id} attached to {feature.id}")
        return self._reshape

    def detach_reshape_interaction(self) -> Optional[ReshapeInteraction]:
        """Detach the reshape interaction, if any, and return it."""
        detached, self._reshape = self._reshape, None
        if detached is not None:
            logger.debug(f"Reshape interaction {detached.interaction_id} detached")
        return detached

    def reshape(self, geometry: PolygonGeometry) -> Feature:
        """Replace the geometry of the loaded feature."""
        content = self._content
        if not isinstance(content, LoadedFeature):
            raise OverlayStateError("Reshape needs a loaded feature")
        if self._reshape is None:
            raise OverlayStateError("No reshape interaction attached")
        content.feature = content.feature.with_geometry(geometry)
        return content.feature
