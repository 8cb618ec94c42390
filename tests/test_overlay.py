"""Unit tests for the scratch overlay."""

import pytest

from polygon_editor.models import Feature, PolygonGeometry, RenderStyle
from polygon_editor.overlay import (
    DrawBuffer,
    EmptyContent,
    LoadedFeature,
    OverlayStateError,
    ScratchOverlay,
)

STYLE = RenderStyle(fill_color="yellow", stroke_color="black", stroke_width=2)


def _feature(feature_id=5) -> Feature:
    return Feature(
        id=feature_id,
        geometry=PolygonGeometry(rings=[[(0, 0), (10, 0), (10, 10), (0, 10)]]),
        properties={"color": "black"}
    )


class TestContent:
    def test_starts_empty(self):
        overlay = ScratchOverlay()
        assert overlay.is_empty
        assert isinstance(overlay.content, EmptyContent)
        assert overlay.current_features() == []

    def test_load_stores_a_copy(self):
        overlay = ScratchOverlay()
        feature = _feature()
        overlay.load(feature)
        feature.properties["color"] = "yellow"
        assert isinstance(overlay.content, LoadedFeature)
        assert overlay.loaded_feature.color == "black"

    def test_load_replaces_draw_buffer(self):
        overlay = ScratchOverlay()
        overlay.begin_draw()
        overlay.load(_feature())
        assert overlay.draw_buffer is None
        assert overlay.loaded_feature.id == 5

    def test_clear_is_idempotent(self):
        overlay = ScratchOverlay()
        overlay.load(_feature())
        overlay.clear()
        overlay.clear()
        assert overlay.is_empty

    def test_never_more_than_one_feature(self):
        overlay = ScratchOverlay()
        overlay.load(_feature(1))
        overlay.load(_feature(2))
        assert [f.id for f in overlay.current_features()] == [2]


class TestDrawing:
    def test_vertices_accumulate_until_complete(self):
        overlay = ScratchOverlay()
        overlay.begin_draw()
        for point in [(0, 0), (4, 0), (0, 3)]:
            overlay.add_vertex(point)
        assert isinstance(overlay.content, DrawBuffer)
        assert overlay.current_features() == []

        feature = overlay.complete_draw({"color": "yellow"}, STYLE)
        assert overlay.draw_buffer.completed
        assert feature.id is None
        assert feature.geometry.exterior == [(0.0, 0.0), (4.0, 0.0), (0.0, 3.0)]
        assert overlay.current_features() == [feature]

    def test_explicit_ring_overrides_vertices(self):
        overlay = ScratchOverlay()
        overlay.begin_draw()
        overlay.add_vertex((99, 99))
        feature = overlay.complete_draw({}, STYLE, ring=[(0, 0), (4, 0), (0, 3), (0, 0)])
        assert feature.geometry.exterior == [(0.0, 0.0), (4.0, 0.0), (0.0, 3.0)]

    def test_too_few_vertices_rejected(self):
        overlay = ScratchOverlay()
        overlay.begin_draw()
        overlay.add_vertex((0, 0))
        overlay.add_vertex((1, 1))
        with pytest.raises(ValueError):
            overlay.complete_draw({}, STYLE)
        assert not overlay.draw_buffer.completed

    def test_vertex_without_drawing_rejected(self):
        with pytest.raises(OverlayStateError):
            ScratchOverlay().add_vertex((0, 0))

    def test_complete_twice_rejected(self):
        overlay = ScratchOverlay()
        overlay.begin_draw()
        overlay.complete_draw({}, STYLE, ring=[(0, 0), (4, 0), (0, 3)])
        with pytest.raises(OverlayStateError):
            overlay.complete_draw({}, STYLE, ring=[(0, 0), (4, 0), (0, 3)])


class TestReshapeInteraction:
    def test_attach_requires_loaded_feature(self):
        with pytest.raises(OverlayStateError):
            ScratchOverlay().attach_reshape_interaction()

    def test_attach_replaces_previous(self):
        overlay = ScratchOverlay()
        overlay.load(_feature())
        first = overlay.attach_reshape_interaction()
        second = overlay.attach_reshape_interaction()
        assert second.interaction_id != first.interaction_id
        assert overlay.reshape_interaction_count == 1

    def test_detach_returns_handle(self):
        overlay = ScratchOverlay()
        overlay.load(_feature())
        attached = overlay.attach_reshape_interaction()
        assert overlay.detach_reshape_interaction() == attached
        assert overlay.detach_reshape_interaction() is None
        assert overlay.reshape_interaction_count == 0

    def test_reshape_replaces_geometry(self):
        overlay = ScratchOverlay()
        overlay.load(_feature())
        overlay.attach_reshape_interaction()
        updated = overlay.reshape(PolygonGeometry(rings=[[(0, 0), (20, 0), (20, 20)]]))
        assert updated.id == 5
        assert overlay.loaded_feature.geometry.exterior[1] == (20.0, 0.0)
        assert overlay.loaded_feature.color == "black"

    def test_reshape_requires_attached_interaction(self):
        overlay = ScratchOverlay()
        overlay.load(_feature())
        with pytest.raises(OverlayStateError, match="No reshape interaction"):
            overlay.reshape(PolygonGeometry(rings=[[(0, 0), (20, 0), (20, 20)]]))
