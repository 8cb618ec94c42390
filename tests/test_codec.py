"""Unit tests for GeoJSON <-> Feature conversion."""

import pytest

from conftest import SQUARE, TRIANGLE, feature_collection, geojson_feature
from polygon_editor.codec import (
    GeometryDecodeError,
    decode_feature,
    decode_feature_collection,
    decode_geometry,
    encode_feature,
    encode_feature_collection,
    encode_geometry,
    first_feature,
)
from polygon_editor.models import Feature, PolygonGeometry


# ===========================================================================
# Geometry
# ===========================================================================

class TestDecodeGeometry:
    def test_polygon_rings_are_opened(self):
        geometry = decode_geometry({"type": "Polygon", "coordinates": [SQUARE]})
        assert geometry.exterior == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
        assert geometry.interiors == []

    def test_holes_are_kept_in_order(self):
        hole = [[2.0, 2.0], [4.0, 2.0], [4.0, 4.0], [2.0, 2.0]]
        geometry = decode_geometry({"type": "Polygon", "coordinates": [SQUARE, hole]})
        assert len(geometry.rings) == 2
        assert geometry.interiors[0] == [(2.0, 2.0), (4.0, 2.0), (4.0, 4.0)]

    def test_single_member_multipolygon_is_unwrapped(self):
        geometry = decode_geometry({"type": "MultiPolygon", "coordinates": [[TRIANGLE]]})
        assert geometry.exterior == [(0.0, 0.0), (4.0, 0.0), (0.0, 3.0)]

    def test_multi_member_multipolygon_rejected(self):
        with pytest.raises(GeometryDecodeError, match="single-member"):
            decode_geometry({"type": "MultiPolygon", "coordinates": [[SQUARE], [TRIANGLE]]})

    def test_other_geometry_types_rejected(self):
        with pytest.raises(GeometryDecodeError, match="Unsupported geometry type"):
            decode_geometry({"type": "Point", "coordinates": [1.0, 2.0]})

    def test_degenerate_ring_rejected(self):
        with pytest.raises(GeometryDecodeError, match="Invalid polygon"):
            decode_geometry({"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [0, 0]]]})

    def test_non_numeric_position_rejected(self):
        with pytest.raises(GeometryDecodeError, match="Non-numeric"):
            decode_geometry({"type": "Polygon", "coordinates": [[["a", 0], [1, 1], [2, 0]]]})

    def test_non_finite_position_rejected(self):
        with pytest.raises(GeometryDecodeError, match="Non-finite"):
            decode_geometry({"type": "Polygon", "coordinates": [[[float("nan"), 0], [1, 1], [2, 0]]]})

    def test_missing_geometry_rejected(self):
        with pytest.raises(GeometryDecodeError):
            decode_geometry(None)


class TestEncodeGeometry:
    def test_rings_are_closed_on_the_way_out(self):
        encoded = encode_geometry(PolygonGeometry(rings=[[(0, 0), (4, 0), (0, 3)]]))
        assert encoded == {
            "type": "Polygon",
            "coordinates": [[[0.0, 0.0], [4.0, 0.0], [0.0, 3.0], [0.0, 0.0]]],
        }

    def test_coordinates_are_not_reprojected(self):
        ring = [(700000.5, 3450000.25), (700010.0, 3450000.25), (700010.0, 3450010.0)]
        encoded = encode_geometry(PolygonGeometry(rings=[ring]))
        assert encoded["coordinates"][0][0] == [700000.5, 3450000.25]


# ===========================================================================
# Features
# ===========================================================================

class TestFeatures:
    def test_decode_keeps_id_and_properties(self):
        feature = decode_feature(geojson_feature("imunim.12", color="black"))
        assert feature.id == "imunim.12"
        assert feature.color == "black"

    def test_decode_without_properties(self):
        data = geojson_feature(7)
        data["properties"] = None
        feature = decode_feature(data)
        assert feature.properties == {}
        assert feature.color is None

    def test_decode_rejects_wrong_type(self):
        data = geojson_feature(7)
        data["type"] = "FeatureCollection"
        with pytest.raises(GeometryDecodeError, match="Expected a Feature"):
            decode_feature(data)

    def test_decode_rejects_unusable_id(self):
        data = geojson_feature(7)
        data["id"] = {"nested": True}
        with pytest.raises(GeometryDecodeError, match="Feature id"):
            decode_feature(data)

    def test_encode_omits_missing_id(self):
        feature = Feature(geometry=PolygonGeometry(rings=[[(0, 0), (4, 0), (0, 3)]]), properties={"color": "yellow"})
        encoded = encode_feature(feature)
        assert "id" not in encoded
        assert encoded["properties"] == {"color": "yellow"}

    def test_encode_keeps_id(self):
        feature = decode_feature(geojson_feature(12))
        assert encode_feature(feature)["id"] == 12


class TestFeatureCollections:
    def test_first_feature_of_empty_collection_is_none(self):
        assert first_feature(feature_collection()) is None

    def test_first_feature_wins(self):
        data = feature_collection(geojson_feature(1), geojson_feature(2))
        assert first_feature(data).id == 1

    def test_later_features_are_not_decoded(self):
        broken = {"type": "Feature", "geometry": {"type": "Point", "coordinates": [0, 0]}}
        data = feature_collection(geojson_feature(1), broken)
        assert first_feature(data).id == 1

    def test_missing_features_list_rejected(self):
        with pytest.raises(GeometryDecodeError, match="no 'features' list"):
            first_feature({"type": "FeatureCollection"})

    def test_decode_all(self):
        data = feature_collection(geojson_feature(1), geojson_feature(2, color="black"))
        assert [f.id for f in decode_feature_collection(data)] == [1, 2]

    def test_encode_collection(self):
        features = decode_feature_collection(feature_collection(geojson_feature(1)))
        encoded = encode_feature_collection(features)
        assert encoded["type"] == "FeatureCollection"
        assert encoded["features"][0]["geometry"]["coordinates"][0][-1] == [0.0, 0.0]
