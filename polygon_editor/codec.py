# ============================================================================
# CLAUDE CONTEXT - GEOMETRY CODEC
# ============================================================================
# STATUS: Module Schema - GeoJSON <-> Feature conversion
# PURPOSE: Decode feature-info responses and encode store payloads
# EXPORTS: GeometryDecodeError, decode_geometry, encode_geometry, decode_feature, encode_feature,
#          decode_feature_collection, first_feature, encode_feature_collection
# DEPENDENCIES: pydantic (via models)
# ============================================================================

"""
Geometry Codec

Wire geometry is GeoJSON in the fixed map CRS with explicitly closed rings.
In memory, rings are implicitly closed. Nothing here reprojects.

GeoServer publishes PostGIS polygon columns as MultiPolygon more often than
not; a MultiPolygon with a single member is unwrapped to a Polygon, anything
with more members is rejected because the editor reshapes one polygon.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from util_logger import LoggerFactory, ComponentType
from .models import Coordinate, Feature, PolygonGeometry

logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "GeometryCodec")


class GeometryDecodeError(ValueError):
    """Payload does not describe a usable polygon feature."""


def _decode_position(position: Any) -> Coordinate:
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        raise GeometryDecodeError(f"Invalid position: {position!r}")
    try:
        x, y = float(position[0]), float(position[1])
    except (TypeError, ValueError):
        raise GeometryDecodeError(f"Non-numeric position: {position!r}")
    if not (math.isfinite(x) and math.isfinite(y)):
        raise GeometryDecodeError(f"Non-finite position: {position!r}")
    return (x, y)


def _decode_rings(coordinates: Any) -> List[List[Coordinate]]:
    if not isinstance(coordinates, list) or not coordinates:
        raise GeometryDecodeError("Polygon coordinates must be a non-empty list of rings")
    rings = []
    for ring in coordinates:
        if not isinstance(ring, list):
            raise GeometryDecodeError(f"Ring must be a list of positions, got {type(ring).__name__}")
        rings.append([_decode_position(p) for p in ring])
    return rings


def decode_geometry(geometry: Any) -> PolygonGeometry:
    """
    Decode a GeoJSON Polygon (or single-member MultiPolygon).

    Raises:
        GeometryDecodeError: On any other geometry or invalid rings
    """
    if not isinstance(geometry, dict):
        raise GeometryDecodeError("Geometry must be a GeoJSON object")

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates")

    if geometry_type == "MultiPolygon":
        if not isinstance(coordinates, list) or len(coordinates) != 1:
            count = len(coordinates) if isinstance(coordinates, list) else 0
            raise GeometryDecodeError(f"Expected a single-member MultiPolygon, got {count} members")
        coordinates = coordinates[0]
    elif geometry_type != "Polygon":
        raise GeometryDecodeError(f"Unsupported geometry type: {geometry_type}")

    try:
        return PolygonGeometry(rings=_decode_rings(coordinates))
    except ValidationError as e:
        raise GeometryDecodeError(f"Invalid polygon: {e.errors()[0]['msg']}")


def encode_geometry(geometry: PolygonGeometry) -> Dict[str, Any]:
    """Encode as a GeoJSON Polygon with every ring explicitly closed."""
    return {
        "type": "Polygon",
        "coordinates": [
            [[x, y] for x, y in ring] + [[ring[0][0], ring[0][1]]]
            for ring in geometry.rings
        ]
    }


def decode_feature(data: Any) -> Feature:
    """
    Decode a GeoJSON Feature.

    Raises:
        GeometryDecodeError: If the feature or its geometry is malformed
    """
    if not isinstance(data, dict):
        raise GeometryDecodeError("Feature must be a GeoJSON object")
    if data.get("type", "Feature") != "Feature":
        raise GeometryDecodeError(f"Expected a Feature, got {data.get('type')}")

    properties = data.get("properties") or {}
    if not isinstance(properties, dict):
        raise GeometryDecodeError("Feature properties must be an object")

    feature_id = data.get("id")
    if feature_id is not None and not isinstance(feature_id, (str, int)):
        raise GeometryDecodeError(f"Feature id must be a string or integer, got {feature_id!r}")

    return Feature(
        id=feature_id,
        geometry=decode_geometry(data.get("geometry")),
        properties=dict(properties)
    )


def encode_feature(feature: Feature) -> Dict[str, Any]:
    """Encode as a GeoJSON Feature. Unsaved features carry no id."""
    encoded: Dict[str, Any] = {
        "type": "Feature",
        "geometry": encode_geometry(feature.geometry),
        "properties": dict(feature.properties)
    }
    if feature.id is not None:
        encoded["id"] = feature.id
    return encoded


def _features_list(data: Any) -> list:
    if not isinstance(data, dict):
        raise GeometryDecodeError("Feature collection must be a GeoJSON object")
    features = data.get("features")
    if not isinstance(features, list):
        raise GeometryDecodeError("Feature collection has no 'features' list")
    return features


def decode_feature_collection(data: Any) -> List[Feature]:
    """Decode every feature of a GeoJSON FeatureCollection."""
    return [decode_feature(f) for f in _features_list(data)]


def first_feature(data: Any) -> Optional[Feature]:
    """
    Decode only the first feature of a FeatureCollection.

    The tiled service ranks matches; the first one wins and the others are
    not even decoded. An empty collection yields None.
    """
    features = _features_list(data)
    if not features:
        return None
    if len(features) > 1:
        logger.debug(f"Feature info returned {len(features)} features, using the first")
    return decode_feature(features[0])


def encode_feature_collection(features: Sequence[Feature]) -> Dict[str, Any]:
    """Encode a GeoJSON FeatureCollection."""
    return {
        "type": "FeatureCollection",
        "features": [encode_feature(f) for f in features]
    }
