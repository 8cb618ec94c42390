# ============================================================================
# CLAUDE CONTEXT - FEATURE QUERY SERVICE
# ============================================================================
# STATUS: Module Service - Point lookups through WMS GetFeatureInfo
# PURPOSE: Resolve zero or one polygon feature at a map-space point
# EXPORTS: FeatureQueryService, FeatureQueryResult
# DEPENDENCIES: services.wms_client, .codec
# ============================================================================

"""
Feature Query Service

Asks the tiled rendering service which polygon is drawn under a point. The
lookup is restricted to non-deleted features by the layer's CQL filter and
requested as JSON. The first returned feature wins; the service's own
ranking is not second-guessed.

Failures (network, error status, undecodable payload) are logged and turned
into a miss, so a broken lookup never leaves the editor half-way through a
transition.
"""

from dataclasses import dataclass
from typing import Optional

from services.wms_client import WMSClient, Point
from util_logger import LoggerFactory, ComponentType, StructuredLogger
from .codec import GeometryDecodeError, first_feature
from .config import EditorConfig, get_editor_config
from .models import Feature


@dataclass
class FeatureQueryResult:
    """Lookup result; error is set when the miss was caused by a failure."""
    feature: Optional[Feature] = None
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.feature is not None


class FeatureQueryService:
    """
    Point lookups against the polygon layer.

    Usage:
        service = FeatureQueryService(wms_client)
        feature = service.query_at((700000.0, 3450000.0), 2.5)
    """

    def __init__(
        self,
        wms_client: WMSClient,
        config: Optional[EditorConfig] = None,
        logger: Optional[StructuredLogger] = None
    ):
        self.wms_client = wms_client
        self.config = config or get_editor_config()
        self.logger = logger or LoggerFactory.create_logger(ComponentType.SERVICE, "FeatureQueryService")

    def query(self, point: Point, resolution: float) -> FeatureQueryResult:
        """Look up the feature at a point, reporting why a miss happened."""
        try:
            response = self.wms_client.get_feature_info(
                point,
                resolution,
                info_format=self.config.info_format,
                buffer_px=self.config.info_buffer_px,
                feature_count=self.config.feature_count
            )
        except ValueError as e:
            self.logger.warning(f"Feature info request not sent: {e}")
            return FeatureQueryResult(error=str(e))

        if not response.success:
            self.logger.warning(
                f"Feature info lookup failed: {response.error}",
                extra={'custom_dimensions': {'status_code': response.status_code}}
            )
            return FeatureQueryResult(error=response.error)

        try:
            feature = first_feature(response.data)
        except GeometryDecodeError as e:
            self.logger.warning(f"Malformed feature info response: {e}")
            return FeatureQueryResult(error=f"Malformed feature info response: {e}")

        if feature is None:
            self.logger.info(f"No feature found at {point}")
            return FeatureQueryResult()

        self.logger.info(f"Feature {feature.id} found at {point}")
        return FeatureQueryResult(feature=feature)

    def query_at(self, point: Point, resolution: float) -> Optional[Feature]:
        """Feature at a point, or None on a miss or a failed lookup."""
        return self.query(point, resolution).feature
