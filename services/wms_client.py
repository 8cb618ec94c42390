# ============================================================================
# CLAUDE CONTEXT - WMS HTTP CLIENT
# ============================================================================
# STATUS: Service Layer - Tiled rendering service client
# PURPOSE: HTTP client for WMS GetFeatureInfo/GetCapabilities and tile cache busting
# EXPORTS: WMSClient, WMSResponse, TileCacheBuster
# DEPENDENCIES: httpx (sync)
# PORTABLE: Yes - no config imports, accepts constructor params or env vars
# ============================================================================
"""
WMS HTTP Client Service (SYNC VERSION).

Provides a sync HTTP client for the tiled rendering service (GeoServer WMS):
- GetFeatureInfo point lookups against the polygon layer
- GetCapabilities probe (health checks)
- Tile layer parameters, including the cache-busting value

PORTABILITY:
    Does NOT import from config - accepts base_url as constructor param
    or falls back to WMS_BASE_URL environment variable.

CACHE BUSTING:
    The tile layer is refreshed by changing the "_" request parameter, the
    same trick OpenLayers' updateParams() relies on. It only guarantees the
    browser and the WMS cache key change; intermediate caches are not purged.
"""

import math
import os
import time
import httpx
import logging
from typing import Callable, Dict, Any, Optional, Tuple, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass
class WMSResponse:
    """Response wrapper for WMS calls."""
    success: bool
    status_code: int
    data: Optional[Union[Dict, str]] = None
    content_type: Optional[str] = None
    error: Optional[str] = None


class TileCacheBuster:
    """
    Cache-busting parameter for tile requests.

    The value is a millisecond timestamp that strictly increases on every
    invalidation, even when two invalidations land in the same millisecond.
    """

    PARAM = "_"

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self.value: Optional[int] = None
        self.invalidation_count = 0

    def invalidate(self) -> int:
        """Bump the cache-busting value and return it."""
        now_ms = int(self._clock() * 1000)
        if self.value is not None and now_ms <= self.value:
            now_ms = self.value + 1
        self.value = now_ms
        self.invalidation_count += 1
        logger.debug(f"Tile cache invalidated: {self.PARAM}={now_ms}")
        return now_ms

    def params(self) -> Dict[str, int]:
        """Request parameters to merge into tile requests."""
        if self.value is None:
            return {}
        return {self.PARAM: self.value}


class WMSClient:
    """
    Sync HTTP client for a WMS server (SYNC VERSION).

    Usage:
        client = WMSClient(
            base_url="http://localhost:8080/geoserver/tiger/ows",
            layer="imunim",
            crs="EPSG:32636",
            cql_filter="is_deleted=false"
        )

        response = client.get_feature_info((700000.0, 3450000.0), resolution=2.5)
        if response.success:
            features = response.data.get("features", [])

        # Tile parameters for the rendering surface
        params = client.tile_params()

        client.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        layer: str = "imunim",
        crs: str = "EPSG:32636",
        cql_filter: Optional[str] = None,
        version: str = "1.3.0",
        timeout: float = 30.0,
        cache_buster: Optional[TileCacheBuster] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize WMS client.

        Args:
            base_url: WMS endpoint. If not provided, uses WMS_BASE_URL env var.
            layer: Layer holding the polygons (queried and rendered).
            crs: Coordinate reference system for BBOX and returned geometry.
            cql_filter: Optional server-side filter (soft-delete exclusion).
            version: WMS version, "1.3.0" or "1.1.1".
            timeout: Request timeout in seconds.
            cache_buster: Shared cache buster; a new one is created if omitted.
            transport: Optional httpx transport (tests use httpx.MockTransport).

        Raises:
            ValueError: If no base_url provided and WMS_BASE_URL not set.
        """
        self.base_url = (base_url or os.getenv("WMS_BASE_URL", "")).rstrip('/')
        if not self.base_url:
            raise ValueError(
                "WMSClient requires base_url parameter or WMS_BASE_URL environment variable"
            )
        self.layer = layer
        self.crs = crs
        self.cql_filter = cql_filter
        self.version = version
        self.timeout = timeout
        self.cache_buster = cache_buster or TileCacheBuster()
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create sync HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()

    def _get(self, params: Dict[str, Any], expect_json: bool = True) -> WMSResponse:
        """
        Make GET request to the WMS endpoint.

        GeoServer reports service exceptions as XML with a 200 status, so a
        JSON request only succeeds when the body actually decodes to an object.
        """
        client = self._get_client()

        try:
            response = client.get(self.base_url, params=params)

            if response.status_code >= 400:
                error_text = response.text[:500] if response.text else "Unknown error"
                return WMSResponse(
                    success=False,
                    status_code=response.status_code,
                    error=f"WMS error: {error_text}"
                )

            content_type = response.headers.get("content-type", "")

            if not expect_json:
                return WMSResponse(
                    success=True,
                    status_code=response.status_code,
                    data=response.text,
                    content_type=content_type
                )

            try:
                data = response.json()
            except ValueError:
                return WMSResponse(
                    success=False,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"WMS returned non-JSON payload: {response.text[:200]}"
                )

            if not isinstance(data, dict):
                return WMSResponse(
                    success=False,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"WMS returned unexpected JSON type: {type(data).__name__}"
                )

            return WMSResponse(
                success=True,
                status_code=response.status_code,
                data=data,
                content_type=content_type
            )

        except httpx.TimeoutException:
            return WMSResponse(
                success=False,
                status_code=504,
                error=f"WMS request timeout after {self.timeout}s"
            )
        except httpx.RequestError as e:
            return WMSResponse(
                success=False,
                status_code=500,
                error=f"WMS request error: {str(e)}"
            )
        except Exception as e:
            logger.exception(f"Unexpected error calling WMS: {e}")
            return WMSResponse(
                success=False,
                status_code=500,
                error=f"Unexpected error: {str(e)}"
            )

    # =========================================================================
    # GetFeatureInfo
    # =========================================================================

    def feature_info_params(
        self,
        point: Point,
        resolution: float,
        info_format: str = "application/json",
        buffer_px: int = 50,
        feature_count: int = 1
    ) -> Dict[str, Any]:
        """
        Build GetFeatureInfo parameters for a map-space point.

        The request window is (2 * buffer_px + 1) pixels square, centered on
        the point at the given resolution, and the query pixel is the window
        center. Hit tolerance therefore scales with the view resolution.

        Args:
            point: (x, y) in the map CRS
            resolution: Map units per pixel of the current view
            info_format: Output format of the feature info response
            buffer_px: Pixels on each side of the query pixel
            feature_count: Maximum features the server may return

        Raises:
            ValueError: If the point or resolution is not usable
        """
        x, y = point
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"Point must have finite coordinates, got {point}")
        if not (math.isfinite(resolution) and resolution > 0):
            raise ValueError(f"Resolution must be a positive number, got {resolution}")
        if buffer_px < 0:
            raise ValueError(f"buffer_px must be >= 0, got {buffer_px}")

        size = 2 * buffer_px + 1
        half_extent = (buffer_px + 0.5) * resolution
        bbox = ",".join(
            repr(v) for v in (x - half_extent, y - half_extent, x + half_extent, y + half_extent)
        )

        params: Dict[str, Any] = {
            "SERVICE": "WMS",
            "VERSION": self.version,
            "REQUEST": "GetFeatureInfo",
            "LAYERS": self.layer,
            "QUERY_LAYERS": self.layer,
            "STYLES": "",
            "FORMAT": "image/png",
            "TRANSPARENT": "true",
            "BBOX": bbox,
            "WIDTH": size,
            "HEIGHT": size,
            "INFO_FORMAT": info_format,
            "FEATURE_COUNT": feature_count,
        }

        if self.version == "1.3.0":
            params.update({"CRS": self.crs, "I": buffer_px, "J": buffer_px})
        else:
            params.update({"SRS": self.crs, "X": buffer_px, "Y": buffer_px})

        if self.cql_filter:
            params["CQL_FILTER"] = self.cql_filter

        return params

    def get_feature_info(
        self,
        point: Point,
        resolution: float,
        info_format: str = "application/json",
        buffer_px: int = 50,
        feature_count: int = 1
    ) -> WMSResponse:
        """Query the features rendered at a map-space point."""
        params = self.feature_info_params(
            point,
            resolution,
            info_format=info_format,
            buffer_px=buffer_px,
            feature_count=feature_count
        )
        return self._get(params)

    # =========================================================================
    # Tiles and capabilities
    # =========================================================================

    def tile_params(self) -> Dict[str, Any]:
        """Parameters the rendering surface sends with every tile request."""
        params: Dict[str, Any] = {
            "LAYERS": self.layer,
            "TILED": True,
            "FORMAT": "image/png",
            "TRANSPARENT": True,
        }
        if self.cql_filter:
            params["CQL_FILTER"] = self.cql_filter
        params.update(self.cache_buster.params())
        return params

    def get_capabilities(self) -> WMSResponse:
        """Fetch the capabilities document (used by health checks)."""
        return self._get(
            {"SERVICE": "WMS", "VERSION": self.version, "REQUEST": "GetCapabilities"},
            expect_json=False
        )
