# ============================================================================
# CLAUDE CONTEXT - POLYGON STORE HTTP CLIENT
# ============================================================================
# STATUS: Service Layer - Persistence backend client
# PURPOSE: HTTP client for the polygon store create/edit/delete/recolor endpoints
# EXPORTS: PolygonStoreClient, StoreResponse
# DEPENDENCIES: httpx (sync)
# PORTABLE: Yes - no config imports, accepts constructor params or env vars
# ============================================================================
"""
Polygon Store HTTP Client Service (SYNC VERSION).

The polygon store is an external JSON-over-HTTP service. Every operation is
a POST; success is signalled by a 2xx status with {"message": ...} and
failure by any other status, usually with {"error": ...}.

Endpoints (paths configurable):
- POST /polygons            {"geojson": FeatureCollection}
- POST /polygons/edit       {"geojson": FeatureCollection, "id": ...}
- POST /polygons/delete     {"id": ...}           (soft delete)
- POST /polygons/editColor  {"id": ..., "color": ...}
"""

import os
import httpx
import logging
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FeatureId = Union[str, int]


@dataclass
class StoreResponse:
    """Response wrapper for polygon store calls."""
    success: bool
    status_code: int
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class PolygonStoreClient:
    """
    Sync HTTP client for the polygon store (SYNC VERSION).

    Usage:
        client = PolygonStoreClient(base_url="http://localhost:3000")

        response = client.delete_polygon("imunim.12")
        if not response.success:
            print(response.error)

        client.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        create_path: str = "/polygons",
        edit_path: str = "/polygons/edit",
        delete_path: str = "/polygons/delete",
        recolor_path: str = "/polygons/editColor",
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize polygon store client.

        Args:
            base_url: Store base URL. If not provided, uses STORE_BASE_URL env var.
            timeout: Request timeout in seconds.
            create_path, edit_path, delete_path, recolor_path: Endpoint paths.
            transport: Optional httpx transport (tests use httpx.MockTransport).

        Raises:
            ValueError: If no base_url provided and STORE_BASE_URL not set.
        """
        self.base_url = (base_url or os.getenv("STORE_BASE_URL", "")).rstrip('/')
        if not self.base_url:
            raise ValueError(
                "PolygonStoreClient requires base_url parameter or STORE_BASE_URL environment variable"
            )
        self.timeout = timeout
        self.create_path = create_path
        self.edit_path = edit_path
        self.delete_path = delete_path
        self.recolor_path = recolor_path
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

    def _post(self, path: str, body: Dict[str, Any]) -> StoreResponse:
        """
        POST a JSON body and classify the outcome.

        Any non-2xx status is a failure whatever the payload says. A 2xx
        status whose body is not a JSON object is a malformed response and
        also a failure.
        """
        url = f"{self.base_url}{path}"
        client = self._get_client()

        try:
            response = client.post(url, json=body)

            try:
                data = response.json()
            except ValueError:
                data = None

            if not response.is_success:
                if isinstance(data, dict) and data.get("error"):
                    error = str(data["error"])
                else:
                    error = response.text[:500] if response.text else "Unknown error"
                return StoreResponse(
                    success=False,
                    status_code=response.status_code,
                    data=data if isinstance(data, dict) else None,
                    error=f"Polygon store error ({response.status_code}): {error}"
                )

            if not isinstance(data, dict):
                return StoreResponse(
                    success=False,
                    status_code=response.status_code,
                    error=f"Polygon store returned malformed payload: {response.text[:200]}"
                )

            return StoreResponse(
                success=True,
                status_code=response.status_code,
                message=str(data.get("message", "")),
                data=data
            )

        except httpx.TimeoutException:
            return StoreResponse(
                success=False,
                status_code=504,
                error=f"Polygon store timeout after {self.timeout}s"
            )
        except httpx.RequestError as e:
            return StoreResponse(
                success=False,
                status_code=500,
                error=f"Polygon store request error: {str(e)}"
            )
        except Exception as e:
            logger.exception(f"Unexpected error calling polygon store: {e}")
            return StoreResponse(
                success=False,
                status_code=500,
                error=f"Unexpected error: {str(e)}"
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_polygons(self, feature_collection: Dict[str, Any]) -> StoreResponse:
        """Create the polygons of a GeoJSON FeatureCollection."""
        return self._post(self.create_path, {"geojson": feature_collection})

    def edit_polygon(self, feature_id: FeatureId, feature_collection: Dict[str, Any]) -> StoreResponse:
        """Replace the geometry of an existing polygon."""
        return self._post(self.edit_path, {"geojson": feature_collection, "id": feature_id})

    def delete_polygon(self, feature_id: FeatureId) -> StoreResponse:
        """Soft-delete a polygon (the store flags it, the WMS filter hides it)."""
        return self._post(self.delete_path, {"id": feature_id})

    def edit_color(self, feature_id: FeatureId, color: str) -> StoreResponse:
        """Set the color property of a polygon."""
        return self._post(self.recolor_path, {"id": feature_id, "color": color})

    # =========================================================================
    # Health Check
    # =========================================================================

    def health_check(self) -> StoreResponse:
        """
        Check the store is reachable.

        The store exposes no health route, so any answer below 500 from the
        base URL counts as reachable.
        """
        client = self._get_client()
        try:
            response = client.get(self.base_url)
            return StoreResponse(
                success=response.status_code < 500,
                status_code=response.status_code,
                error=None if response.status_code < 500 else response.text[:200]
            )
        except httpx.RequestError as e:
            return StoreResponse(
                success=False,
                status_code=503,
                error=f"Polygon store unreachable: {str(e)}"
            )
