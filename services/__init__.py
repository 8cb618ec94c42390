"""
Service clients for the external systems polyedit talks to.

- wms_client: tiled rendering service (GetFeatureInfo, tile parameters)
- polygon_store_client: persistence backend (create/edit/delete/recolor)

Both are config-independent: they take constructor parameters or fall back
to environment variables.
"""

from .wms_client import WMSClient, WMSResponse, TileCacheBuster
from .polygon_store_client import PolygonStoreClient, StoreResponse

__all__ = [
    "WMSClient",
    "WMSResponse",
    "TileCacheBuster",
    "PolygonStoreClient",
    "StoreResponse",
]
