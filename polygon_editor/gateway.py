# ============================================================================
# CLAUDE CONTEXT - PERSISTENCE GATEWAY
# ============================================================================
# STATUS: Module Service - Mutations against the polygon store
# PURPOSE: create/edit/delete/recolor with tile cache invalidation on success
# EXPORTS: PersistenceGateway, PendingCommit, CommitOutcome, CommitKind
# DEPENDENCIES: services.polygon_store_client, services.wms_client, .codec
# ============================================================================

"""
Persistence Gateway

Turns a PendingCommit into one polygon store request and reports a
CommitOutcome. Every successful mutation bumps the tile cache-busting
parameter so the rendering surface refetches the WMS tiles; failures never
touch it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from services.polygon_store_client import PolygonStoreClient, StoreResponse
from services.wms_client import TileCacheBuster
from util_logger import LoggerFactory, ComponentType, StructuredLogger
from .codec import encode_feature_collection
from .models import Feature, FeatureId, PolygonGeometry, RECOGNIZED_COLORS


class CommitKind(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    RECOLOR = "recolor"


@dataclass(frozen=True, eq=False)
class PendingCommit:
    """A mutation waiting for (or awaiting the response of) a store request."""
    kind: CommitKind
    feature_id: Optional[FeatureId] = None
    geometry: Optional[PolygonGeometry] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    color: Optional[str] = None


@dataclass
class CommitOutcome:
    """Result of one store mutation."""
    success: bool
    kind: CommitKind
    feature_id: Optional[FeatureId] = None
    message: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


class PersistenceGateway:
    """
    Issues mutations against the polygon store.

    Usage:
        gateway = PersistenceGateway(store_client, wms_client.cache_buster)
        outcome = gateway.recolor("imunim.12", "black")
        if not outcome.success:
            print(outcome.error)
    """

    def __init__(
        self,
        store_client: PolygonStoreClient,
        cache_buster: TileCacheBuster,
        logger: Optional[StructuredLogger] = None
    ):
        self.store_client = store_client
        self.cache_buster = cache_buster
        self.logger = logger or LoggerFactory.create_logger(ComponentType.SERVICE, "PersistenceGateway")

    def create(self, geometry: PolygonGeometry, properties: Dict[str, Any]) -> CommitOutcome:
        """Create a new polygon; the store assigns its id."""
        payload = encode_feature_collection([Feature(geometry=geometry, properties=dict(properties))])
        return self._finish(CommitKind.CREATE, None, self.store_client.create_polygons(payload))

    def edit(
        self,
        feature_id: FeatureId,
        geometry: PolygonGeometry,
        properties: Optional[Dict[str, Any]] = None
    ) -> CommitOutcome:
        """Replace the geometry of an existing polygon, keeping its properties."""
        feature = Feature(id=feature_id, geometry=geometry, properties=dict(properties or {}))
        payload = encode_feature_collection([feature])
        return self._finish(CommitKind.EDIT, feature_id, self.store_client.edit_polygon(feature_id, payload))

    def delete(self, feature_id: FeatureId) -> CommitOutcome:
        """Soft-delete a polygon."""
        return self._finish(CommitKind.DELETE, feature_id, self.store_client.delete_polygon(feature_id))

    def recolor(self, feature_id: FeatureId, new_color: str) -> CommitOutcome:
        """Set the color property of a polygon."""
        if new_color not in RECOGNIZED_COLORS:
            return self._reject(CommitKind.RECOLOR, feature_id, f"Unrecognized color: {new_color}")
        return self._finish(
            CommitKind.RECOLOR,
            feature_id,
            self.store_client.edit_color(feature_id, new_color)
        )

    def execute(self, commit: PendingCommit) -> CommitOutcome:
        """Dispatch a pending commit to the matching operation."""
        if commit.kind == CommitKind.CREATE:
            if commit.geometry is None:
                return self._reject(commit.kind, None, "Create needs a geometry")
            return self.create(commit.geometry, commit.properties)

        if commit.feature_id is None:
            return self._reject(commit.kind, None, f"{commit.kind.value} needs a feature id")

        if commit.kind == CommitKind.EDIT:
            if commit.geometry is None:
                return self._reject(commit.kind, commit.feature_id, "Edit needs a geometry")
            return self.edit(commit.feature_id, commit.geometry, commit.properties)
        if commit.kind == CommitKind.DELETE:
            return self.delete(commit.feature_id)
        if commit.kind == CommitKind.RECOLOR:
            return self.recolor(commit.feature_id, commit.color or "")

        return self._reject(commit.kind, commit.feature_id, f"Unsupported commit kind: {commit.kind}")

    def _reject(self, kind: CommitKind, feature_id: Optional[FeatureId], error: str) -> CommitOutcome:
        self.logger.error(f"Commit rejected before sending: {error}")
        return CommitOutcome(success=False, kind=kind, feature_id=feature_id, error=error)

    def _finish(
        self,
        kind: CommitKind,
        feature_id: Optional[FeatureId],
        response: StoreResponse
    ) -> CommitOutcome:
        if not response.success:
            self.logger.warning(
                f"{kind.value} failed: {response.error}",
                extra={'custom_dimensions': {'feature_id': feature_id, 'status_code': response.status_code}}
            )
            return CommitOutcome(
                success=False,
                kind=kind,
                feature_id=feature_id,
                error=response.error,
                status_code=response.status_code
            )

        bust = self.cache_buster.invalidate()
        self.logger.info(
            f"{kind.value} succeeded: {response.message}",
            extra={'custom_dimensions': {'feature_id': feature_id, 'cache_bust': bust}}
        )
        return CommitOutcome(
            success=True,
            kind=kind,
            feature_id=feature_id,
            message=response.message,
            status_code=response.status_code
        )
