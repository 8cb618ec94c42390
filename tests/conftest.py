"""Shared fixtures for the polygon editor tests.

HTTP services are faked with httpx.MockTransport so clients run their real
request and response handling against in-process handlers.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from polygon_editor.config import EditorConfig
from polygon_editor.session import EditorSession
from services.polygon_store_client import PolygonStoreClient
from services.wms_client import TileCacheBuster, WMSClient

WMS_URL = "http://wms.test/geoserver/tiger/ows"
STORE_URL = "http://store.test"

SQUARE = [[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0], [0.0, 0.0]]
TRIANGLE = [[0.0, 0.0], [4.0, 0.0], [0.0, 3.0], [0.0, 0.0]]


def polygon(*rings) -> Dict[str, Any]:
    return {"type": "Polygon", "coordinates": [list(r) for r in rings] or [SQUARE]}


def geojson_feature(feature_id=None, color: Optional[str] = "yellow", rings=None) -> Dict[str, Any]:
    properties = {} if color is None else {"color": color}
    feature = {
        "type": "Feature",
        "geometry": polygon(*(rings or [SQUARE])),
        "properties": properties,
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def feature_collection(*features) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


class FakeWMS:
    """GetFeatureInfo server that answers with a queued FeatureCollection."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.features: List[Dict[str, Any]] = []
        self.status_code = 200
        self.body: Optional[str] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(200, text="<WMS_Capabilities><Layer><Name>imunim</Name></Layer></WMS_Capabilities>")
        if self.body is not None:
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=feature_collection(*self.features))

    @property
    def feature_info_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.params.get("REQUEST") == "GetFeatureInfo"]


class FakeStore:
    """Polygon store that records every POST and answers per path."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.responses: Dict[str, tuple] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))
        if request.url.path in self.responses:
            status_code, payload = self.responses[request.url.path]
            return httpx.Response(status_code, json=payload)
        return httpx.Response(200, json={"message": f"ok {request.url.path}"})

    def fail(self, path: str, status_code: int = 500, error: str = "db down"):
        self.responses[path] = (status_code, {"error": error})

    def posts(self, path: str) -> List[Any]:
        return [body for method, p, body in self.calls if method == "POST" and p == path]


class FixedClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_wms():
    return FakeWMS()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def editor_config():
    return EditorConfig(
        default_fill_color="yellow",
        stroke_color="black",
        stroke_width=2,
        info_format="application/json",
        info_buffer_px=50,
        feature_count=1,
        create_path="/polygons",
        edit_path="/polygons/edit",
        delete_path="/polygons/delete",
        recolor_path="/polygons/editColor",
        view_center=(700000.0, 3450000.0),
        view_zoom=8,
    )


@pytest.fixture
def wms_client(fake_wms, clock):
    client = WMSClient(
        base_url=WMS_URL,
        layer="imunim",
        crs="EPSG:32636",
        cql_filter="is_deleted=false",
        cache_buster=TileCacheBuster(clock=clock),
        transport=httpx.MockTransport(fake_wms.handler),
    )
    yield client
    client.close()


@pytest.fixture
def store_client(fake_store):
    client = PolygonStoreClient(base_url=STORE_URL, transport=httpx.MockTransport(fake_store.handler))
    yield client
    client.close()


@pytest.fixture
def session_factory(fake_wms, fake_store, editor_config, clock):
    """Builds unmounted sessions wired to the fake services."""
    def factory(session_id: Optional[str] = None) -> EditorSession:
        wms = WMSClient(
            base_url=WMS_URL,
            cql_filter="is_deleted=false",
            cache_buster=TileCacheBuster(clock=clock),
            transport=httpx.MockTransport(fake_wms.handler),
        )
        store = PolygonStoreClient(base_url=STORE_URL, transport=httpx.MockTransport(fake_store.handler))
        return EditorSession(wms, store, editor_config, session_id=session_id)
    return factory


@pytest.fixture
def session(session_factory):
    session = session_factory("sess-1")
    session.mount()
    yield session
    session.unmount()
