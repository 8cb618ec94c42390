"""Unit tests for the polygon store client."""

import json

import httpx
import pytest

from conftest import STORE_URL, feature_collection, geojson_feature
from services.polygon_store_client import PolygonStoreClient


def _client(handler, **kwargs) -> PolygonStoreClient:
    return PolygonStoreClient(base_url=STORE_URL, transport=httpx.MockTransport(handler), **kwargs)


class _Recorder:
    def __init__(self, response=None):
        self.requests = []
        self.response = response or (200, {"message": "ok"})

    def __call__(self, request):
        self.requests.append(request)
        status_code, payload = self.response
        if isinstance(payload, str):
            return httpx.Response(status_code, text=payload)
        return httpx.Response(status_code, json=payload)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


# ===========================================================================
# Request shapes
# ===========================================================================

class TestRequestShapes:
    """Each mutation is a JSON POST to its own path."""

    def test_create_posts_feature_collection(self):
        recorder = _Recorder()
        fc = feature_collection(geojson_feature(color="yellow"))
        response = _client(recorder).create_polygons(fc)
        assert response.success
        assert recorder.requests[0].method == "POST"
        assert recorder.requests[0].url.path == "/polygons"
        assert recorder.last_body == {"geojson": fc}

    def test_edit_posts_geojson_and_id(self):
        recorder = _Recorder()
        fc = feature_collection(geojson_feature("imunim.3"))
        _client(recorder).edit_polygon("imunim.3", fc)
        assert recorder.requests[0].url.path == "/polygons/edit"
        assert recorder.last_body == {"geojson": fc, "id": "imunim.3"}

    def test_delete_posts_id(self):
        recorder = _Recorder()
        _client(recorder).delete_polygon(42)
        assert recorder.requests[0].url.path == "/polygons/delete"
        assert recorder.last_body == {"id": 42}

    def test_edit_color_posts_id_and_color(self):
        recorder = _Recorder()
        _client(recorder).edit_color(42, "black")
        assert recorder.requests[0].url.path == "/polygons/editColor"
        assert recorder.last_body == {"id": 42, "color": "black"}

    def test_paths_are_configurable(self):
        recorder = _Recorder()
        _client(recorder, delete_path="/v2/polygons/remove").delete_polygon(1)
        assert recorder.requests[0].url.path == "/v2/polygons/remove"


# ===========================================================================
# Outcome classification
# ===========================================================================

class TestOutcomes:
    def test_success_carries_message(self):
        response = _client(_Recorder((201, {"message": "Polygon created"}))).delete_polygon(1)
        assert response.success
        assert response.status_code == 201
        assert response.message == "Polygon created"

    def test_error_status_uses_error_field(self):
        response = _client(_Recorder((500, {"error": "db down"}))).delete_polygon(1)
        assert not response.success
        assert response.error == "Polygon store error (500): db down"

    def test_error_status_without_json(self):
        response = _client(_Recorder((404, "Not Found"))).delete_polygon(1)
        assert not response.success
        assert "Not Found" in response.error

    def test_error_status_wins_over_message(self):
        response = _client(_Recorder((409, {"message": "looks fine"}))).delete_polygon(1)
        assert not response.success

    @pytest.mark.parametrize("payload", ["not json", [1, 2, 3]])
    def test_malformed_success_body_is_failure(self, payload):
        response = _client(_Recorder((200, payload))).delete_polygon(1)
        assert not response.success
        assert "malformed payload" in response.error

    def test_network_error_is_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        response = _client(handler).delete_polygon(1)
        assert not response.success
        assert "request error" in response.error

    def test_timeout_is_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        response = _client(handler).edit_color(1, "black")
        assert response.status_code == 504


class TestHealthCheck:
    def test_any_answer_below_500_is_reachable(self):
        response = _client(lambda r: httpx.Response(404, text="no route")).health_check()
        assert response.success

    def test_server_error_is_unreachable(self):
        response = _client(lambda r: httpx.Response(503, text="down")).health_check()
        assert not response.success

    def test_connection_error_is_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        response = _client(handler).health_check()
        assert not response.success
        assert response.status_code == 503

    def test_base_url_required(self, monkeypatch):
        monkeypatch.delenv("STORE_BASE_URL", raising=False)
        with pytest.raises(ValueError, match="STORE_BASE_URL"):
            PolygonStoreClient()
