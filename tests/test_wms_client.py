"""Unit tests for the WMS client and tile cache busting."""

import httpx
import pytest

from conftest import WMS_URL, FixedClock, feature_collection, geojson_feature
from services.wms_client import TileCacheBuster, WMSClient


def _client(handler, **kwargs) -> WMSClient:
    return WMSClient(base_url=WMS_URL, transport=httpx.MockTransport(handler), **kwargs)


# ===========================================================================
# TileCacheBuster
# ===========================================================================

class TestTileCacheBuster:
    def test_no_param_before_first_invalidation(self):
        assert TileCacheBuster().params() == {}

    def test_value_is_millisecond_timestamp(self):
        buster = TileCacheBuster(clock=FixedClock(1700000000.5))
        assert buster.invalidate() == 1700000000500
        assert buster.params() == {"_": 1700000000500}

    def test_strictly_increasing_within_same_millisecond(self):
        buster = TileCacheBuster(clock=FixedClock())
        first = buster.invalidate()
        second = buster.invalidate()
        assert second == first + 1
        assert buster.invalidation_count == 2

    def test_clock_going_backwards_still_increases(self):
        clock = FixedClock(2000.0)
        buster = TileCacheBuster(clock=clock)
        first = buster.invalidate()
        clock.now = 1000.0
        assert buster.invalidate() > first


# ===========================================================================
# GetFeatureInfo parameters
# ===========================================================================

class TestFeatureInfoParams:
    """Query window geometry and protocol-version specific keys."""

    def test_window_is_centered_on_point(self):
        client = WMSClient(base_url=WMS_URL)
        params = client.feature_info_params((1000.0, 2000.0), 2.0, buffer_px=50)
        assert params["WIDTH"] == 101
        assert params["HEIGHT"] == 101
        assert params["BBOX"] == "899.0,1899.0,1101.0,2101.0"

    def test_version_130_uses_crs_and_ij(self):
        client = WMSClient(base_url=WMS_URL, crs="EPSG:32636")
        params = client.feature_info_params((0.0, 0.0), 1.0)
        assert params["CRS"] == "EPSG:32636"
        assert params["I"] == 50 and params["J"] == 50
        assert "SRS" not in params

    def test_version_111_uses_srs_and_xy(self):
        client = WMSClient(base_url=WMS_URL, version="1.1.1")
        params = client.feature_info_params((0.0, 0.0), 1.0, buffer_px=5)
        assert params["SRS"] == "EPSG:32636"
        assert params["X"] == 5 and params["Y"] == 5
        assert "CRS" not in params

    def test_json_single_feature_with_filter(self):
        client = WMSClient(base_url=WMS_URL, cql_filter="is_deleted=false")
        params = client.feature_info_params((0.0, 0.0), 1.0)
        assert params["INFO_FORMAT"] == "application/json"
        assert params["FEATURE_COUNT"] == 1
        assert params["QUERY_LAYERS"] == "imunim"
        assert params["CQL_FILTER"] == "is_deleted=false"

    def test_no_filter_when_not_configured(self):
        params = WMSClient(base_url=WMS_URL).feature_info_params((0.0, 0.0), 1.0)
        assert "CQL_FILTER" not in params

    @pytest.mark.parametrize("point,resolution", [
        ((float("nan"), 0.0), 1.0),
        ((0.0, float("inf")), 1.0),
        ((0.0, 0.0), 0.0),
        ((0.0, 0.0), -2.0),
    ])
    def test_unusable_input_rejected(self, point, resolution):
        with pytest.raises(ValueError):
            WMSClient(base_url=WMS_URL).feature_info_params(point, resolution)

    def test_base_url_required(self, monkeypatch):
        monkeypatch.delenv("WMS_BASE_URL", raising=False)
        with pytest.raises(ValueError, match="WMS_BASE_URL"):
            WMSClient()


# ===========================================================================
# Requests
# ===========================================================================

class TestGetFeatureInfo:
    def test_success_returns_collection(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=feature_collection(geojson_feature(3)))

        response = _client(handler).get_feature_info((0.0, 0.0), 1.0)
        assert response.success
        assert response.data["features"][0]["id"] == 3
        assert seen[0].url.params["REQUEST"] == "GetFeatureInfo"

    def test_error_status_is_failure(self):
        response = _client(lambda r: httpx.Response(502, text="bad gateway")).get_feature_info((0.0, 0.0), 1.0)
        assert not response.success
        assert response.status_code == 502
        assert "bad gateway" in response.error

    def test_service_exception_xml_is_failure(self):
        xml = "<ServiceExceptionReport>layer not found</ServiceExceptionReport>"
        response = _client(lambda r: httpx.Response(200, text=xml)).get_feature_info((0.0, 0.0), 1.0)
        assert not response.success
        assert "non-JSON" in response.error

    def test_json_array_is_failure(self):
        response = _client(lambda r: httpx.Response(200, json=[1, 2])).get_feature_info((0.0, 0.0), 1.0)
        assert not response.success
        assert "unexpected JSON type" in response.error

    def test_network_error_is_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        response = _client(handler).get_feature_info((0.0, 0.0), 1.0)
        assert not response.success
        assert "request error" in response.error

    def test_timeout_is_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        response = _client(handler).get_feature_info((0.0, 0.0), 1.0)
        assert response.status_code == 504


class TestTileParams:
    def test_tile_params_carry_filter_and_bust_value(self):
        client = WMSClient(
            base_url=WMS_URL,
            cql_filter="is_deleted=false",
            cache_buster=TileCacheBuster(clock=FixedClock(1.0))
        )
        assert "_" not in client.tile_params()
        client.cache_buster.invalidate()
        params = client.tile_params()
        assert params["_"] == 1000
        assert params["CQL_FILTER"] == "is_deleted=false"
        assert params["TILED"] is True

    def test_capabilities_returns_text(self):
        client = _client(lambda r: httpx.Response(200, text="<WMS_Capabilities/>"))
        response = client.get_capabilities()
        assert response.success
        assert response.data == "<WMS_Capabilities/>"
