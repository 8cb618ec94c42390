"""Tests for application and editor configuration."""

import pytest
from pydantic import ValidationError

from config import AppConfig, validate_configuration
from polygon_editor.config import EditorConfig


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for name in ("WMS_BASE_URL", "WMS_VERSION", "STORE_BASE_URL", "MAP_CRS"):
            monkeypatch.delenv(name, raising=False)
        config = AppConfig(_env_file=None)
        assert config.wms_layer == "imunim"
        assert config.wms_version == "1.3.0"
        assert config.wms_cql_filter == "is_deleted=false"
        assert config.map_crs == "EPSG:32636"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WMS_BASE_URL", "https://maps.example/geoserver/ows/")
        monkeypatch.setenv("WMS_VERSION", "1.1.1")
        config = AppConfig(_env_file=None)
        assert config.wms_base_url == "https://maps.example/geoserver/ows"
        assert config.wms_version == "1.1.1"

    def test_unsupported_wms_version(self, monkeypatch):
        monkeypatch.setenv("WMS_VERSION", "2.0.0")
        with pytest.raises(ValidationError, match="WMS_VERSION"):
            AppConfig(_env_file=None)

    def test_store_url_must_be_http(self, monkeypatch):
        monkeypatch.setenv("STORE_BASE_URL", "ftp://store")
        with pytest.raises(ValidationError, match="STORE_BASE_URL"):
            AppConfig(_env_file=None)

    def test_validate_configuration(self):
        assert validate_configuration() is True


class TestEditorConfig:
    def test_session_idle_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("EDITOR_SESSION_IDLE_TIMEOUT", "90")
        assert EditorConfig().session_idle_timeout == 90.0

    def test_session_idle_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="session_idle_timeout"):
            EditorConfig(session_idle_timeout=0)

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("EDITOR_DEFAULT_FILL_COLOR", "black")
        monkeypatch.setenv("EDITOR_INFO_BUFFER_PX", "20")
        config = EditorConfig()
        assert config.default_fill_color == "black"
        assert config.info_buffer_px == 20
        assert config.recolor_path == "/polygons/editColor"

    def test_fill_color_must_be_recognized(self):
        with pytest.raises(ValidationError, match="default_fill_color"):
            EditorConfig(default_fill_color="purple")

    def test_paths_must_be_absolute(self):
        with pytest.raises(ValidationError, match="must start with"):
            EditorConfig(delete_path="polygons/delete")
