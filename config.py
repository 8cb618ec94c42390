# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the WMS server and polygon store endpoints
# EXPORTS: AppConfig, get_app_config, validate_configuration
# DEPENDENCIES: pydantic-settings
# SOURCE: Environment variables, .env file
# PATTERNS: Singleton pattern for config
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration management for polyedit including:
- Tiled rendering service (WMS) location, layer and soft-delete filter
- Polygon store (persistence backend) location
- Fixed map coordinate reference system
- Environment-based configuration with validation

Environment Variables:
    - WMS_BASE_URL: WMS endpoint (default: http://localhost:8080/geoserver/tiger/ows)
    - WMS_LAYER: Polygon layer name (default: imunim)
    - WMS_VERSION: WMS protocol version, 1.3.0 or 1.1.1 (default: 1.3.0)
    - WMS_CQL_FILTER: Server-side filter excluding soft-deleted rows (default: is_deleted=false)
    - MAP_CRS: Projected CRS shared by both services (default: EPSG:32636)
    - STORE_BASE_URL: Polygon store base URL (default: http://localhost:3000)
    - REQUEST_TIMEOUT: HTTP timeout in seconds (default: 30)

Usage:
    from config import get_app_config

    config = get_app_config()
    client = WMSClient(base_url=config.wms_base_url, layer=config.wms_layer)
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

SUPPORTED_WMS_VERSIONS = ("1.1.1", "1.3.0")


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        wms_base_url: WMS endpoint serving tiles and feature info
        wms_layer: Layer holding the editable polygons
        wms_version: WMS protocol version used for GetFeatureInfo
        wms_cql_filter: Filter that hides soft-deleted features
        map_crs: Coordinate reference system of all exchanged geometry
        store_base_url: Polygon store base URL
        request_timeout: Timeout for every outbound HTTP request
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Tiled rendering service
    wms_base_url: str = Field(
        default="http://localhost:8080/geoserver/tiger/ows",
        description="WMS endpoint URL"
    )
    wms_layer: str = Field(default="imunim", description="Polygon layer name")
    wms_version: str = Field(default="1.3.0", description="WMS protocol version")
    wms_cql_filter: str = Field(
        default="is_deleted=false",
        description="CQL filter excluding soft-deleted features"
    )

    # Coordinate reference system
    map_crs: str = Field(default="EPSG:32636", description="Fixed projected CRS")

    # Persistence backend
    store_base_url: str = Field(
        default="http://localhost:3000",
        description="Polygon store base URL"
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="HTTP request timeout in seconds"
    )

    @field_validator("wms_version")
    @classmethod
    def validate_wms_version(cls, v: str) -> str:
        """Only the two GetFeatureInfo dialects we build parameters for."""
        if v not in SUPPORTED_WMS_VERSIONS:
            raise ValueError(
                f"WMS_VERSION must be one of {', '.join(SUPPORTED_WMS_VERSIONS)}, got {v}"
            )
        return v

    @field_validator("wms_base_url", "store_base_url")
    @classmethod
    def validate_url(cls, v: str, info) -> str:
        """Require an absolute http(s) URL without trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name.upper()} must be an http(s) URL, got '{v}'")
        return v.rstrip("/")


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return AppConfig()


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Returns:
        bool: True if configuration is valid

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  WMS: {config.wms_base_url} (layer={config.wms_layer}, version={config.wms_version})")
        logger.info(f"  Soft-delete filter: {config.wms_cql_filter}")
        logger.info(f"  Map CRS: {config.map_crs}")
        logger.info(f"  Polygon store: {config.store_base_url}")
        logger.info(f"  Request timeout: {config.request_timeout}s")
        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()
