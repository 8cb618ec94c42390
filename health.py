# ============================================================================
# CLAUDE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks for the WMS server, the polygon store and the editor module
# EXPORTS: get_public_health, get_detailed_health, HealthStatus, CheckResult
# DEPENDENCIES: config, services, util_logger
# PATTERNS: Two-tier health checks (public/detailed)
# ============================================================================

"""
Health Check Module for polyedit

1. Public Health (/api/health):
   - Minimal response: status and timestamp only
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - WMS GetCapabilities probe with latency
   - Polygon store reachability with latency
   - Editor module status (configuration, mounted sessions)
   - Returns 503 if unhealthy

Usage:
    from health import get_public_health, get_detailed_health

    result = get_public_health()
    # {"status": "healthy", "timestamp": "2026-10-19T12:00:00Z"}
"""

import time
import uuid
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Dict, Any

from config import get_app_config
from services.polygon_store_client import PolygonStoreClient
from services.wms_client import WMSClient
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical components failing
    UNHEALTHY = "unhealthy"    # Critical components failing


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float        # Time taken for check
    message: str             # Human-readable status message
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Health Check Functions
# ============================================================================

def check_wms(client: Optional[WMSClient] = None, timeout_seconds: float = 5.0) -> CheckResult:
    """
    Check the WMS server answers GetCapabilities.

    Critical: without it no feature can be looked up.
    """
    start_time = time.perf_counter()
    config = get_app_config()
    owns_client = client is None
    client = client or WMSClient(
        base_url=config.wms_base_url,
        layer=config.wms_layer,
        version=config.wms_version,
        timeout=timeout_seconds
    )

    try:
        response = client.get_capabilities()
    finally:
        if owns_client:
            client.close()

    latency_ms = (time.perf_counter() - start_time) * 1000

    if not response.success:
        logger.error(f"WMS check failed: {response.error}")
        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message="WMS server unavailable",
            details={"error": response.error, "status_code": response.status_code}
        )

    layer_advertised = client.layer in (response.data or "")
    return CheckResult(
        status="pass",
        latency_ms=latency_ms,
        message="WMS capabilities retrieved",
        details={
            "url": client.base_url,
            "layer": client.layer,
            "layer_advertised": layer_advertised
        }
    )


def check_polygon_store(client: Optional[PolygonStoreClient] = None, timeout_seconds: float = 5.0) -> CheckResult:
    """
    Check the polygon store is reachable.

    Critical: without it no edit can be saved.
    """
    start_time = time.perf_counter()
    config = get_app_config()
    owns_client = client is None
    client = client or PolygonStoreClient(base_url=config.store_base_url, timeout=timeout_seconds)

    try:
        response = client.health_check()
    finally:
        if owns_client:
            client.close()

    latency_ms = (time.perf_counter() - start_time) * 1000

    if not response.success:
        logger.error(f"Polygon store check failed: {response.error}")
        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message="Polygon store unavailable",
            details={"error": response.error, "status_code": response.status_code}
        )

    return CheckResult(
        status="pass",
        latency_ms=latency_ms,
        message="Polygon store reachable",
        details={"url": client.base_url, "status_code": response.status_code}
    )


def check_editor_module() -> CheckResult:
    """
    Check the editor module loads with a valid configuration.

    Non-critical: failure means DEGRADED status.
    """
    start_time = time.perf_counter()

    try:
        from polygon_editor import get_editor_config, get_session_registry
        editor_config = get_editor_config()
        registry = get_session_registry()
        details = {
            "available": True,
            "mounted_sessions": len(registry),
            "default_fill_color": editor_config.default_fill_color
        }
        status = "pass"
        message = "Editor module loaded"
    except Exception as e:
        logger.error(f"Editor module check failed: {e}")
        details = {"available": False, "error": str(e)}
        status = "fail"
        message = "Editor module unavailable"

    return CheckResult(
        status=status,
        latency_ms=(time.perf_counter() - start_time) * 1000,
        message=message,
        details=details
    )


# ============================================================================
# Main Entry Points
# ============================================================================

def get_public_health() -> Dict[str, Any]:
    """
    Get minimal health status for public endpoint.

    Returns only status and timestamp - no internal details.
    """
    start_time = time.perf_counter()

    wms_result = check_wms(timeout_seconds=3.0)
    store_result = check_polygon_store(timeout_seconds=3.0)

    if wms_result.status == "pass" and store_result.status == "pass":
        status = HealthStatus.HEALTHY
    else:
        status = HealthStatus.UNHEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_detailed_health() -> Dict[str, Any]:
    """
    Get detailed health status for probes and operations.

    Returns:
        Dict with per-check results and overall status
    """
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())[:8]

    checks = {}
    critical_failures = []
    non_critical_failures = []

    wms_result = check_wms()
    checks["wms"] = wms_result.to_dict()
    if wms_result.status == "fail":
        critical_failures.append("wms")

    store_result = check_polygon_store()
    checks["polygon_store"] = store_result.to_dict()
    if store_result.status == "fail":
        critical_failures.append("polygon_store")

    module_result = check_editor_module()
    checks["editor_module"] = module_result.to_dict()
    if module_result.status == "fail":
        non_critical_failures.append("editor_module")

    if critical_failures:
        status = HealthStatus.UNHEALTHY
    elif non_critical_failures:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'detailed',
            'request_id': request_id,
            'critical_failures': critical_failures,
            'non_critical_failures': non_critical_failures
        }
    })

    return {
        "status": status.value,
        "app": "polyedit",
        "description": "Polygon editor service",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": checks,
        "total_duration_ms": round(total_duration, 2)
    }
