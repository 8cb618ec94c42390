# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the polygon editor API
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, polygon_editor, health
# ============================================================================

"""
Azure Functions Entry Point for polyedit

Registers all HTTP triggers:
    - Polygon editor API: 4 routes (session mount/snapshot/unmount, gesture dispatch)
    - Health checks: 2 endpoints
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (WMS and polygon store probes)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import json
import logging

import azure.functions as func

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Polygon Editor API - 4 Routes
# ============================================================================

try:
    from polygon_editor import get_editor_triggers

    logger.info("Registering polygon editor endpoints...")

    # Register all editor endpoints with unique function names
    triggers = get_editor_triggers()

    # Mount a session
    @app.route(route="editor/sessions", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
    def editor_mount_session(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[0]['handler'](req)

    # Snapshot / unmount
    @app.route(route="editor/sessions/{session_id}", methods=["GET", "DELETE"], auth_level=func.AuthLevel.ANONYMOUS)
    def editor_session(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[1]['handler'](req)

    # Gesture dispatch
    @app.route(route="editor/sessions/{session_id}/events", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
    def editor_events(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[2]['handler'](req)

    logger.info("✅ Polygon editor API registered successfully (4 routes)")

except ImportError as e:
    logger.warning(f"⚠️ Polygon editor module not available: {e}")
    logger.warning("Polygon editor API will not be available")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.
    """
    from health import get_public_health

    result = get_public_health()

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for probes and operations.

    Returns 503 if unhealthy, 200 otherwise.
    """
    from health import get_detailed_health, HealthStatus

    result = get_detailed_health()

    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

logger.info("=" * 60)
logger.info("polyedit - Polygon editor service")
logger.info("=" * 60)
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health")
logger.info("  - POST /api/editor/sessions - Mount a session")
logger.info("  - GET/DELETE /api/editor/sessions/{id} - Snapshot / unmount")
logger.info("  - POST /api/editor/sessions/{id}/events - Dispatch a gesture")
logger.info("=" * 60)
