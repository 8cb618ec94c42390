# ============================================================================
# CLAUDE CONTEXT - POLYGON EDITOR HTTP TRIGGERS
# ============================================================================
# STATUS: Trigger Layer - HTTP handlers for editor sessions
# PURPOSE: Azure Functions HTTP handlers: mount/unmount sessions, dispatch gestures, snapshots
# EXPORTS: get_editor_triggers, EditorSessionsTrigger, EditorSessionTrigger, EditorEventsTrigger
# DEPENDENCIES: azure-functions, pydantic, .session
# ============================================================================
"""
Polygon Editor HTTP Triggers.

Endpoints:
- POST   /api/editor/sessions                     - Mount a session
- GET    /api/editor/sessions/{session_id}        - Session snapshot
- DELETE /api/editor/sessions/{session_id}        - Unmount a session
- POST   /api/editor/sessions/{session_id}/events - Dispatch one gesture

Event body examples:
    {"type": "single_click", "point": [700000, 3450000], "resolution": 2.5}
    {"type": "draw_start"}
    {"type": "draw_vertex", "point": [700000, 3450000]}
    {"type": "draw_complete"}
    {"type": "reshape", "geometry": {"type": "Polygon", "coordinates": [...]}}
    {"type": "select_color", "color": "black"}
    {"type": "commit"}
    {"type": "cancel"}

Integration (in function_app.py):
    from polygon_editor import get_editor_triggers
"""

import azure.functions as func
import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from util_logger import LoggerFactory, ComponentType, log_exceptions
from .codec import GeometryDecodeError, decode_geometry
from .models import EditorEventRequest
from .session import EditorSession, SessionNotMountedError, SessionRegistry, get_session_registry
from .state_machine import (
    Cancel,
    Commit,
    DoubleClick,
    DrawComplete,
    DrawStart,
    DrawVertex,
    Event,
    Reshape,
    SecondaryAction,
    SelectColor,
    SingleClick,
)

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "EditorTriggers")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_editor_triggers(registry: Optional[SessionRegistry] = None) -> List[Dict[str, Any]]:
    """
    Get list of editor trigger configurations for function_app.py.

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Callable trigger handler
    """
    registry = registry or get_session_registry()
    return [
        {
            'route': 'editor/sessions',
            'methods': ['POST'],
            'handler': EditorSessionsTrigger(registry).handle
        },
        {
            'route': 'editor/sessions/{session_id}',
            'methods': ['GET', 'DELETE'],
            'handler': EditorSessionTrigger(registry).handle
        },
        {
            'route': 'editor/sessions/{session_id}/events',
            'methods': ['POST'],
            'handler': EditorEventsTrigger(registry).handle
        },
    ]


def build_event(request: EditorEventRequest) -> Event:
    """
    Convert a validated request body into a state machine event.

    Raises:
        GeometryDecodeError: If a reshape geometry is not a usable polygon
    """
    if request.type == "single_click":
        return SingleClick(request.point, request.resolution)
    if request.type == "double_click":
        return DoubleClick(request.point, request.resolution)
    if request.type == "secondary_action":
        return SecondaryAction(request.point, request.resolution)
    if request.type == "draw_start":
        return DrawStart()
    if request.type == "draw_vertex":
        return DrawVertex(request.point)
    if request.type == "draw_complete":
        return DrawComplete(tuple(request.ring) if request.ring is not None else None)
    if request.type == "reshape":
        return Reshape(decode_geometry(request.geometry))
    if request.type == "select_color":
        return SelectColor(request.color)
    if request.type == "commit":
        return Commit()
    return Cancel()


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseEditorTrigger:
    """Base class for editor triggers."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def _error_response(self, message: str, status_code: int = 400) -> func.HttpResponse:
        """Create JSON error response."""
        return func.HttpResponse(
            json.dumps({"error": message}),
            status_code=status_code,
            mimetype="application/json"
        )

    def _json_response(self, data: Dict, status_code: int = 200) -> func.HttpResponse:
        """Create JSON success response."""
        return func.HttpResponse(
            json.dumps(data, default=str),
            status_code=status_code,
            mimetype="application/json",
            headers={"Cache-Control": "no-store"}
        )

    def _get_session(self, req: func.HttpRequest) -> Optional[EditorSession]:
        session_id = req.route_params.get('session_id')
        if not session_id:
            return None
        return self.registry.get(session_id)


# ============================================================================
# SESSION TRIGGERS
# ============================================================================

class EditorSessionsTrigger(BaseEditorTrigger):
    """
    Mount a new editor session.

    POST /api/editor/sessions
    """

    @log_exceptions(ComponentType.TRIGGER, "EditorSessionsTrigger")
    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            session = self.registry.create()
            logger.info(f"Session {session.session_id} created ({len(self.registry)} mounted)")
            return self._json_response(session.snapshot().model_dump(mode="json"), status_code=201)

        except ValidationError as e:
            logger.error(f"Invalid editor configuration: {e}")
            return self._error_response(f"Invalid configuration: {e.errors()[0]['msg']}", 500)
        except ValueError as e:
            logger.error(f"Session could not be created: {e}")
            return self._error_response(str(e), 500)


class EditorSessionTrigger(BaseEditorTrigger):
    """
    Session snapshot and unmount.

    GET    /api/editor/sessions/{session_id}
    DELETE /api/editor/sessions/{session_id}
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        session_id = req.route_params.get('session_id')
        if not session_id:
            return self._error_response("Missing session_id in path")

        if req.method.upper() == "DELETE":
            if not self.registry.remove(session_id):
                return self._error_response(f"Session not found: {session_id}", 404)
            logger.info(f"Session {session_id} removed")
            return self._json_response({"session_id": session_id, "unmounted": True})

        session = self.registry.get(session_id)
        if session is None:
            return self._error_response(f"Session not found: {session_id}", 404)
        return self._json_response(session.snapshot().model_dump(mode="json"))


class EditorEventsTrigger(BaseEditorTrigger):
    """
    Dispatch one gesture to a session.

    POST /api/editor/sessions/{session_id}/events
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        session = self._get_session(req)
        if session is None:
            return self._error_response(
                f"Session not found: {req.route_params.get('session_id')}", 404
            )

        try:
            body = req.get_json()
        except ValueError:
            return self._error_response("Request body must be JSON")

        try:
            event = build_event(EditorEventRequest.model_validate(body))
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            message = f"{location}: {first['msg']}" if location else first['msg']
            return self._error_response(f"Invalid event: {message}")
        except GeometryDecodeError as e:
            return self._error_response(f"Invalid geometry: {e}")

        try:
            result = session.dispatch(event)
        except SessionNotMountedError:
            return self._error_response(f"Session not found: {session.session_id}", 404)
        except Exception as e:
            logger.exception(f"Dispatch failed for session {session.session_id}: {e}")
            return self._error_response(f"Internal error: {type(e).__name__}", 500)

        return self._json_response(session.snapshot(result.notices).model_dump(mode="json"))
