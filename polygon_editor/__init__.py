# ============================================================================
# CLAUDE CONTEXT - POLYGON EDITOR MODULE
# ============================================================================
# STATUS: Module - Interactive polygon editing synchronized with a remote store
# PURPOSE: Interaction state machine, scratch overlay, feature lookups and commits
# EXPORTS: EditorSession, SessionRegistry, InteractionStateMachine, ScratchOverlay,
#          FeatureQueryService, PersistenceGateway, EditorConfig, get_editor_triggers
# DEPENDENCIES: httpx, pydantic, azure-functions
# ENTRY_POINTS: from polygon_editor import get_editor_triggers
# ============================================================================

"""
Polygon Editor Module

Lets an operator inspect, draw, reshape, recolor and soft-delete polygons
served by a WMS layer while keeping the polygon store in sync.

Architecture:
    polygon_editor/
    ├── config.py         # Editor settings (colors, lookup window, store paths)
    ├── models.py         # Pydantic models (Feature, snapshots, event requests)
    ├── codec.py          # GeoJSON <-> Feature
    ├── query.py          # Feature lookups (WMS GetFeatureInfo)
    ├── overlay.py        # Scratch overlay (draw buffer / loaded feature)
    ├── gateway.py        # Store mutations + tile cache busting
    ├── state_machine.py  # Gesture routing, commit protocol
    ├── session.py        # Session lifecycle, effect execution, registry
    └── triggers.py       # Azure Functions HTTP handlers

Integration:
    from polygon_editor import get_editor_triggers

    triggers = get_editor_triggers()
"""

from .config import EditorConfig, get_editor_config
from .gateway import PersistenceGateway
from .overlay import ScratchOverlay
from .query import FeatureQueryService
from .session import EditorSession, SessionRegistry, get_session_registry
from .state_machine import InteractionStateMachine
from .triggers import get_editor_triggers

__version__ = "1.0.0"
__all__ = [
    "EditorConfig",
    "EditorSession",
    "FeatureQueryService",
    "InteractionStateMachine",
    "PersistenceGateway",
    "ScratchOverlay",
    "SessionRegistry",
    "get_editor_config",
    "get_editor_triggers",
    "get_session_registry",
]
