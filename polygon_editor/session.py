# ============================================================================
# CLAUDE CONTEXT - EDITOR SESSION
# ============================================================================
# STATUS: Module Service - Session lifecycle and effect execution
# PURPOSE: Wire one state machine to the query service and persistence gateway
# EXPORTS: EditorSession, SessionRegistry, DispatchResult, SessionNotMountedError, get_session_registry
# DEPENDENCIES: services.wms_client, services.polygon_store_client, config, .state_machine
# PATTERNS: Explicit session object, effect interpreter
# ============================================================================

"""
Editor Session

An EditorSession is created when the rendering surface mounts and discarded
when it unmounts. It owns one InteractionStateMachine (and through it one
ScratchOverlay) plus the clients the machine's effects need.

dispatch(event) feeds the event to the machine, then executes the returned
effects one by one. Each request effect produces a response event that is
fed back to the machine, so a single gesture runs to completion (query,
then possibly a commit) before dispatch returns.

The registry keeps mounted sessions for the HTTP triggers and unmounts the
ones left idle. Dispatches on one session are serialized by the session's
lock.
"""

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from config import AppConfig, get_app_config
from services.polygon_store_client import PolygonStoreClient
from services.wms_client import WMSClient
from util_logger import LoggerFactory, ComponentType
from .codec import encode_feature
from .config import EditorConfig, get_editor_config
from .gateway import CommitOutcome, PersistenceGateway
from .models import EditorSnapshot, Notice
from .query import FeatureQueryService
from .state_machine import (
    CommitResolved,
    Effect,
    EditorState,
    Event,
    InteractionStateMachine,
    Notify,
    QueryResolved,
    RequestCommit,
    RequestQuery,
)


class SessionNotMountedError(RuntimeError):
    """Events were dispatched to a session that is not mounted."""


@dataclass
class DispatchResult:
    """Final state after a dispatch plus everything that happened on the way."""
    state: EditorState
    effects: List[Effect] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)


class EditorSession:
    """
    One operator's editing session.

    Usage:
        session = EditorSession.from_config()
        session.mount()
        result = session.dispatch(SingleClick((700000.0, 3450000.0), 2.5))
        snapshot = session.snapshot(result.notices)
        session.unmount()
    """

    def __init__(
        self,
        wms_client: WMSClient,
        store_client: PolygonStoreClient,
        editor_config: Optional[EditorConfig] = None,
        session_id: Optional[str] = None
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.config = editor_config or get_editor_config()
        self.wms_client = wms_client
        self.store_client = store_client
        self.logger = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "EditorSession", session_id=self.session_id
        )

        self.query_service = FeatureQueryService(
            wms_client,
            self.config,
            logger=LoggerFactory.create_with_context(
                ComponentType.SERVICE, "FeatureQueryService", session_id=self.session_id
            )
        )
        self.gateway = PersistenceGateway(
            store_client,
            wms_client.cache_buster,
            logger=LoggerFactory.create_with_context(
                ComponentType.SERVICE, "PersistenceGateway", session_id=self.session_id
            )
        )
        self.machine = InteractionStateMachine(
            self.config,
            logger=LoggerFactory.create_with_context(
                ComponentType.CONTROLLER, "InteractionStateMachine", session_id=self.session_id
            )
        )

        self.mounted = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        app_config: Optional[AppConfig] = None,
        editor_config: Optional[EditorConfig] = None,
        session_id: Optional[str] = None
    ) -> "EditorSession":
        """Build a session whose clients point at the configured services."""
        app_config = app_config or get_app_config()
        editor_config = editor_config or get_editor_config()

        wms_client = WMSClient(
            base_url=app_config.wms_base_url,
            layer=app_config.wms_layer,
            crs=app_config.map_crs,
            cql_filter=app_config.wms_cql_filter,
            version=app_config.wms_version,
            timeout=app_config.request_timeout
        )
        store_client = PolygonStoreClient(
            base_url=app_config.store_base_url,
            timeout=app_config.request_timeout,
            create_path=editor_config.create_path,
            edit_path=editor_config.edit_path,
            delete_path=editor_config.delete_path,
            recolor_path=editor_config.recolor_path
        )
        return cls(wms_client, store_client, editor_config, session_id=session_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> None:
        self.mounted = True
        self.logger.info("Session mounted")

    def unmount(self) -> None:
        """Discard the overlay and release the HTTP clients."""
        with self._lock:
            if not self.mounted:
                return
            self.machine.reset()
            self.wms_client.close()
            self.store_client.close()
            self.mounted = False
        self.logger.info("Session unmounted")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: Event) -> DispatchResult:
        """
        Run one event, and every response it triggers, to completion.

        Raises:
            SessionNotMountedError: If the session is not mounted
        """
        with self._lock:
            if not self.mounted:
                raise SessionNotMountedError(f"Session {self.session_id} is not mounted")

            executed: List[Effect] = []
            notices: List[Notice] = []
            pending = deque([event])

            while pending:
                transition = self.machine.handle(pending.popleft())
                for effect in transition.effects:
                    executed.append(effect)
                    try:
                        response = self._execute(effect, notices)
                    except Exception as e:
                        self.logger.exception(f"{type(effect).__name__} failed: {e}")
                        response = self._failure_response(effect, e)
                    if response is not None:
                        pending.append(response)

            return DispatchResult(state=self.machine.state(), effects=executed, notices=notices)

    def _execute(self, effect: Effect, notices: List[Notice]) -> Optional[Event]:
        if isinstance(effect, RequestQuery):
            result = self.query_service.query(effect.point, effect.resolution)
            return QueryResolved(
                epoch=effect.epoch,
                purpose=effect.purpose,
                feature=result.feature,
                error=result.error
            )

        if isinstance(effect, RequestCommit):
            outcome = self.gateway.execute(effect.commit)
            return CommitResolved(epoch=effect.epoch, outcome=outcome)

        if isinstance(effect, Notify):
            notices.append(Notice(level=effect.level, message=effect.message))
            if effect.level == "error":
                self.logger.error(effect.message)
            return None

        raise TypeError(f"Unsupported effect: {type(effect).__name__}")

    @staticmethod
    def _failure_response(effect: Effect, error: Exception) -> Optional[Event]:
        """Resolve a request whose execution raised, so the machine leaves in-flight."""
        reason = f"Unexpected error: {type(error).__name__}: {error}"
        if isinstance(effect, RequestQuery):
            return QueryResolved(epoch=effect.epoch, purpose=effect.purpose, error=reason)
        if isinstance(effect, RequestCommit):
            return CommitResolved(
                epoch=effect.epoch,
                outcome=CommitOutcome(
                    success=False,
                    kind=effect.commit.kind,
                    feature_id=effect.commit.feature_id,
                    error=reason
                )
            )
        return None

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, notices: Optional[List[Notice]] = None) -> EditorSnapshot:
        """State as seen by the rendering surface."""
        state = self.machine.state()
        overlay = {
            "type": "FeatureCollection",
            "features": [
                {**encode_feature(f), "style": f.style.model_dump() if f.style else None}
                for f in state.overlay_features
            ]
        }
        return EditorSnapshot(
            session_id=self.session_id,
            mode=state.mode,
            can_commit=state.can_commit,
            awaiting_response=state.in_flight is not None,
            selected_color=state.selected_color,
            epoch=state.epoch,
            reshape_armed=state.reshape_armed,
            overlay=overlay,
            tile_params=self.wms_client.tile_params(),
            view={
                "crs": self.wms_client.crs,
                "center": list(self.config.view_center),
                "zoom": self.config.view_zoom
            },
            notices=notices or []
        )


# ============================================================================
# SESSION REGISTRY
# ============================================================================

class SessionRegistry:
    """
    Mounted sessions by id.

    A session that goes unused for longer than the idle timeout is unmounted
    and dropped the next time the registry is touched, so browsers that never
    send DELETE do not pin their HTTP clients forever.

    Usage:
        registry = SessionRegistry()
        session = registry.create()
        registry.get(session.session_id)
        registry.remove(session.session_id)
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], EditorSession]] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._session_factory = session_factory or EditorSession.from_config
        self.idle_timeout = idle_timeout if idle_timeout is not None else get_editor_config().session_idle_timeout
        self._clock = clock
        self._sessions: Dict[str, EditorSession] = {}
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.logger = LoggerFactory.create_logger(ComponentType.SERVICE, "SessionRegistry")

    def create(self) -> EditorSession:
        self.evict_idle()
        session = self._session_factory()
        session.mount()
        with self._lock:
            self._sessions[session.session_id] = session
            self._last_used[session.session_id] = self._clock()
        return session

    def get(self, session_id: str) -> Optional[EditorSession]:
        """Look a session up and mark it as used."""
        self.evict_idle()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = self._clock()
            return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._last_used.pop(session_id, None)
        if session is None:
            return False
        session.unmount()
        return True

    def evict_idle(self) -> int:
        """Unmount sessions unused for longer than the idle timeout."""
        now = self._clock()
        with self._lock:
            expired = [
                sid for sid, used in self._last_used.items()
                if now - used > self.idle_timeout
            ]
            sessions = [self._sessions.pop(sid) for sid in expired]
            for sid in expired:
                del self._last_used[sid]

        for session in sessions:
            self.logger.info(f"Evicting idle session {session.session_id}")
            session.unmount()
        return len(sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Process-wide registry used by the HTTP triggers."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
