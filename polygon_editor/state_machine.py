# ============================================================================
# CLAUDE CONTEXT - INTERACTION STATE MACHINE
# ============================================================================
# STATUS: Module Core - Gesture routing and commit protocol
# PURPOSE: Decide, for each gesture or response, the next mode and the side effects
# EXPORTS: InteractionStateMachine, EditorState, Transition, gesture/response events, effects
# DEPENDENCIES: .overlay, .gateway (commit types), .models
# PATTERNS: Explicit state machine, effects as data
# ENTRY_POINTS: machine.handle(event) -> Transition
# ============================================================================

"""
Interaction State Machine

The machine never performs I/O. handle(event) updates the mode and the
scratch overlay, then returns the side effects the caller must carry out:

    RequestQuery   - look up the feature under a point, answer with QueryResolved
    RequestCommit  - send a mutation to the store, answer with CommitResolved
    Notify         - show a message to the operator

Transitions:

    Idle     --single click, hit-->      Editing   (feature loaded, reshape armed)
    Idle     --single click, miss-->     Idle
    Idle     --draw start-->             Drawing
    Drawing  --draw complete-->          Drawing   (uncommitted, can commit)
    Drawing  --commit ok-->              Idle      (overlay cleared)
    Editing  --commit ok-->              Idle      (overlay cleared, reshape detached)
    Idle     --double click, hit-->      Idle      (delete)
    Idle     --secondary action, hit-->  Idle      (recolor, toggled color)
    Drawing  --draw start-->             Drawing   (buffer restarted)
    Editing  --single click, hit-->      Editing   (new target, reshape re-armed)
    Drawing/Editing --cancel-->          Idle

Only one request is outstanding at a time. Each request carries the epoch
current when it was issued; the epoch advances on every mode transition and
on cancel, and a response with the wrong epoch is dropped as stale.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from util_logger import LoggerFactory, ComponentType, StructuredLogger
from .config import EditorConfig, get_editor_config
from .gateway import CommitKind, CommitOutcome, PendingCommit
from .models import (
    Coordinate,
    Feature,
    InteractionMode,
    PolygonGeometry,
    RECOGNIZED_COLORS,
    RenderStyle,
    toggle_color,
)
from .overlay import OverlayStateError, ScratchOverlay


class QueryPurpose(str, Enum):
    """Why a feature lookup was issued."""
    LOAD = "load"
    DELETE = "delete"
    RECOLOR = "recolor"


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True)
class SingleClick:
    point: Coordinate
    resolution: float


@dataclass(frozen=True)
class DoubleClick:
    point: Coordinate
    resolution: float


@dataclass(frozen=True)
class SecondaryAction:
    """Context-menu gesture."""
    point: Coordinate
    resolution: float


@dataclass(frozen=True)
class DrawStart:
    pass


@dataclass(frozen=True)
class DrawVertex:
    point: Coordinate


@dataclass(frozen=True)
class DrawComplete:
    """Finish the drawing; ring overrides the accumulated vertices when given."""
    ring: Optional[Tuple[Coordinate, ...]] = None


@dataclass(frozen=True)
class Reshape:
    geometry: PolygonGeometry


@dataclass(frozen=True)
class SelectColor:
    color: str


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class QueryResolved:
    epoch: int
    purpose: QueryPurpose
    feature: Optional[Feature] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CommitResolved:
    epoch: int
    outcome: CommitOutcome


Event = Union[
    SingleClick, DoubleClick, SecondaryAction, DrawStart, DrawVertex, DrawComplete,
    Reshape, SelectColor, Commit, Cancel, QueryResolved, CommitResolved
]


# ============================================================================
# EFFECTS
# ============================================================================

@dataclass(frozen=True)
class RequestQuery:
    epoch: int
    purpose: QueryPurpose
    point: Coordinate
    resolution: float


@dataclass(frozen=True)
class RequestCommit:
    epoch: int
    commit: PendingCommit


@dataclass(frozen=True)
class Notify:
    level: str
    message: str


Effect = Union[RequestQuery, RequestCommit, Notify]


# ============================================================================
# STATE
# ============================================================================

@dataclass(frozen=True)
class InFlight:
    """The single outstanding request."""
    kind: str  # "query" or "commit"
    epoch: int
    purpose: Optional[QueryPurpose] = None
    commit_kind: Optional[CommitKind] = None


@dataclass(frozen=True)
class EditorState:
    """Immutable view of the machine after a transition."""
    mode: InteractionMode
    epoch: int
    selected_color: str
    can_commit: bool
    draw_completed: bool
    reshape_armed: bool
    in_flight: Optional[InFlight]
    overlay_features: Tuple[Feature, ...]

    @property
    def phase(self) -> str:
        """Mode name including the uncommitted-draw sub-state."""
        if self.mode == InteractionMode.DRAWING and self.draw_completed:
            return "uncommitted-draw"
        return self.mode.value


@dataclass
class Transition:
    state: EditorState
    effects: List[Effect] = field(default_factory=list)


# ============================================================================
# MACHINE
# ============================================================================

class InteractionStateMachine:
    """
    Owns the interaction mode and the scratch overlay.

    Usage:
        machine = InteractionStateMachine()
        transition = machine.handle(SingleClick((700000.0, 3450000.0), 2.5))
        # transition.effects == [RequestQuery(epoch=0, purpose=LOAD, ...)]
        transition = machine.handle(QueryResolved(0, QueryPurpose.LOAD, feature))
        # transition.state.mode == InteractionMode.EDITING
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        overlay: Optional[ScratchOverlay] = None,
        logger: Optional[StructuredLogger] = None
    ):
        self.config = config or get_editor_config()
        self.overlay = overlay or ScratchOverlay()
        self.logger = logger or LoggerFactory.create_logger(ComponentType.CONTROLLER, "InteractionStateMachine")
        self.mode = InteractionMode.IDLE
        self.epoch = 0
        self.selected_color = self.config.default_fill_color
        self.in_flight: Optional[InFlight] = None

        self._handlers: Dict[type, Callable[[Event], List[Effect]]] = {
            SingleClick: self._on_single_click,
            DoubleClick: self._on_double_click,
            SecondaryAction: self._on_secondary_action,
            DrawStart: self._on_draw_start,
            DrawVertex: self._on_draw_vertex,
            DrawComplete: self._on_draw_complete,
            Reshape: self._on_reshape,
            SelectColor: self._on_select_color,
            Commit: self._on_commit,
            Cancel: self._on_cancel,
            QueryResolved: self._on_query_resolved,
            CommitResolved: self._on_commit_resolved,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def handle(self, event: Event) -> Transition:
        """Single dispatch entry point."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {type(event).__name__}")
        effects = handler(event)
        return Transition(state=self.state(), effects=effects)

    @property
    def can_commit(self) -> bool:
        """Commit affordance: committable content and nothing outstanding."""
        if self.in_flight is not None:
            return False
        if self.mode == InteractionMode.DRAWING:
            buffer = self.overlay.draw_buffer
            return buffer is not None and buffer.completed
        if self.mode == InteractionMode.EDITING:
            return self.overlay.loaded_feature is not None
        return False

    def state(self) -> EditorState:
        buffer = self.overlay.draw_buffer
        return EditorState(
            mode=self.mode,
            epoch=self.epoch,
            selected_color=self.selected_color,
            can_commit=self.can_commit,
            draw_completed=buffer is not None and buffer.completed,
            reshape_armed=self.overlay.reshape_interaction is not None,
            in_flight=self.in_flight,
            overlay_features=tuple(self.overlay.current_features())
        )

    def reset(self) -> None:
        """Back to Idle with an empty overlay; outstanding responses become stale."""
        self.overlay.detach_reshape_interaction()
        self.overlay.clear()
        self.in_flight = None
        self._enter(InteractionMode.IDLE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, mode: InteractionMode) -> None:
        previous = self.mode
        self.mode = mode
        self.epoch += 1
        self.logger.info(
            f"Mode {previous.value} -> {mode.value}",
            extra={'custom_dimensions': {'epoch': self.epoch}}
        )

    def _ignore(self, event: Event, reason: str) -> List[Effect]:
        self.logger.debug(f"Ignoring {type(event).__name__} in {self.mode.value}: {reason}")
        return []

    def _busy(self) -> bool:
        return self.in_flight is not None

    def _request_query(self, purpose: QueryPurpose, point: Coordinate, resolution: float) -> List[Effect]:
        self.in_flight = InFlight(kind="query", epoch=self.epoch, purpose=purpose)
        return [RequestQuery(epoch=self.epoch, purpose=purpose, point=point, resolution=resolution)]

    def _request_commit(self, commit: PendingCommit) -> List[Effect]:
        self.in_flight = InFlight(kind="commit", epoch=self.epoch, commit_kind=commit.kind)
        self.logger.info(
            f"Issuing {commit.kind.value} commit",
            extra={'custom_dimensions': {'feature_id': commit.feature_id, 'epoch': self.epoch}}
        )
        return [RequestCommit(epoch=self.epoch, commit=commit)]

    def _accept_response(self, kind: str, epoch: int) -> bool:
        in_flight = self.in_flight
        if in_flight is None or in_flight.kind != kind or in_flight.epoch != epoch or epoch != self.epoch:
            self.logger.warning(
                f"Dropping stale {kind} response",
                extra={'custom_dimensions': {'response_epoch': epoch, 'current_epoch': self.epoch}}
            )
            return False
        self.in_flight = None
        return True

    # ------------------------------------------------------------------
    # Pointer gestures
    # ------------------------------------------------------------------

    def _on_single_click(self, event: SingleClick) -> List[Effect]:
        if self._busy():
            return self._ignore(event, "request outstanding")
        if self.mode == InteractionMode.DRAWING:
            return self._ignore(event, "clicks place vertices while drawing")
        return self._request_query(QueryPurpose.LOAD, event.point, event.resolution)

    def _on_double_click(self, event: DoubleClick) -> List[Effect]:
        if self._busy():
            return self._ignore(event, "request outstanding")
        if self.mode != InteractionMode.IDLE:
            return self._ignore(event, "delete only from idle")
        return self._request_query(QueryPurpose.DELETE, event.point, event.resolution)

    def _on_secondary_action(self, event: SecondaryAction) -> List[Effect]:
        if self._busy():
            return self._ignore(event, "request outstanding")
        if self.mode != InteractionMode.IDLE:
            return self._ignore(event, "recolor only from idle")
        return self._request_query(QueryPurpose.RECOLOR, event.point, event.resolution)

    def _on_query_resolved(self, event: QueryResolved) -> List[Effect]:
        if not self._accept_response("query", event.epoch):
            return []

        feature = event.feature
        if feature is None:
            self.logger.info(f"No feature found at this location ({event.purpose.value})")
            if event.error:
                return [Notify("warning", f"Feature lookup failed: {event.error}")]
            return []

        if event.purpose == QueryPurpose.LOAD:
            self.overlay.detach_reshape_interaction()
            self.overlay.clear()
            self.overlay.load(feature)
            self.overlay.attach_reshape_interaction()
            self._enter(InteractionMode.EDITING)
            return []

        if feature.id is None:
            return [Notify("error", "Matched feature has no identifier")]

        if event.purpose == QueryPurpose.DELETE:
            return self._request_commit(PendingCommit(kind=CommitKind.DELETE, feature_id=feature.id))

        new_color = toggle_color(feature.color)
        return self._request_commit(
            PendingCommit(kind=CommitKind.RECOLOR, feature_id=feature.id, color=new_color)
        )

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _on_draw_start(self, event: DrawStart) -> List[Effect]:
        if self._busy():
            return self._ignore(event, "request outstanding")
        if self.mode == InteractionMode.EDITING:
            return [Notify("warning", "Save or cancel the current edit before drawing")]
        self.overlay.clear()
        self.overlay.begin_draw()
        self._enter(InteractionMode.DRAWING)
        return []

    def _on_draw_vertex(self, event: DrawVertex) -> List[Effect]:
        if self.mode != InteractionMode.DRAWING or self._busy():
            return self._ignore(event, "not accepting vertices")
        try:
            self.overlay.add_vertex(event.point)
        except OverlayStateError as e:
            return self._ignore(event, str(e))
        return []

    def _on_draw_complete(self, event: DrawComplete) -> List[Effect]:
        if self.mode != InteractionMode.DRAWING or self._busy():
            return self._ignore(event, "no drawing to complete")

        color = self.selected_color
        style = RenderStyle(
            fill_color=color,
            stroke_color=self.config.stroke_color,
            stroke_width=self.config.stroke_width
        )
        ring = list(event.ring) if event.ring is not None else None
        try:
            self.overlay.complete_draw({"color": color}, style, ring=ring)
        except OverlayStateError as e:
            return self._ignore(event, str(e))
        except ValueError as e:
            self.logger.info(f"Drawing rejected: {e}")
            return [Notify("warning", "A polygon needs at least 3 distinct vertices")]

        self.logger.info(f"Drawing completed with color {color}")
        return []

    def _on_select_color(self, event: SelectColor) -> List[Effect]:
        if event.color not in RECOGNIZED_COLORS:
            return [Notify("warning", f"Unrecognized color: {event.color}")]
        self.selected_color = event.color
        return []

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _on_reshape(self, event: Reshape) -> List[Effect]:
        if self.mode != InteractionMode.EDITING or self._busy():
            return self._ignore(event, "no feature being edited")
        try:
            self.overlay.reshape(event.geometry)
        except OverlayStateError as e:
            return self._ignore(event, str(e))
        return []

    # ------------------------------------------------------------------
    # Commit / cancel
    # ------------------------------------------------------------------

    def _on_commit(self, event: Commit) -> List[Effect]:
        if self._busy():
            return self._ignore(event, "request outstanding")
        if not self.can_commit:
            return [Notify("warning", "Nothing to save")]

        if self.mode == InteractionMode.DRAWING:
            feature = self.overlay.draw_buffer.feature
            return self._request_commit(PendingCommit(
                kind=CommitKind.CREATE,
                geometry=feature.geometry,
                properties=dict(feature.properties)
            ))

        feature = self.overlay.loaded_feature
        if feature.id is None:
            return [Notify("error", "Loaded feature has no identifier")]
        return self._request_commit(PendingCommit(
            kind=CommitKind.EDIT,
            feature_id=feature.id,
            geometry=feature.geometry,
            properties=dict(feature.properties)
        ))

    def _on_cancel(self, event: Cancel) -> List[Effect]:
        if self.in_flight is not None and self.in_flight.kind == "commit":
            return [Notify("warning", "Wait for the save to finish")]
        if self.mode == InteractionMode.IDLE and self.in_flight is None:
            return self._ignore(event, "nothing to cancel")
        self.reset()
        return []

    def _on_commit_resolved(self, event: CommitResolved) -> List[Effect]:
        if not self._accept_response("commit", event.epoch):
            return []

        outcome = event.outcome
        if not outcome.success:
            self.logger.warning(f"{outcome.kind.value} failed, keeping current state: {outcome.error}")
            return [Notify("error", f"Could not {outcome.kind.value} polygon: {outcome.error}")]

        if outcome.kind in (CommitKind.CREATE, CommitKind.EDIT):
            self.overlay.detach_reshape_interaction()
            self.overlay.clear()
            self._enter(InteractionMode.IDLE)

        return [Notify("info", outcome.message or f"Polygon {outcome.kind.value} saved")]
