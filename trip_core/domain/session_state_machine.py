"""
Recording Session State Machine.

Pure transition function (state, event) -> Transition(state, effects).
The tracking engine applies the effects; nothing here touches a source,
a buffer or a clock, so every transition can be tested on its own.

Transitions:
    IDLE         --START_REQUESTED-----------> TRACKING     [RESET_SESSION, SUBSCRIBE]
    TRACKING     --PAUSE_REQUESTED-----------> PAUSED       [UNSUBSCRIBE, FLUSH]
    PAUSED       --RESUME_REQUESTED----------> TRACKING     [SUBSCRIBE]
    AUTO_PAUSED  --RESUME_REQUESTED----------> TRACKING     [SUBSCRIBE]
    non-IDLE     --STOP_REQUESTED------------> IDLE         [UNSUBSCRIBE, FLUSH, RESET_PIPELINE]
    IDLE         --STOP_REQUESTED------------> IDLE         []
    TRACKING     --STILLNESS_TIMEOUT_ELAPSED-> AUTO_PAUSED  [UNSUBSCRIBE, FLUSH, WATCH_MOTION]
    AUTO_PAUSED  --FIX_ACCEPTED--------------> TRACKING     [SUBSCRIBE]

Any other fix or stillness event leaves the state unchanged with no
effects. Any other control event raises InvalidTransitionError.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from trip_core.errors import InvalidTransitionError
from trip_core.proto.tracking_profile import TrackingState


class SessionEvent(Enum):
    """Inputs to the state machine."""

    START_REQUESTED = 0
    PAUSE_REQUESTED = 1
    RESUME_REQUESTED = 2
    STOP_REQUESTED = 3
    FIX_ACCEPTED = 4
    FIX_REJECTED = 5
    STILLNESS_TIMEOUT_ELAPSED = 6


class Effect(Enum):
    """Side effects the engine performs, in the listed order."""

    RESET_SESSION = 0       # fresh accumulators, pipeline, buffer, start time
    SUBSCRIBE = 1           # subscribe at the session profile's hints
    UNSUBSCRIBE = 2
    FLUSH = 3               # hand pending buffer to the writer
    WATCH_MOTION = 4        # low-power subscription while auto-paused
    RESET_PIPELINE = 5


CONTROL_EVENTS = frozenset({
    SessionEvent.START_REQUESTED,
    SessionEvent.PAUSE_REQUESTED,
    SessionEvent.RESUME_REQUESTED,
    SessionEvent.STOP_REQUESTED,
})


@dataclass(frozen=True)
class Transition:
    """Result of applying one event."""

    previous: TrackingState
    state: TrackingState
    effects: Tuple[Effect, ...] = ()

    @property
    def changed(self) -> bool:
        return self.previous is not self.state


_S = TrackingState
_E = SessionEvent

_STOP_EFFECTS = (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.RESET_PIPELINE)

TRANSITIONS: Dict[Tuple[TrackingState, SessionEvent], Tuple[TrackingState, Tuple[Effect, ...]]] = {
    (_S.IDLE, _E.START_REQUESTED): (_S.TRACKING, (Effect.RESET_SESSION, Effect.SUBSCRIBE)),

    (_S.TRACKING, _E.PAUSE_REQUESTED): (_S.PAUSED, (Effect.UNSUBSCRIBE, Effect.FLUSH)),

    (_S.PAUSED, _E.RESUME_REQUESTED): (_S.TRACKING, (Effect.SUBSCRIBE,)),
    (_S.AUTO_PAUSED, _E.RESUME_REQUESTED): (_S.TRACKING, (Effect.SUBSCRIBE,)),

    (_S.IDLE, _E.STOP_REQUESTED): (_S.IDLE, ()),
    (_S.TRACKING, _E.STOP_REQUESTED): (_S.IDLE, _STOP_EFFECTS),
    (_S.PAUSED, _E.STOP_REQUESTED): (_S.IDLE, _STOP_EFFECTS),
    (_S.AUTO_PAUSED, _E.STOP_REQUESTED): (_S.IDLE, _STOP_EFFECTS),

    (_S.TRACKING, _E.STILLNESS_TIMEOUT_ELAPSED): (
        _S.AUTO_PAUSED, (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.WATCH_MOTION)
    ),

    (_S.AUTO_PAUSED, _E.FIX_ACCEPTED): (_S.TRACKING, (Effect.SUBSCRIBE,)),
}


def transition(state: TrackingState, event: SessionEvent) -> Transition:
    """
    Apply an event to a state.

    Args:
        state: Current engine state
        event: Incoming event

    Returns:
        Transition with the new state and the effects to perform

    Raises:
        InvalidTransitionError: For a control event not valid in this state
    """
    entry = TRANSITIONS.get((state, event))
    if entry is None:
        if event in CONTROL_EVENTS:
            raise InvalidTransitionError(state, event)
        return Transition(previous=state, state=state)

    new_state, effects = entry
    return Transition(previous=state, state=new_state, effects=effects)
