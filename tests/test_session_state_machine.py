"""
Unit tests for the recording session state machine.

The transition function is pure, so the whole table is checked directly.
"""

import pytest

from trip_core.domain import Effect, SessionEvent, transition
from trip_core.errors import InvalidTransitionError
from trip_core.proto import TrackingState


S = TrackingState
E = SessionEvent


class TestValidTransitions:
    """Tests for every entry of the transition table."""

    @pytest.mark.parametrize("state, event, expected_state, expected_effects", [
        (S.IDLE, E.START_REQUESTED, S.TRACKING,
         (Effect.RESET_SESSION, Effect.SUBSCRIBE)),
        (S.TRACKING, E.PAUSE_REQUESTED, S.PAUSED,
         (Effect.UNSUBSCRIBE, Effect.FLUSH)),
        (S.PAUSED, E.RESUME_REQUESTED, S.TRACKING,
         (Effect.SUBSCRIBE,)),
        (S.AUTO_PAUSED, E.RESUME_REQUESTED, S.TRACKING,
         (Effect.SUBSCRIBE,)),
        (S.TRACKING, E.STOP_REQUESTED, S.IDLE,
         (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.RESET_PIPELINE)),
        (S.PAUSED, E.STOP_REQUESTED, S.IDLE,
         (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.RESET_PIPELINE)),
        (S.AUTO_PAUSED, E.STOP_REQUESTED, S.IDLE,
         (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.RESET_PIPELINE)),
        (S.TRACKING, E.STILLNESS_TIMEOUT_ELAPSED, S.AUTO_PAUSED,
         (Effect.UNSUBSCRIBE, Effect.FLUSH, Effect.WATCH_MOTION)),
        (S.AUTO_PAUSED, E.FIX_ACCEPTED, S.TRACKING,
         (Effect.SUBSCRIBE,)),
    ])
    def test_transition(self, state, event, expected_state, expected_effects):
        result = transition(state, event)

        assert result.previous is state
        assert result.state is expected_state
        assert result.effects == expected_effects
        assert result.changed

    def test_stop_from_idle_is_noop(self):
        """Test that stop while idle is allowed and does nothing."""
        result = transition(S.IDLE, E.STOP_REQUESTED)

        assert result.state is S.IDLE
        assert result.effects == ()
        assert not result.changed


class TestInvalidControlEvents:
    """Tests for control events outside the table."""

    @pytest.mark.parametrize("state, event", [
        (S.TRACKING, E.START_REQUESTED),
        (S.PAUSED, E.START_REQUESTED),
        (S.AUTO_PAUSED, E.START_REQUESTED),
        (S.IDLE, E.PAUSE_REQUESTED),
        (S.PAUSED, E.PAUSE_REQUESTED),
        (S.AUTO_PAUSED, E.PAUSE_REQUESTED),
        (S.IDLE, E.RESUME_REQUESTED),
        (S.TRACKING, E.RESUME_REQUESTED),
    ])
    def test_raises(self, state, event):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(state, event)

        assert exc_info.value.state is state
        assert exc_info.value.event is event
        assert event.name in str(exc_info.value)


class TestPassiveEvents:
    """Tests for fix and stillness events that do not change state."""

    @pytest.mark.parametrize("state, event", [
        (S.TRACKING, E.FIX_ACCEPTED),
        (S.TRACKING, E.FIX_REJECTED),
        (S.IDLE, E.FIX_ACCEPTED),
        (S.PAUSED, E.FIX_ACCEPTED),
        (S.AUTO_PAUSED, E.FIX_REJECTED),
        (S.IDLE, E.STILLNESS_TIMEOUT_ELAPSED),
        (S.PAUSED, E.STILLNESS_TIMEOUT_ELAPSED),
        (S.AUTO_PAUSED, E.STILLNESS_TIMEOUT_ELAPSED),
    ])
    def test_no_change(self, state, event):
        result = transition(state, event)

        assert result.state is state
        assert result.effects == ()
        assert not result.changed
