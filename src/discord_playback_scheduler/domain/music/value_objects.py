"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from enum import Enum


class PlayerState(Enum):
    """Player state with enforced transitions.

    State transitions:
    - IDLE -> CONNECTING (first track queued)
    - CONNECTING -> LOADING (voice connection ready)
    - LOADING -> PLAYING (audio started)
    - LOADING -> LOADING (track failed, next head)
    - PLAYING <-> PAUSED
    - PLAYING/PAUSED -> LOADING (track ended, errored or skipped)
    - Any -> TERMINATING (stop, empty queue, connect failure)
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    TERMINATING = "terminating"

    def can_transition_to(self, target: PlayerState) -> bool:
        """Check if transition to target state is valid."""
        valid_transitions = {
            PlayerState.IDLE: {PlayerState.CONNECTING, PlayerState.TERMINATING},
            PlayerState.CONNECTING: {PlayerState.LOADING, PlayerState.TERMINATING},
            PlayerState.LOADING: {
                PlayerState.LOADING,
                PlayerState.PLAYING,
                PlayerState.TERMINATING,
            },
            PlayerState.PLAYING: {
                PlayerState.PAUSED,
                PlayerState.LOADING,
                PlayerState.TERMINATING,
            },
            PlayerState.PAUSED: {
                PlayerState.PLAYING,
                PlayerState.LOADING,
                PlayerState.TERMINATING,
            },
            PlayerState.TERMINATING: set(),
        }
        return target in valid_transitions.get(self, set())

    @property
    def has_track(self) -> bool:
        """True when a head track is loaded or playing (skip is allowed)."""
        return self in {PlayerState.LOADING, PlayerState.PLAYING, PlayerState.PAUSED}

    @property
    def is_terminal(self) -> bool:
        return self == PlayerState.TERMINATING


class SessionEventKind(Enum):
    """Discrete signals that drive the player state machine."""

    CONNECT_READY = "connect_ready"
    CONNECT_FAILED = "connect_failed"
    RESOURCE_READY = "resource_ready"
    RESOURCE_FAILED = "resource_failed"
    TRACK_ENDED = "track_ended"
    TRACK_ERRORED = "track_errored"


class SessionEndReason(Enum):
    """Reasons a session can be destroyed."""

    QUEUE_EXHAUSTED = "queue_exhausted"
    STOPPED = "stopped"
    CONNECT_FAILED = "connect_failed"
    TOO_MANY_FAILURES = "too_many_failures"
    SHUTDOWN = "shutdown"
