"""
Music Bounded Context

Domain logic for track descriptors, the playback queue and per-guild sessions.
"""

from discord_playback_scheduler.domain.music.entities import (
    AudioResource,
    PlaybackQueue,
    PlaybackSession,
    TrackDescriptor,
)
from discord_playback_scheduler.domain.music.repository import SessionRegistry
from discord_playback_scheduler.domain.music.value_objects import (
    PlayerState,
    SessionEndReason,
    SessionEventKind,
)

__all__ = [
    # Entities
    "TrackDescriptor",
    "AudioResource",
    "PlaybackQueue",
    "PlaybackSession",
    # Value Objects
    "PlayerState",
    "SessionEventKind",
    "SessionEndReason",
    # Repository
    "SessionRegistry",
]
