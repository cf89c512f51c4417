"""Core domain entities for the music bounded context."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from discord_playback_scheduler.domain.music.value_objects import PlayerState
from discord_playback_scheduler.domain.shared.datetime_utils import utcnow
from discord_playback_scheduler.domain.shared.exceptions import InvalidOperationError
from discord_playback_scheduler.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    NonNegativeInt,
    QueuePositionInt,
    TrackTitleStr,
    UtcDatetimeField,
)
from discord_playback_scheduler.domain.shared.validators import validate_source_locator


class TrackDescriptor(BaseModel):
    """Immutable reference to an audio source plus the user who queued it."""

    model_config = ConfigDict(frozen=True, strict=True)

    source: str
    requested_by: DiscordSnowflake
    requested_at: UtcDatetimeField = Field(default_factory=utcnow)

    @field_validator("source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        # Raises InvalidSource, which pydantic lets propagate unwrapped.
        return validate_source_locator(v)

    @classmethod
    def create(
        cls, source: str, requested_by: int, requested_at: datetime | None = None
    ) -> TrackDescriptor:
        """Build a descriptor, raising ``InvalidSource`` for a bad locator."""
        validate_source_locator(source)
        return cls(
            source=source,
            requested_by=requested_by,
            requested_at=requested_at or utcnow(),
        )


class AudioResource(BaseModel):
    """A streamable resource resolved from a track's source locator."""

    model_config = ConfigDict(frozen=True, strict=True)

    title: TrackTitleStr
    stream_url: HttpUrlStr
    webpage_url: HttpUrlStr | None = None
    duration_seconds: DurationSeconds | None = None

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if self.duration_seconds is None:
            return "Unknown"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"


class PlaybackQueue(BaseModel):
    """Strict FIFO of track descriptors.

    The head is the track currently loaded or playing. Entries only leave from
    the head, and only ``clear`` drops more than one at a time.
    """

    model_config = ConfigDict(strict=True)

    tracks: list[TrackDescriptor] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tracks)

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @property
    def head(self) -> TrackDescriptor | None:
        return self.tracks[0] if self.tracks else None

    def append(self, track: TrackDescriptor) -> QueuePositionInt:
        """Add a track to the tail and return its zero-based position."""
        self.tracks.append(track)
        return len(self.tracks) - 1

    def pop_head(self) -> TrackDescriptor | None:
        if not self.tracks:
            return None
        return self.tracks.pop(0)

    def clear(self) -> int:
        """Remove every entry and return the count removed."""
        count = len(self.tracks)
        self.tracks.clear()
        return count

    def snapshot(self) -> list[TrackDescriptor]:
        return list(self.tracks)


class PlaybackSession(BaseModel):
    """Aggregate root holding connection, queue and player state for one guild."""

    model_config = ConfigDict(strict=True, arbitrary_types_allowed=True)

    guild_id: DiscordSnowflake
    queue: PlaybackQueue = Field(default_factory=PlaybackQueue)
    state: PlayerState = PlayerState.IDLE
    connection: Any = None
    current_resource: AudioResource | None = None

    # Bumped whenever the head changes or the session ends; async signals
    # tagged with an older generation are stale.
    generation: NonNegativeInt = 0
    consecutive_failures: NonNegativeInt = 0

    created_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def current_track(self) -> TrackDescriptor | None:
        return self.queue.head

    @property
    def is_terminated(self) -> bool:
        return self.state.is_terminal

    def transition_to(self, new_state: PlayerState) -> PlayerState:
        """Move to ``new_state`` and return the previous state."""
        if not self.state.can_transition_to(new_state):
            raise InvalidOperationError(
                operation=f"transition to {new_state.value}",
                current_state=self.state.value,
                message=f"Cannot transition from {self.state.value} to {new_state.value}",
            )

        previous = self.state
        self.state = new_state
        return previous

    def next_generation(self) -> int:
        self.generation += 1
        return self.generation
