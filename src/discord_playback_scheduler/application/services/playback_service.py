"""Playback Application Service - the command API used by chat adapters."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from ...domain.music.entities import TrackDescriptor
from ...domain.music.value_objects import PlayerState, SessionEndReason
from ...domain.shared.events import SessionCreated
from ...domain.shared.exceptions import NothingPlaying
from ...domain.shared.messages import LogTemplates
from ...domain.shared.types import DiscordSnowflake, NonNegativeInt, QueuePositionInt
from .player import DEFAULT_MAX_CONSECUTIVE_FAILURES, DEFAULT_RESOLVE_TIMEOUT, GuildPlayer

if TYPE_CHECKING:
    from ...domain.music.repository import SessionRegistry
    from ...domain.shared.events import EventBus
    from ..interfaces.audio_resolver import AudioResolver
    from .connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class PlayResult(BaseModel):
    """Outcome of a successful ``play`` call."""

    model_config = ConfigDict(frozen=True)

    track: TrackDescriptor
    position: QueuePositionInt
    created: bool
    queue_length: NonNegativeInt

    @property
    def started(self) -> bool:
        """True when this call created the session, so its track is first up."""
        return self.created and self.position == 0


class NowPlaying(BaseModel):
    """Snapshot of a guild's head track."""

    model_config = ConfigDict(frozen=True)

    track: TrackDescriptor
    state: PlayerState
    title: str | None = None
    duration: str | None = None


class PlaybackService:
    """Entry point for play/skip/pause/resume/stop/now-playing/queue commands.

    Sessions are keyed by guild; each is driven by its own ``GuildPlayer``
    and shares nothing with other guilds apart from the registry.
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry[GuildPlayer],
        connections: ConnectionManager,
        resolver: AudioResolver,
        event_bus: EventBus | None = None,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
    ) -> None:
        self._registry = registry
        self._connections = connections
        self._resolver = resolver
        self._event_bus = event_bus
        self._resolve_timeout = resolve_timeout
        self._max_consecutive_failures = max_consecutive_failures

    def _new_player(self, guild_id: int) -> GuildPlayer:
        return GuildPlayer(
            guild_id,
            registry=self._registry,
            connections=self._connections,
            resolver=self._resolver,
            event_bus=self._event_bus,
            resolve_timeout=self._resolve_timeout,
            max_consecutive_failures=self._max_consecutive_failures,
        )

    def _require(self, guild_id: DiscordSnowflake) -> GuildPlayer:
        player = self._registry.get(guild_id)
        if player is None:
            raise NothingPlaying()
        return player

    async def play(
        self,
        guild_id: DiscordSnowflake,
        voice_channel: Any,
        source: str,
        requester_id: DiscordSnowflake,
    ) -> PlayResult:
        """Queue ``source`` for ``guild_id``, joining ``voice_channel`` if needed.

        Raises:
            InvalidSource: ``source`` is malformed; nothing is created.
            PermissionDenied: No session existed and the bot cannot join; nothing is created.
            ConnectError: Joining the voice channel failed; no session remains.
        """
        track = TrackDescriptor.create(source, requester_id)

        if self._registry.get(guild_id) is None:
            self._connections.check_permissions(voice_channel)

        player, created = self._registry.get_or_create(guild_id, self._new_player)
        if not created:
            logger.debug(LogTemplates.SESSION_ATTACHED, guild_id, player.state.value)

        position = player.enqueue(track, voice_channel)
        queue_length = len(player.list_queue())

        if created and self._event_bus is not None:
            await self._event_bus.publish(
                SessionCreated(guild_id=guild_id, channel_id=getattr(voice_channel, "id", None))
            )

        await player.wait_until_connected()

        return PlayResult(
            track=track,
            position=position,
            created=created,
            queue_length=queue_length,
        )

    async def skip(self, guild_id: DiscordSnowflake) -> TrackDescriptor:
        return self._require(guild_id).skip()

    async def pause(self, guild_id: DiscordSnowflake) -> TrackDescriptor:
        return self._require(guild_id).pause()

    async def resume(self, guild_id: DiscordSnowflake) -> TrackDescriptor:
        return self._require(guild_id).resume()

    async def stop(self, guild_id: DiscordSnowflake) -> int:
        """Stop playback and leave voice. Returns the number of tracks cleared."""
        player = self._require(guild_id)
        cleared = player.stop()
        await player.wait_closed()
        return cleared

    def now_playing(self, guild_id: DiscordSnowflake) -> NowPlaying:
        player = self._require(guild_id)
        track = player.current_track()
        resource = player.current_resource
        return NowPlaying(
            track=track,
            state=player.state,
            title=resource.title if resource else None,
            duration=resource.duration_formatted if resource else None,
        )

    def list_queue(self, guild_id: DiscordSnowflake) -> list[TrackDescriptor]:
        player = self._registry.get(guild_id)
        if player is None:
            return []
        return player.list_queue()

    def get_state(self, guild_id: DiscordSnowflake) -> PlayerState | None:
        player = self._registry.get(guild_id)
        return player.state if player else None

    def has_session(self, guild_id: DiscordSnowflake) -> bool:
        return self._registry.get(guild_id) is not None

    async def shutdown(self) -> None:
        """Stop every session and wait for their voice connections to close."""
        players = self._registry.all()
        if players:
            logger.info(LogTemplates.SESSION_SHUTDOWN, len(players))
        for player in players:
            if not player.is_terminated:
                player.stop(SessionEndReason.SHUTDOWN)
        await asyncio.gather(*(p.wait_closed() for p in players), return_exceptions=True)
        await self._connections.close()
