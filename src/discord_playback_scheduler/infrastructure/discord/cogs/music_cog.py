"""Slash-command music cog delegating to the playback service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_playback_scheduler.domain.shared.datetime_utils import discord_timestamp
from discord_playback_scheduler.domain.shared.events import (
    QueueAbandoned,
    QueueExhausted,
    TrackFailed,
    TrackStartedPlaying,
)
from discord_playback_scheduler.domain.shared.exceptions import (
    ConnectError,
    DomainError,
    InvalidSource,
    NothingPlaying,
    PermissionDenied,
)
from discord_playback_scheduler.domain.shared.messages import (
    DiscordUIMessages,
    ErrorMessages,
    LogTemplates,
)
from discord_playback_scheduler.infrastructure.discord.guards.voice_guards import (
    get_member_voice_channel,
    send_ephemeral,
)
from discord_playback_scheduler.utils.reply import escape_source, truncate

if TYPE_CHECKING:
    from ....config.container import Container
    from ....domain.music.entities import TrackDescriptor

logger = logging.getLogger(__name__)

QUEUE_PER_PAGE = 10


def error_reply(exc: DomainError) -> str:
    """Map a playback error to the message shown to the user."""
    if isinstance(exc, InvalidSource):
        return DiscordUIMessages.ERROR_INVALID_SOURCE.format(reason=exc.reason)
    if isinstance(exc, PermissionDenied):
        return DiscordUIMessages.ERROR_PERMISSION_DENIED.format(missing=", ".join(exc.missing))
    if isinstance(exc, ConnectError):
        return DiscordUIMessages.ERROR_CONNECT_FAILED.format(reason=exc.reason)
    if isinstance(exc, NothingPlaying):
        return DiscordUIMessages.STATE_NOTHING_PLAYING
    return DiscordUIMessages.ERROR_OCCURRED.format(error=exc.message)


class MusicCog(commands.Cog):
    """Play/skip/pause/resume/stop/nowplaying/queue commands.

    Also announces what the scheduler does on its own (next track started,
    unplayable track dropped, queue finished) in the text channel where the
    guild's session was started.
    """

    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container
        self._announce_channels: dict[int, int] = {}

    async def cog_load(self) -> None:
        bus = self.container.event_bus
        bus.subscribe(TrackStartedPlaying, self._on_track_started)
        bus.subscribe(TrackFailed, self._on_track_failed)
        bus.subscribe(QueueAbandoned, self._on_queue_abandoned)
        bus.subscribe(QueueExhausted, self._on_queue_exhausted)

    async def cog_unload(self) -> None:
        bus = self.container.event_bus
        bus.unsubscribe(TrackStartedPlaying, self._on_track_started)
        bus.unsubscribe(TrackFailed, self._on_track_failed)
        bus.unsubscribe(QueueAbandoned, self._on_queue_abandoned)
        bus.unsubscribe(QueueExhausted, self._on_queue_exhausted)
        self._announce_channels.clear()

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song by URL or search query.")
    @app_commands.describe(query="http(s) URL or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        # Joining voice can exceed the 3-second interaction deadline.
        await interaction.response.defer()

        channel = await get_member_voice_channel(interaction)
        if channel is None or interaction.guild is None:
            return

        try:
            result = await self.container.playback_service.play(
                guild_id=interaction.guild.id,
                voice_channel=channel,
                source=query,
                requester_id=interaction.user.id,
            )
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        guild_id = interaction.guild.id
        if interaction.channel_id is not None and (
            result.created or guild_id not in self._announce_channels
        ):
            self._announce_channels[guild_id] = interaction.channel_id

        source = escape_source(result.track.source)
        if result.started:
            content = DiscordUIMessages.ACTION_STARTED.format(channel=channel.name, source=source)
        else:
            content = DiscordUIMessages.ACTION_QUEUED.format(
                source=source, position=result.position
            )
        await interaction.followup.send(content)

    @app_commands.command(name="skip", description="Skip the current track.")
    async def skip(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        try:
            skipped = await self.container.playback_service.skip(interaction.guild.id)
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        await interaction.response.send_message(
            DiscordUIMessages.ACTION_SKIPPED.format(source=escape_source(skipped.source))
        )

    @app_commands.command(name="pause", description="Pause playback.")
    async def pause(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        try:
            await self.container.playback_service.pause(interaction.guild.id)
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        await interaction.response.send_message(DiscordUIMessages.ACTION_PAUSED)

    @app_commands.command(name="resume", description="Resume paused playback.")
    async def resume(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        try:
            await self.container.playback_service.resume(interaction.guild.id)
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        await interaction.response.send_message(DiscordUIMessages.ACTION_RESUMED)

    @app_commands.command(name="stop", description="Stop playback, clear the queue and leave.")
    async def stop(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        await interaction.response.defer()
        try:
            cleared = await self.container.playback_service.stop(interaction.guild.id)
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        self._announce_channels.pop(interaction.guild.id, None)
        await interaction.followup.send(DiscordUIMessages.ACTION_STOPPED.format(count=cleared))

    @app_commands.command(name="nowplaying", description="Show the current track.")
    async def nowplaying(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        try:
            current = self.container.playback_service.now_playing(interaction.guild.id)
        except DomainError as e:
            await send_ephemeral(interaction, error_reply(e))
            return

        if current.title is None:
            content = DiscordUIMessages.NOW_LOADING.format(
                source=escape_source(current.track.source),
                requester=current.track.requested_by,
            )
        else:
            content = DiscordUIMessages.NOW_PLAYING.format(
                title=truncate(current.title, 80),
                duration=current.duration,
                state=current.state.value,
                requester=current.track.requested_by,
            )
        await interaction.response.send_message(content)

    @app_commands.command(name="queue", description="Show the play queue.")
    async def queue(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        tracks = self.container.playback_service.list_queue(interaction.guild.id)
        if not tracks:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_EMPTY)
            return

        await interaction.response.send_message(self._format_queue(tracks))

    # ─────────────────────────────────────────────────────────────────
    # Formatting
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _format_queue(tracks: list[TrackDescriptor]) -> str:
        lines = [DiscordUIMessages.QUEUE_HEADER.format(count=len(tracks))]
        for index, track in enumerate(tracks[:QUEUE_PER_PAGE]):
            line = DiscordUIMessages.QUEUE_LINE.format(
                index=index,
                source=escape_source(track.source, 60),
                requester=track.requested_by,
                requested=discord_timestamp(track.requested_at),
            )
            if index == 0:
                line = f"{DiscordUIMessages.QUEUE_NOW_MARKER} {line}"
            lines.append(line)

        remaining = len(tracks) - QUEUE_PER_PAGE
        if remaining > 0:
            lines.append(DiscordUIMessages.QUEUE_MORE.format(count=remaining))
        return "\n".join(lines)

    # ─────────────────────────────────────────────────────────────────
    # Announcements
    # ─────────────────────────────────────────────────────────────────

    async def _announce(self, guild_id: int, content: str) -> None:
        channel_id = self._announce_channels.get(guild_id)
        if channel_id is None:
            return

        channel = self.bot.get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            return

        try:
            await channel.send(content)
        except discord.HTTPException as e:
            logger.warning(LogTemplates.ANNOUNCE_FAILED, channel_id, e)

    async def _on_track_started(self, event: TrackStartedPlaying) -> None:
        await self._announce(
            event.guild_id,
            DiscordUIMessages.ANNOUNCE_NOW_PLAYING.format(
                title=truncate(event.track_title, 80), requester=event.requested_by_id
            ),
        )

    async def _on_track_failed(self, event: TrackFailed) -> None:
        await self._announce(
            event.guild_id,
            DiscordUIMessages.ANNOUNCE_TRACK_FAILED.format(source=escape_source(event.source)),
        )

    async def _on_queue_abandoned(self, event: QueueAbandoned) -> None:
        await self._announce(
            event.guild_id,
            DiscordUIMessages.ANNOUNCE_QUEUE_ABANDONED.format(count=event.consecutive_failures),
        )

    async def _on_queue_exhausted(self, event: QueueExhausted) -> None:
        await self._announce(event.guild_id, DiscordUIMessages.ANNOUNCE_QUEUE_FINISHED)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
