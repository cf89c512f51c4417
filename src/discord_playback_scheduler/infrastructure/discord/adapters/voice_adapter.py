"""Discord voice adapter implementing the voice transport ports."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from discord_playback_scheduler.application.interfaces.voice_adapter import (
    TrackEndCallback,
    VoiceConnection,
    VoiceTransport,
)
from discord_playback_scheduler.config.settings import AudioSettings
from discord_playback_scheduler.domain.shared.exceptions import (
    ConnectError,
    PermissionDenied,
    ResourceError,
)
from discord_playback_scheduler.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ....domain.music.entities import AudioResource

logger = logging.getLogger(__name__)

FADE_IN_SECONDS: float = 0.5
READY_POLL_INTERVAL: float = 0.25
REQUIRED_PERMISSIONS: tuple[str, ...] = ("connect", "speak")

VoiceChannelLike = discord.VoiceChannel | discord.StageChannel


class DiscordVoiceConnection(VoiceConnection):
    """Wraps one ``discord.VoiceClient``."""

    def __init__(
        self,
        voice_client: discord.VoiceClient,
        settings: AudioSettings | None = None,
        *,
        ready_poll_interval: float = READY_POLL_INTERVAL,
    ) -> None:
        self._vc = voice_client
        self._settings = settings or AudioSettings()
        self._poll_interval = ready_poll_interval
        self._guild_id = voice_client.guild.id
        self._channel_id = voice_client.channel.id
        self._destroyed = False

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._vc

    async def wait_ready(self) -> None:
        while not self._vc.is_connected():
            await asyncio.sleep(self._poll_interval)
        await self._ensure_self_deaf()

    async def _ensure_self_deaf(self) -> None:
        """Re-assert self-deafen; some gateways drop the flag from the initial connect."""
        try:
            await self._vc.guild.change_voice_state(channel=self._vc.channel, self_deaf=True)
        except Exception as exc:
            logger.debug(LogTemplates.VOICE_SELF_DEAFEN_FAILED, self._guild_id, exc)

    def play(self, resource: AudioResource, after: TrackEndCallback) -> None:
        ffmpeg_options = self._settings.ffmpeg_options
        before_opts = ffmpeg_options.get("before_options", "")
        base_opts = ffmpeg_options.get("options", "")
        fade_opts = f'{base_opts} -af "afade=t=in:ss=0:d={FADE_IN_SECONDS}"'

        try:
            source = discord.FFmpegPCMAudio(
                resource.stream_url,
                before_options=before_opts,
                options=fade_opts,
            )
            volume_source = discord.PCMVolumeTransformer(
                source, volume=self._settings.default_volume
            )
            self._vc.play(volume_source, after=after)
        except discord.ClientException as e:
            raise ResourceError(resource.title, str(e)) from e
        except (OSError, discord.opus.OpusNotLoaded) as e:
            raise ResourceError(resource.title, str(e)) from e

    def pause(self) -> None:
        if self._vc.is_playing():
            self._vc.pause()

    def resume(self) -> None:
        if self._vc.is_paused():
            self._vc.resume()

    def stop(self) -> None:
        if self._vc.is_playing() or self._vc.is_paused():
            self._vc.stop()

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        await self._vc.disconnect(force=True)


class DiscordVoiceTransport(VoiceTransport):
    """Joins voice channels through discord.py."""

    def __init__(
        self,
        bot: discord.Client,
        settings: AudioSettings | None = None,
        *,
        ready_poll_interval: float = READY_POLL_INTERVAL,
    ) -> None:
        self._bot = bot
        self._settings = settings or AudioSettings()
        self._poll_interval = ready_poll_interval

    def missing_permissions(self, channel: VoiceChannelLike) -> list[str]:
        me = channel.guild.me
        perms = channel.permissions_for(me)
        return [name for name in REQUIRED_PERMISSIONS if not getattr(perms, name, False)]

    async def join(self, channel: VoiceChannelLike) -> DiscordVoiceConnection:
        if not isinstance(channel, VoiceChannelLike):
            raise ConnectError(
                ErrorMessages.CHANNEL_NOT_VOICE.format(channel_id=getattr(channel, "id", None))
            )

        guild = channel.guild
        stale = guild.voice_client
        if stale is not None:
            await self._abort(guild)

        try:
            vc = await channel.connect(self_deaf=True, reconnect=False)
        except discord.Forbidden as e:
            await self._abort(guild)
            raise PermissionDenied(channel.id, list(REQUIRED_PERMISSIONS)) from e
        except discord.ClientException as e:
            await self._abort(guild)
            raise ConnectError(ErrorMessages.CONNECT_FAILED.format(error=e)) from e
        except BaseException:
            # Timeouts, cancellation and gateway errors leave a half-open client behind.
            await self._abort(guild)
            raise

        return DiscordVoiceConnection(vc, self._settings, ready_poll_interval=self._poll_interval)

    async def _abort(self, guild: discord.Guild) -> None:
        vc = guild.voice_client
        if vc is None:
            return
        try:
            await vc.disconnect(force=True)
        except Exception as exc:
            logger.warning(LogTemplates.VOICE_ABORT_FAILED, guild.id, exc)
