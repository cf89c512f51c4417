"""Main Discord bot class integrating the DI container and cog lifecycle."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import commands

from discord_playback_scheduler.domain.shared.messages import DiscordUIMessages, LogTemplates

if TYPE_CHECKING:
    from ...config.container import Container
    from ...config.settings import Settings

logger = logging.getLogger(__name__)

COGS: tuple[str, ...] = ("discord_playback_scheduler.infrastructure.discord.cogs.music_cog",)


class PlaybackBot(commands.Bot):
    def __init__(
        self,
        container: Container,
        settings: Settings,
        **kwargs: Any,
    ) -> None:
        intents = discord.Intents.default()
        intents.voice_states = True
        intents.guilds = True

        super().__init__(
            command_prefix=settings.discord.command_prefix,
            intents=intents,
            help_command=None,
            **kwargs,
        )

        self.container = container
        self.settings = settings
        self._shutdown_event = asyncio.Event()
        container.set_bot(self)

    async def setup_hook(self) -> None:
        logger.info(LogTemplates.BOT_SETUP)

        try:
            await self.container.initialize()
        except Exception as e:
            logger.exception(LogTemplates.BOT_CONTAINER_INIT_FAILED, e)
            raise

        await self._load_cogs()
        self.tree.on_error = self._on_app_command_error

        if self.settings.discord.sync_on_startup:
            try:
                await self._sync_commands()
            except Exception as e:
                logger.warning(LogTemplates.BOT_SYNC_ON_STARTUP_FAILED, e)

        logger.info(LogTemplates.BOT_SETUP_COMPLETE)

    async def _load_cogs(self) -> None:
        for cog in COGS:
            try:
                await self.load_extension(cog)
                logger.info(LogTemplates.BOT_COG_LOADED, cog)
            except Exception as e:
                logger.exception(LogTemplates.BOT_COG_LOAD_FAILED, cog, e)
                raise

    async def _on_app_command_error(
        self, interaction: discord.Interaction, error: Exception
    ) -> None:
        """Global slash-command error handler; sends ephemeral messages to avoid channel spam."""
        original = getattr(error, "original", error)

        logger.error(
            LogTemplates.BOT_SLASH_COMMAND_ERROR,
            getattr(interaction.command, "name", "<unknown>"),
            original,
        )

        error_msg = DiscordUIMessages.ERROR_OCCURRED.format(error=original)

        try:
            if interaction.response.is_done():
                await interaction.followup.send(error_msg, ephemeral=True)
            else:
                await interaction.response.send_message(error_msg, ephemeral=True)
        except discord.HTTPException:
            logger.warning(LogTemplates.BOT_ERROR_MESSAGE_SEND_FAILED)

    async def _sync_commands(self) -> None:
        for guild_id in self.settings.discord.guild_ids:
            guild = discord.Object(id=guild_id)
            try:
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(LogTemplates.BOT_SYNCED_GUILD, len(synced), guild_id)
            except Exception as e:
                logger.warning(LogTemplates.BOT_SYNC_GUILD_FAILED, guild_id, e)

        try:
            synced = await self.tree.sync()
            logger.info(LogTemplates.BOT_SYNCED_GLOBAL, len(synced))
        except Exception as e:
            logger.warning(LogTemplates.BOT_SYNC_GLOBAL_FAILED, e)

    async def on_ready(self) -> None:
        logger.info(
            LogTemplates.BOT_READY,
            self.user,  # type: ignore
            self.user.id,  # type: ignore
        )
        logger.info(LogTemplates.BOT_CONNECTED_GUILDS, len(self.guilds))

        activity = discord.Activity(type=discord.ActivityType.listening, name="/play")
        await self.change_presence(activity=activity)

    async def close(self) -> None:
        logger.info(LogTemplates.BOT_SHUTTING_DOWN)

        try:
            await self.container.shutdown()
            logger.info(LogTemplates.BOT_CONTAINER_SHUTDOWN)
        except Exception as e:
            logger.warning(LogTemplates.BOT_CONTAINER_SHUTDOWN_ERROR, e)

        await super().close()
        self._shutdown_event.set()
        logger.info(LogTemplates.BOT_SHUTDOWN_COMPLETE)

    def run_with_graceful_shutdown(self, token: str, *, shutdown_timeout: float = 30.0) -> None:
        async def runner() -> None:
            async with self:
                loop = asyncio.get_running_loop()

                async def _graceful_close() -> None:
                    try:
                        await asyncio.wait_for(self.close(), timeout=shutdown_timeout)
                    except TimeoutError:
                        logger.warning(LogTemplates.BOT_SHUTDOWN_TIMEOUT, shutdown_timeout)

                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, lambda: asyncio.create_task(_graceful_close()))
                await self.start(token)

        asyncio.run(runner())


def create_bot(container: Container, settings: Settings) -> PlaybackBot:
    return PlaybackBot(container=container, settings=settings)
