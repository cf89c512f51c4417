"""Discord cogs - command handlers."""

from discord_playback_scheduler.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = [
    "MusicCog",
]
