"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Persistence (in-memory session registry)
- Discord (bot, cogs, voice adapter)
- Audio (yt-dlp resolver)
"""

from discord_playback_scheduler.infrastructure.discord.adapters.voice_adapter import (
    DiscordVoiceTransport,
)
from discord_playback_scheduler.infrastructure.discord.bot import create_bot
from discord_playback_scheduler.infrastructure.persistence.repositories.session_registry import (
    InMemorySessionRegistry,
)

__all__ = [
    "create_bot",
    "DiscordVoiceTransport",
    "InMemorySessionRegistry",
]
