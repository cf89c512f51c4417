"""Session storage implementations."""

from discord_playback_scheduler.infrastructure.persistence.repositories.session_registry import (
    InMemorySessionRegistry,
)

__all__ = [
    "InMemorySessionRegistry",
]
