"""Port interfaces for voice transport operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from discord_playback_scheduler.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ...domain.music.entities import AudioResource

TrackEndCallback = Callable[[Exception | None], None]
"""Called once when a stream finishes; receives the error if it ended abnormally.

May be invoked from a non-event-loop thread.
"""


class VoiceConnection(ABC):
    """Handle to one joined voice channel."""

    @property
    @abstractmethod
    def guild_id(self) -> DiscordSnowflake:
        ...

    @property
    @abstractmethod
    def channel_id(self) -> DiscordSnowflake:
        ...

    @abstractmethod
    async def wait_ready(self) -> None:
        """Return once the transport can carry audio.

        No timeout is applied here; callers bound the wait.
        """
        ...

    @abstractmethod
    def play(self, resource: "AudioResource", after: TrackEndCallback) -> None:
        """Start streaming ``resource``.

        Raises:
            ResourceError: If the stream could not be started.
        """
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def resume(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the current stream. The ``after`` callback still fires."""
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Tear the connection down fully. Safe to call more than once."""
        ...


class VoiceTransport(ABC):
    """Factory for voice connections, supplied by the platform integration."""

    @abstractmethod
    def missing_permissions(self, channel: Any) -> list[str]:
        """Names of the voice permissions the bot lacks in ``channel``."""
        ...

    @abstractmethod
    async def join(self, channel: Any) -> VoiceConnection:
        """Join ``channel`` and return the (possibly not yet ready) connection.

        Raises:
            ConnectError: If the handshake fails.
        """
        ...
