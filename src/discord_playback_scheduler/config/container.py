"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the registry, adapters and playback service.
Components are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.interfaces.audio_resolver import AudioResolver
    from ..application.interfaces.voice_adapter import VoiceTransport
    from ..application.services.connection_manager import ConnectionManager
    from ..application.services.playback_service import PlaybackService
    from ..application.services.player import GuildPlayer
    from ..domain.music.repository import SessionRegistry
    from ..domain.shared.events import EventBus
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    _event_bus: EventBus | None = None
    _session_registry: SessionRegistry[GuildPlayer] | None = None

    # Infrastructure adapters
    _audio_resolver: AudioResolver | None = None
    _voice_transport: VoiceTransport | None = None

    # Application services
    _connection_manager: ConnectionManager | None = None
    _playback_service: PlaybackService | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            from ..domain.shared.events import get_event_bus

            self._event_bus = get_event_bus()
        return self._event_bus

    @property
    def session_registry(self) -> SessionRegistry[GuildPlayer]:
        """Get the in-memory session registry."""
        if self._session_registry is None:
            from ..infrastructure.persistence.repositories.session_registry import (
                InMemorySessionRegistry,
            )

            self._session_registry = InMemorySessionRegistry()
        return self._session_registry

    # === Infrastructure Adapters ===

    @property
    def audio_resolver(self) -> AudioResolver:
        """Get the audio resolver."""
        if self._audio_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._audio_resolver = YtDlpResolver(self.settings.audio)
        return self._audio_resolver

    @property
    def voice_transport(self) -> VoiceTransport:
        """Get the Discord voice transport."""
        if self._voice_transport is None:
            from ..infrastructure.discord.adapters.voice_adapter import (
                DiscordVoiceTransport,
            )

            self._voice_transport = DiscordVoiceTransport(
                self.bot,
                self.settings.audio,
                ready_poll_interval=self.settings.playback.ready_poll_interval_s,
            )
        return self._voice_transport

    # === Application Services ===

    @property
    def connection_manager(self) -> ConnectionManager:
        if self._connection_manager is None:
            from ..application.services.connection_manager import ConnectionManager

            self._connection_manager = ConnectionManager(
                transport=self.voice_transport,
                connect_timeout=self.settings.playback.connect_timeout_s,
            )
        return self._connection_manager

    @property
    def playback_service(self) -> PlaybackService:
        """Get the playback application service."""
        if self._playback_service is None:
            from ..application.services.playback_service import PlaybackService

            self._playback_service = PlaybackService(
                registry=self.session_registry,
                connections=self.connection_manager,
                resolver=self.audio_resolver,
                event_bus=self.event_bus,
                resolve_timeout=self.settings.audio.resolve_timeout_s,
                max_consecutive_failures=self.settings.playback.max_consecutive_failures,
            )
        return self._playback_service

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Build the service graph eagerly so wiring errors surface at startup."""
        _ = self.playback_service
        logger.info(LogTemplates.BOT_CONTAINER_INITIALIZED)

    async def shutdown(self) -> None:
        """Stop every playback session and release voice connections."""
        if self._playback_service is not None:
            await self._playback_service.shutdown()
        if self._event_bus is not None:
            self._event_bus.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
