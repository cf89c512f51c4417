"""Voice connection lifecycle: permission check, bounded handshake, release."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ...domain.shared.exceptions import ConnectError, DomainError, PermissionDenied
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ..interfaces.voice_adapter import VoiceConnection, VoiceTransport

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT: float = 20.0


class ConnectionManager:
    """Owns the join handshake and teardown of voice connections.

    At most one connection per guild is alive at a time: a ``connect`` for a
    guild whose previous connection is still being released waits for that
    release to finish first.
    """

    def __init__(
        self,
        *,
        transport: VoiceTransport,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._connect_timeout = connect_timeout
        self._releases: dict[DiscordSnowflake, asyncio.Task[None]] = {}

    @property
    def connect_timeout(self) -> float:
        return self._connect_timeout

    def check_permissions(self, channel: Any) -> None:
        """Raise ``PermissionDenied`` if the bot cannot connect and speak in ``channel``."""
        missing = self._transport.missing_permissions(channel)
        if missing:
            channel_id = getattr(channel, "id", 0)
            logger.warning(LogTemplates.VOICE_NO_PERMISSION, channel_id, ", ".join(missing))
            raise PermissionDenied(channel_id, missing)

    async def connect(self, guild_id: DiscordSnowflake, channel: Any) -> VoiceConnection:
        """Join ``channel`` and wait until the connection is ready.

        Raises:
            PermissionDenied: The bot lacks connect/speak in ``channel``.
            ConnectError: The handshake failed or did not finish in time.
        """
        self.check_permissions(channel)
        await self.wait_released(guild_id)

        channel_id = getattr(channel, "id", 0)
        logger.info(LogTemplates.VOICE_CONNECTING, channel_id, guild_id)

        connection: VoiceConnection | None = None
        try:
            async with asyncio.timeout(self._connect_timeout):
                connection = await self._transport.join(channel)
                await connection.wait_ready()
        except TimeoutError:
            logger.warning(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id, self._connect_timeout)
            await self._abort(guild_id, connection)
            raise ConnectError(
                ErrorMessages.CONNECT_TIMEOUT.format(timeout=self._connect_timeout)
            ) from None
        except asyncio.CancelledError:
            # Recorded as a release so the next connect for this guild waits for it.
            pending = self.release(guild_id, connection) if connection is not None else None
            if pending is not None:
                await asyncio.shield(pending)
            raise
        except ConnectError as e:
            logger.warning(LogTemplates.VOICE_CONNECT_FAILED, channel_id, e.reason)
            await self._abort(guild_id, connection)
            raise
        except DomainError:
            await self._abort(guild_id, connection)
            raise
        except Exception as e:
            logger.warning(LogTemplates.VOICE_CONNECT_FAILED, channel_id, e)
            await self._abort(guild_id, connection)
            raise ConnectError(ErrorMessages.CONNECT_FAILED.format(error=e)) from e

        logger.info(LogTemplates.VOICE_CONNECTED, channel_id, guild_id)
        return connection

    def release(
        self, guild_id: DiscordSnowflake, connection: VoiceConnection | None
    ) -> asyncio.Task[None] | None:
        """Schedule teardown of ``connection`` and return the task doing it.

        Errors during teardown are logged, never raised.
        """
        if connection is None:
            return self._releases.get(guild_id)

        previous = self._releases.get(guild_id)
        task = asyncio.get_running_loop().create_task(
            self._destroy(guild_id, connection, previous),
            name=f"voice-release-{guild_id}",
        )
        self._releases[guild_id] = task
        task.add_done_callback(lambda t: self._forget(guild_id, t))
        return task

    async def wait_released(self, guild_id: DiscordSnowflake) -> None:
        """Wait for an in-flight release for ``guild_id``, if any."""
        task = self._releases.get(guild_id)
        if task is None or task.done():
            return
        logger.debug(LogTemplates.VOICE_WAITING_FOR_RELEASE, guild_id)
        await asyncio.shield(task)

    async def close(self) -> None:
        """Wait for every pending release to finish."""
        pending = [t for t in self._releases.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _destroy(
        self,
        guild_id: DiscordSnowflake,
        connection: VoiceConnection,
        previous: asyncio.Task[None] | None,
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.gather(previous, return_exceptions=True)
        try:
            await connection.destroy()
            logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
        except Exception as e:
            logger.warning(LogTemplates.VOICE_RELEASE_FAILED, guild_id, e)

    async def _abort(self, guild_id: DiscordSnowflake, connection: VoiceConnection | None) -> None:
        """Tear down a connection that never became ready."""
        if connection is None:
            return
        try:
            await connection.destroy()
        except Exception as e:
            logger.warning(LogTemplates.VOICE_ABORT_FAILED, guild_id, e)

    def _forget(self, guild_id: DiscordSnowflake, task: asyncio.Task[None]) -> None:
        if self._releases.get(guild_id) is task:
            del self._releases[guild_id]
