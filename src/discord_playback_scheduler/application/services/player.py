"""Per-guild player state machine.

Every state change happens inside ``GuildPlayer.dispatch``, which drains a
per-session event deque one event at a time. Handlers never await; the slow
parts (joining voice, resolving audio) run as tasks that post their outcome
back as a ``SessionEvent``. Track-end callbacks from the audio thread are
marshalled onto the event loop the same way.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ...domain.music.entities import AudioResource, PlaybackSession, TrackDescriptor
from ...domain.music.value_objects import PlayerState, SessionEndReason, SessionEventKind
from ...domain.shared.events import (
    DomainEvent,
    QueueAbandoned,
    QueueExhausted,
    SessionDestroyed,
    TrackFailed,
    TrackStartedPlaying,
)
from ...domain.shared.exceptions import (
    ConnectError,
    DomainError,
    InvalidOperationError,
    NothingPlaying,
    ResourceError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.types import DiscordSnowflake, QueuePositionInt

if TYPE_CHECKING:
    from ...domain.music.repository import SessionRegistry
    from ...domain.shared.events import EventBus
    from ..interfaces.audio_resolver import AudioResolver
    from ..interfaces.voice_adapter import TrackEndCallback, VoiceConnection
    from .connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

DEFAULT_RESOLVE_TIMEOUT: float = 30.0
DEFAULT_MAX_CONSECUTIVE_FAILURES: int = 5


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """A discrete signal for one session, tagged with the generation it belongs to."""

    kind: SessionEventKind
    generation: int
    connection: VoiceConnection | None = None
    resource: AudioResource | None = None
    error: BaseException | None = None
    reason: str = ""


class GuildPlayer:
    """Drives one guild's ``PlaybackSession``."""

    def __init__(
        self,
        guild_id: DiscordSnowflake,
        *,
        registry: SessionRegistry[GuildPlayer],
        connections: ConnectionManager,
        resolver: AudioResolver,
        event_bus: EventBus | None = None,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
    ) -> None:
        self.session = PlaybackSession(guild_id=guild_id)
        self._registry = registry
        self._connections = connections
        self._resolver = resolver
        self._event_bus = event_bus
        self._resolve_timeout = resolve_timeout
        self._max_failures = max_consecutive_failures

        self._events: deque[SessionEvent] = deque()
        self._dispatching = False

        self._connected: asyncio.Future[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._load_task: asyncio.Task[None] | None = None
        self._release_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

        self._handlers: dict[SessionEventKind, Callable[[SessionEvent], None]] = {
            SessionEventKind.CONNECT_READY: self._on_connect_ready,
            SessionEventKind.CONNECT_FAILED: self._on_connect_failed,
            SessionEventKind.RESOURCE_READY: self._on_resource_ready,
            SessionEventKind.RESOURCE_FAILED: self._on_resource_failed,
            SessionEventKind.TRACK_ENDED: self._on_track_ended,
            SessionEventKind.TRACK_ERRORED: self._on_track_errored,
        }

    # ── Queries ─────────────────────────────────────────────────────

    @property
    def guild_id(self) -> DiscordSnowflake:
        return self.session.guild_id

    @property
    def state(self) -> PlayerState:
        return self.session.state

    @property
    def is_terminated(self) -> bool:
        return self.session.is_terminated

    @property
    def current_resource(self) -> AudioResource | None:
        return self.session.current_resource

    def current_track(self) -> TrackDescriptor:
        track = self.session.current_track
        if track is None:
            raise NothingPlaying()
        return track

    def list_queue(self) -> list[TrackDescriptor]:
        return self.session.queue.snapshot()

    # ── Commands ────────────────────────────────────────────────────

    def enqueue(self, track: TrackDescriptor, channel: Any) -> QueuePositionInt:
        """Append ``track``; a fresh session also starts joining ``channel``.

        Returns:
            Zero-based queue position of the new entry.

        Raises:
            InvalidOperationError: The session is already shutting down.
        """
        if self.is_terminated:
            raise InvalidOperationError(
                operation="enqueue",
                current_state=self.state.value,
                message=ErrorMessages.SESSION_TERMINATING.format(guild_id=self.guild_id),
            )

        fresh = self.state is PlayerState.IDLE and self.session.queue.is_empty
        position = self.session.queue.append(track)
        logger.info(LogTemplates.QUEUE_ENQUEUED, track.source, position, self.guild_id)

        if fresh:
            self._transition(PlayerState.CONNECTING)
            loop = asyncio.get_running_loop()
            self._connected = loop.create_future()
            self._connected.add_done_callback(_consume_exception)
            self._connect_task = loop.create_task(
                self._connect(channel, self.session.generation),
                name=f"voice-connect-{self.guild_id}",
            )
        return position

    async def wait_until_connected(self) -> None:
        """Wait for the outcome of connection establishment.

        Raises:
            ConnectError: Joining failed, timed out, or the session was stopped first.
            PermissionDenied: The bot lacks voice permissions in the channel.
        """
        if self._connected is None:
            return
        await asyncio.shield(self._connected)

    def skip(self) -> TrackDescriptor:
        """Retire the head track and move on to the next one."""
        if not self.state.has_track:
            raise NothingPlaying()

        skipped = self.current_track()
        logger.info(LogTemplates.TRACK_SKIPPED, skipped.source, self.guild_id)
        self._stop_audio()
        self._advance()
        return skipped

    def pause(self) -> TrackDescriptor:
        if self.state is PlayerState.PAUSED:
            return self.current_track()
        if self.state is not PlayerState.PLAYING:
            raise NothingPlaying()

        self.session.connection.pause()
        self._transition(PlayerState.PAUSED)
        logger.info(LogTemplates.PLAYBACK_PAUSED, self.guild_id)
        return self.current_track()

    def resume(self) -> TrackDescriptor:
        if self.state is PlayerState.PLAYING:
            return self.current_track()
        if self.state is not PlayerState.PAUSED:
            raise NothingPlaying()

        self.session.connection.resume()
        self._transition(PlayerState.PLAYING)
        logger.info(LogTemplates.PLAYBACK_RESUMED, self.guild_id)
        return self.current_track()

    def stop(self, reason: SessionEndReason = SessionEndReason.STOPPED) -> int:
        """End the session. Returns the number of tracks cleared."""
        if self.is_terminated:
            raise NothingPlaying()

        cleared = self._teardown(reason)
        logger.info(LogTemplates.PLAYBACK_STOPPED, self.guild_id, cleared)
        return cleared

    async def wait_closed(self) -> None:
        """Wait until the voice connection released by teardown is gone."""
        if self._release_task is not None:
            await asyncio.shield(self._release_task)

    # ── Event loop ──────────────────────────────────────────────────

    def dispatch(self, event: SessionEvent) -> None:
        """Queue ``event`` and process every pending event in order."""
        self._events.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._events:
                current = self._events.popleft()
                if current.generation != self.session.generation:
                    logger.debug(
                        LogTemplates.SESSION_STALE_EVENT,
                        current.kind.value,
                        self.guild_id,
                        current.generation,
                        self.session.generation,
                    )
                    self._discard(current)
                    continue
                self._handlers[current.kind](current)
        finally:
            self._dispatching = False

    def _discard(self, event: SessionEvent) -> None:
        # A connection that arrives after its session moved on must not leak.
        if event.connection is not None and event.connection is not self.session.connection:
            self._connections.release(self.guild_id, event.connection)

    def _on_connect_ready(self, event: SessionEvent) -> None:
        self.session.connection = event.connection
        if self._connected is not None and not self._connected.done():
            self._connected.set_result(None)
        self._load_head()

    def _on_connect_failed(self, event: SessionEvent) -> None:
        error = event.error or ConnectError(event.reason)
        if self._connected is not None and not self._connected.done():
            self._connected.set_exception(error)
        self._teardown(SessionEndReason.CONNECT_FAILED)

    def _on_resource_ready(self, event: SessionEvent) -> None:
        resource = event.resource
        track = self.session.queue.head
        if resource is None or track is None:
            return

        try:
            self.session.connection.play(resource, self._track_end_callback(event.generation))
        except ResourceError as e:
            self._track_failed(e.reason)
            return
        except Exception as e:
            logger.warning(LogTemplates.PLAYBACK_ERROR, self.guild_id, e)
            self._track_failed(str(e))
            return

        self.session.current_resource = resource
        self.session.consecutive_failures = 0
        self._transition(PlayerState.PLAYING)
        logger.info(LogTemplates.PLAYBACK_STARTED, resource.title, self.guild_id)
        self._publish(
            TrackStartedPlaying(
                guild_id=self.guild_id,
                source=track.source,
                track_title=resource.title,
                requested_by_id=track.requested_by,
                duration_seconds=resource.duration_seconds,
            )
        )

    def _on_resource_failed(self, event: SessionEvent) -> None:
        self._track_failed(event.reason)

    def _on_track_ended(self, event: SessionEvent) -> None:
        head = self.session.queue.head
        logger.info(LogTemplates.TRACK_FINISHED, head.source if head else None, self.guild_id)
        self._advance()

    def _on_track_errored(self, event: SessionEvent) -> None:
        logger.debug(LogTemplates.TRACK_ENDED, self.guild_id, event.error)
        self._track_failed(str(event.error))

    # ── Transitions ─────────────────────────────────────────────────

    def _advance(self) -> None:
        """Pop the head; load the next entry or end the session."""
        retired = self.session.queue.pop_head()
        self.session.current_resource = None
        self.session.next_generation()
        self._cancel_load()

        if self.session.queue.is_empty:
            logger.info(LogTemplates.QUEUE_EMPTY, self.guild_id)
            self._publish(
                QueueExhausted(
                    guild_id=self.guild_id,
                    last_source=retired.source if retired else "",
                )
            )
            self._teardown(SessionEndReason.QUEUE_EXHAUSTED)
            return

        self._load_head()

    def _load_head(self) -> None:
        track = self.session.queue.head
        if track is None:
            return
        self._transition(PlayerState.LOADING)
        logger.info(LogTemplates.TRACK_LOADING, track.source, self.guild_id)
        self._load_task = asyncio.get_running_loop().create_task(
            self._load(track.source, self.session.generation),
            name=f"audio-load-{self.guild_id}",
        )

    def _track_failed(self, reason: str) -> None:
        head = self.session.queue.head
        source = head.source if head else ""
        self.session.consecutive_failures += 1
        failures = self.session.consecutive_failures
        logger.warning(LogTemplates.TRACK_FAILED, source, self.guild_id, reason)
        self._publish(
            TrackFailed(
                guild_id=self.guild_id,
                source=source,
                reason=reason,
                consecutive_failures=failures,
            )
        )

        if failures >= self._max_failures:
            dropped = len(self.session.queue)
            logger.error(LogTemplates.TRACK_FAILURE_CEILING, self.guild_id, failures, dropped)
            self._publish(
                QueueAbandoned(
                    guild_id=self.guild_id,
                    consecutive_failures=failures,
                    tracks_dropped=dropped,
                )
            )
            self._teardown(SessionEndReason.TOO_MANY_FAILURES)
            return

        self._advance()

    def _teardown(self, reason: SessionEndReason) -> int:
        if self.is_terminated:
            return 0

        self.session.next_generation()
        self._stop_audio()
        self._transition(PlayerState.TERMINATING)
        self._cancel_load()
        pending_connect = self._cancel_connect()
        cleared = self.session.queue.clear()

        self._registry.remove(self.guild_id, self)

        connection = self.session.connection
        self.session.connection = None
        self.session.current_resource = None
        release = self._connections.release(self.guild_id, connection)
        if pending_connect is not None:
            self._release_task = asyncio.get_running_loop().create_task(
                self._finish_release(pending_connect, release),
                name=f"voice-release-wait-{self.guild_id}",
            )
        else:
            self._release_task = release

        if self._connected is not None and not self._connected.done():
            self._connected.set_exception(
                ConnectError(ErrorMessages.SESSION_STOPPED_BEFORE_CONNECT)
            )

        logger.info(LogTemplates.SESSION_DESTROYED, self.guild_id, reason.value)
        self._publish(
            SessionDestroyed(guild_id=self.guild_id, reason=reason.value, tracks_cleared=cleared)
        )
        return cleared

    def _transition(self, new_state: PlayerState) -> None:
        previous = self.session.transition_to(new_state)
        logger.debug(
            LogTemplates.SESSION_STATE_CHANGED, self.guild_id, previous.value, new_state.value
        )

    # ── Async workers ───────────────────────────────────────────────

    async def _connect(self, channel: Any, generation: int) -> None:
        try:
            connection = await self._connections.connect(self.guild_id, channel)
        except DomainError as e:
            self.dispatch(
                SessionEvent(SessionEventKind.CONNECT_FAILED, generation, error=e, reason=e.message)
            )
            return
        except Exception as e:
            logger.exception(LogTemplates.VOICE_CONNECT_FAILED, getattr(channel, "id", 0), e)
            error = ConnectError(ErrorMessages.CONNECT_FAILED.format(error=e))
            self.dispatch(
                SessionEvent(SessionEventKind.CONNECT_FAILED, generation, error=error, reason=error.reason)
            )
            return

        self.dispatch(SessionEvent(SessionEventKind.CONNECT_READY, generation, connection=connection))

    async def _load(self, source: str, generation: int) -> None:
        try:
            async with asyncio.timeout(self._resolve_timeout):
                resource = await self._resolver.resolve(source)
        except TimeoutError:
            reason = ErrorMessages.RESOLVE_TIMEOUT.format(timeout=self._resolve_timeout)
            self.dispatch(SessionEvent(SessionEventKind.RESOURCE_FAILED, generation, reason=reason))
            return
        except ResourceError as e:
            self.dispatch(SessionEvent(SessionEventKind.RESOURCE_FAILED, generation, reason=e.reason))
            return
        except Exception as e:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, source)
            self.dispatch(SessionEvent(SessionEventKind.RESOURCE_FAILED, generation, reason=str(e)))
            return

        self.dispatch(SessionEvent(SessionEventKind.RESOURCE_READY, generation, resource=resource))

    async def _finish_release(
        self, connect_task: asyncio.Task[None], release: asyncio.Task[None] | None
    ) -> None:
        # The cancelled handshake destroys its half-open connection on the way out.
        await asyncio.gather(connect_task, return_exceptions=True)
        if release is not None:
            await release
        await self._connections.wait_released(self.guild_id)

    def _track_end_callback(self, generation: int) -> TrackEndCallback:
        loop = asyncio.get_running_loop()

        def after(error: Exception | None) -> None:
            kind = SessionEventKind.TRACK_ERRORED if error else SessionEventKind.TRACK_ENDED
            try:
                loop.call_soon_threadsafe(self.dispatch, SessionEvent(kind, generation, error=error))
            except RuntimeError:
                # Event loop already closed during shutdown.
                logger.debug(LogTemplates.TRACK_ENDED, self.guild_id, error)

        return after

    # ── Helpers ─────────────────────────────────────────────────────

    def _stop_audio(self) -> None:
        connection = self.session.connection
        if connection is None or self.state not in (PlayerState.PLAYING, PlayerState.PAUSED):
            return
        try:
            connection.stop()
        except Exception as e:
            logger.warning(LogTemplates.PLAYBACK_STOP_AUDIO_FAILED, self.guild_id, e)

    def _cancel_connect(self) -> asyncio.Task[None] | None:
        """Cancel an in-flight handshake and return its task, if there was one."""
        task = self._connect_task
        self._connect_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return None
        task.cancel()
        return task

    def _cancel_load(self) -> None:
        task = self._load_task
        self._load_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _publish(self, event: DomainEvent) -> None:
        if self._event_bus is None:
            return
        task = asyncio.get_running_loop().create_task(self._event_bus.publish(event))
        self._background.add(task)
        task.add_done_callback(self._background.discard)


def _consume_exception(future: asyncio.Future[None]) -> None:
    # Nobody may be waiting on the connect outcome; mark the exception as seen.
    if not future.cancelled():
        future.exception()
