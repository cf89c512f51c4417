import asyncio
from collections.abc import Awaitable, Callable
from types import SimpleNamespace

import pytest

from discord_playback_scheduler.application.interfaces.audio_resolver import AudioResolver
from discord_playback_scheduler.application.interfaces.voice_adapter import (
    TrackEndCallback,
    VoiceConnection,
    VoiceTransport,
)
from discord_playback_scheduler.application.services.connection_manager import (
    ConnectionManager,
)
from discord_playback_scheduler.application.services.playback_service import PlaybackService
from discord_playback_scheduler.application.services.player import GuildPlayer
from discord_playback_scheduler.domain.music.entities import AudioResource, TrackDescriptor
from discord_playback_scheduler.domain.shared.events import (
    EventBus,
    QueueAbandoned,
    QueueExhausted,
    SessionCreated,
    SessionDestroyed,
    TrackFailed,
    TrackStartedPlaying,
    reset_event_bus,
)
from discord_playback_scheduler.domain.shared.exceptions import ResourceError
from discord_playback_scheduler.infrastructure.persistence.repositories.session_registry import (
    InMemorySessionRegistry,
)

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222
USER_ID = 333333333333333333

# ============================================================================
# Fake voice / audio ports
# ============================================================================


class FakeVoiceConnection(VoiceConnection):
    """In-memory voice connection that records what the player asked of it."""

    def __init__(self, guild_id: int, channel_id: int, *, hang_ready: bool = False) -> None:
        self._guild_id = guild_id
        self._channel_id = channel_id
        self.hang_ready = hang_ready
        self.fail_play: set[str] = set()
        self.played: list[str] = []
        self.after: TrackEndCallback | None = None
        self.pause_calls = 0
        self.resume_calls = 0
        self.stop_calls = 0
        self.destroy_calls = 0
        self.is_playing = False

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def destroyed(self) -> bool:
        return self.destroy_calls > 0

    async def wait_ready(self) -> None:
        if self.hang_ready:
            await asyncio.Event().wait()

    def play(self, resource: AudioResource, after: TrackEndCallback) -> None:
        if resource.title in self.fail_play:
            raise ResourceError(resource.title, "encoder refused the stream")
        self.played.append(resource.title)
        self.after = after
        self.is_playing = True

    def pause(self) -> None:
        self.pause_calls += 1

    def resume(self) -> None:
        self.resume_calls += 1

    def stop(self) -> None:
        self.stop_calls += 1
        # discord.py fires the after callback when a playing source is stopped.
        if self.is_playing and self.after is not None:
            self.is_playing = False
            self.after(None)

    async def destroy(self) -> None:
        self.destroy_calls += 1

    def finish(self, error: Exception | None = None) -> None:
        """Simulate the current audio source ending."""
        assert self.after is not None
        self.is_playing = False
        self.after(error)


class FakeVoiceTransport(VoiceTransport):
    def __init__(self) -> None:
        self.missing: list[str] = []
        self.join_error: BaseException | None = None
        self.hang_join = False
        self.join_gate: asyncio.Event | None = None
        self.hang_ready = False
        self.fail_play: set[str] = set()
        self.joins = 0
        self.connections: list[FakeVoiceConnection] = []

    @property
    def last(self) -> FakeVoiceConnection:
        return self.connections[-1]

    def hold_join(self) -> asyncio.Event:
        self.join_gate = asyncio.Event()
        return self.join_gate

    def missing_permissions(self, channel) -> list[str]:
        return list(self.missing)

    async def join(self, channel) -> FakeVoiceConnection:
        self.joins += 1
        if self.hang_join:
            await asyncio.Event().wait()
        if self.join_gate is not None:
            await self.join_gate.wait()
        if self.join_error is not None:
            raise self.join_error

        connection = FakeVoiceConnection(
            channel.guild.id, channel.id, hang_ready=self.hang_ready
        )
        connection.fail_play = set(self.fail_play)
        self.connections.append(connection)
        return connection


def make_resource(title: str, duration: int | None = 180) -> AudioResource:
    return AudioResource(
        title=title,
        stream_url=f"https://cdn.example.com/{abs(hash(title))}.webm",
        webpage_url="https://example.com/watch",
        duration_seconds=duration,
    )


class FakeResolver(AudioResolver):
    """Resolves every source to a resource titled after the source itself."""

    def __init__(self) -> None:
        self.failures: dict[str, str] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.slow: set[str] = set()
        self.calls: list[str] = []

    def hold(self, source: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[source] = gate
        return gate

    async def resolve(self, source: str) -> AudioResource:
        self.calls.append(source)
        gate = self.gates.get(source)
        if gate is not None:
            await gate.wait()
        if source in self.slow:
            await asyncio.Event().wait()
        if source in self.failures:
            raise ResourceError(source, self.failures[source])
        return make_resource(source)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_event_bus():
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def transport() -> FakeVoiceTransport:
    return FakeVoiceTransport()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def registry() -> InMemorySessionRegistry:
    return InMemorySessionRegistry()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """Every session/playback event published on ``event_bus``, in order."""
    events = []

    async def record(event) -> None:
        events.append(event)

    for event_type in (
        SessionCreated,
        SessionDestroyed,
        TrackStartedPlaying,
        TrackFailed,
        QueueExhausted,
        QueueAbandoned,
    ):
        event_bus.subscribe(event_type, record)
    return events


@pytest.fixture
def connections(transport) -> ConnectionManager:
    return ConnectionManager(transport=transport, connect_timeout=0.5)


@pytest.fixture
def service(registry, connections, resolver, event_bus) -> PlaybackService:
    return PlaybackService(
        registry=registry,
        connections=connections,
        resolver=resolver,
        event_bus=event_bus,
        resolve_timeout=0.5,
        max_consecutive_failures=3,
    )


@pytest.fixture
def make_player(registry, connections, resolver, event_bus):
    """Register and return a GuildPlayer the same way PlaybackService does."""

    def factory(guild_id: int = GUILD_ID, max_consecutive_failures: int = 3) -> GuildPlayer:
        player, _ = registry.get_or_create(
            guild_id,
            lambda gid: GuildPlayer(
                gid,
                registry=registry,
                connections=connections,
                resolver=resolver,
                event_bus=event_bus,
                resolve_timeout=0.5,
                max_consecutive_failures=max_consecutive_failures,
            ),
        )
        return player

    return factory


@pytest.fixture
def make_channel():
    def factory(guild_id: int = GUILD_ID, channel_id: int = CHANNEL_ID, name: str = "General"):
        return SimpleNamespace(id=channel_id, name=name, guild=SimpleNamespace(id=guild_id))

    return factory


@pytest.fixture
def track():
    def factory(source: str, requested_by: int = USER_ID) -> TrackDescriptor:
        return TrackDescriptor.create(source, requested_by)

    return factory


@pytest.fixture
def until() -> Callable[..., Awaitable[None]]:
    """Poll ``predicate`` while letting the event loop run; fail after ``timeout``."""

    async def wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.001)

    return wait


@pytest.fixture
def settle() -> Callable[..., Awaitable[None]]:
    """Give pending callbacks and tasks a few loop iterations to run."""

    async def run(iterations: int = 20) -> None:
        for _ in range(iterations):
            await asyncio.sleep(0)

    return run
