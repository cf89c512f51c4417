"""
Unit Tests for PlaybackService

Tests for:
- play(): session creation, attaching to an existing session, error paths
- One-session-per-guild under concurrent play calls
- skip/pause/resume/stop delegation and NothingPlaying without a session
- now_playing/list_queue queries
- shutdown of every session
"""

import asyncio

import pytest

from discord_playback_scheduler.domain.music.value_objects import PlayerState
from discord_playback_scheduler.domain.shared.events import SessionCreated
from discord_playback_scheduler.domain.shared.exceptions import (
    ConnectError,
    InvalidSource,
    NothingPlaying,
    PermissionDenied,
)

GUILD_ID = 111111111111111111
USER_ID = 333333333333333333


def is_playing(service, guild_id: int, title: str):
    def check() -> bool:
        if service.get_state(guild_id) is not PlayerState.PLAYING:
            return False
        return service.now_playing(guild_id).title == title

    return check


class TestPlay:
    async def test_first_play_creates_session(
        self, service, make_channel, transport, until, recorded_events
    ):
        result = await service.play(GUILD_ID, make_channel(), "never gonna", USER_ID)

        assert result.created
        assert result.started
        assert result.position == 0
        assert result.queue_length == 1
        assert result.track.source == "never gonna"
        assert result.track.requested_by == USER_ID
        assert transport.joins == 1
        await until(is_playing(service, GUILD_ID, "never gonna"))
        created = [e for e in recorded_events if isinstance(e, SessionCreated)]
        assert len(created) == 1
        assert created[0].guild_id == GUILD_ID

    async def test_second_play_attaches_to_session(
        self, service, make_channel, transport, until
    ):
        await service.play(GUILD_ID, make_channel(), "one", USER_ID)
        result = await service.play(GUILD_ID, make_channel(), "two", USER_ID)

        assert not result.created
        assert not result.started
        assert result.position == 1
        assert result.queue_length == 2
        assert transport.joins == 1

    async def test_source_is_stripped(self, service, make_channel):
        result = await service.play(GUILD_ID, make_channel(), "  lofi beats  ", USER_ID)

        assert result.track.source == "lofi beats"

    @pytest.mark.parametrize(
        "source",
        ["", "   ", "ftp://files.example.com/song.mp3", "https://", "bad\x00query"],
    )
    async def test_invalid_source_leaves_nothing_behind(
        self, service, make_channel, transport, source
    ):
        with pytest.raises(InvalidSource):
            await service.play(GUILD_ID, make_channel(), source, USER_ID)

        assert not service.has_session(GUILD_ID)
        assert transport.joins == 0

    async def test_permission_denied_leaves_nothing_behind(
        self, service, make_channel, transport
    ):
        transport.missing = ["speak"]

        with pytest.raises(PermissionDenied):
            await service.play(GUILD_ID, make_channel(), "song", USER_ID)

        assert not service.has_session(GUILD_ID)
        assert transport.joins == 0

    async def test_connect_error_leaves_no_session(self, service, make_channel, transport):
        transport.join_error = RuntimeError("gateway 4006")

        with pytest.raises(ConnectError):
            await service.play(GUILD_ID, make_channel(), "song", USER_ID)

        assert not service.has_session(GUILD_ID)
        assert service.list_queue(GUILD_ID) == []

    async def test_connect_error_reaches_every_attached_caller(
        self, service, make_channel, transport
    ):
        gate = transport.hold_join()
        transport.join_error = RuntimeError("voice server unavailable")

        first = asyncio.create_task(service.play(GUILD_ID, make_channel(), "a", USER_ID))
        second = asyncio.create_task(service.play(GUILD_ID, make_channel(), "b", USER_ID))
        await asyncio.sleep(0.01)
        gate.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        assert all(isinstance(r, ConnectError) for r in results)
        assert transport.joins == 1
        assert not service.has_session(GUILD_ID)

    async def test_concurrent_plays_share_one_session(
        self, service, make_channel, transport, registry
    ):
        results = await asyncio.gather(
            *(service.play(GUILD_ID, make_channel(), f"track {i}", USER_ID) for i in range(5))
        )

        assert sum(r.created for r in results) == 1
        assert sorted(r.position for r in results) == [0, 1, 2, 3, 4]
        assert registry.count() == 1
        assert transport.joins == 1

    async def test_new_play_after_queue_end_builds_fresh_session(
        self, service, make_channel, transport, registry, until
    ):
        await service.play(GUILD_ID, make_channel(), "first", USER_ID)
        await until(is_playing(service, GUILD_ID, "first"))
        old_player = registry.get(GUILD_ID)
        transport.last.finish()
        await until(lambda: not service.has_session(GUILD_ID))

        result = await service.play(GUILD_ID, make_channel(), "second", USER_ID)

        assert result.created
        assert registry.get(GUILD_ID) is not old_player
        assert transport.joins == 2
        assert transport.connections[0].destroyed
        await until(is_playing(service, GUILD_ID, "second"))

    async def test_guilds_are_independent(self, service, make_channel, transport, until):
        await service.play(1, make_channel(guild_id=1), "guild one", USER_ID)
        await service.play(2, make_channel(guild_id=2), "guild two", USER_ID)
        await until(is_playing(service, 1, "guild one"))
        await until(is_playing(service, 2, "guild two"))

        await service.stop(1)

        assert not service.has_session(1)
        assert service.get_state(2) is PlayerState.PLAYING


class TestControls:
    @pytest.mark.parametrize("command", ["skip", "pause", "resume", "stop"])
    async def test_without_session_raises_nothing_playing(self, service, command):
        with pytest.raises(NothingPlaying):
            await getattr(service, command)(GUILD_ID)

    async def test_skip_returns_skipped_track(self, service, make_channel, until):
        await service.play(GUILD_ID, make_channel(), "a", USER_ID)
        await service.play(GUILD_ID, make_channel(), "b", USER_ID)
        await until(is_playing(service, GUILD_ID, "a"))

        skipped = await service.skip(GUILD_ID)

        assert skipped.source == "a"
        await until(is_playing(service, GUILD_ID, "b"))

    async def test_pause_resume(self, service, make_channel, transport, until):
        for source in ("a", "b", "c"):
            await service.play(GUILD_ID, make_channel(), source, USER_ID)
        await until(is_playing(service, GUILD_ID, "a"))
        before = service.list_queue(GUILD_ID)

        paused = await service.pause(GUILD_ID)
        assert service.get_state(GUILD_ID) is PlayerState.PAUSED
        assert service.now_playing(GUILD_ID).state is PlayerState.PAUSED

        resumed = await service.resume(GUILD_ID)
        assert service.get_state(GUILD_ID) is PlayerState.PLAYING
        assert resumed is paused is before[0]
        assert service.list_queue(GUILD_ID) == before
        assert transport.last.played == ["a"]

    async def test_stop_returns_cleared_and_disconnects(
        self, service, make_channel, transport, until
    ):
        await service.play(GUILD_ID, make_channel(), "a", USER_ID)
        await service.play(GUILD_ID, make_channel(), "b", USER_ID)
        await until(is_playing(service, GUILD_ID, "a"))

        cleared = await service.stop(GUILD_ID)

        assert cleared == 2
        assert transport.last.destroyed
        assert not service.has_session(GUILD_ID)

    async def test_second_stop_raises_nothing_playing(self, service, make_channel, until):
        await service.play(GUILD_ID, make_channel(), "a", USER_ID)
        await service.stop(GUILD_ID)

        with pytest.raises(NothingPlaying):
            await service.stop(GUILD_ID)

    async def test_stop_during_connect_fails_pending_play(
        self, service, make_channel, transport, settle
    ):
        transport.hang_join = True
        pending = asyncio.create_task(service.play(GUILD_ID, make_channel(), "a", USER_ID))
        await settle()

        cleared = await service.stop(GUILD_ID)

        assert cleared == 1
        with pytest.raises(ConnectError):
            await pending

    async def test_stop_during_handshake_destroys_half_open_connection(
        self, service, make_channel, transport, until
    ):
        transport.hang_ready = True
        pending = asyncio.create_task(service.play(GUILD_ID, make_channel(), "a", USER_ID))
        await until(lambda: transport.connections)

        await service.stop(GUILD_ID)

        assert transport.last.destroyed
        with pytest.raises(ConnectError):
            await pending


class TestQueries:
    async def test_now_playing_while_loading_has_no_title(
        self, service, make_channel, resolver
    ):
        resolver.hold("slow")
        await service.play(GUILD_ID, make_channel(), "slow", USER_ID)

        current = service.now_playing(GUILD_ID)

        assert current.track.source == "slow"
        assert current.title is None
        assert current.state is PlayerState.LOADING
        await service.stop(GUILD_ID)

    async def test_now_playing_includes_resource(self, service, make_channel, until):
        await service.play(GUILD_ID, make_channel(), "tune", USER_ID)
        await until(is_playing(service, GUILD_ID, "tune"))

        current = service.now_playing(GUILD_ID)

        assert current.duration == "3:00"

    def test_now_playing_without_session_raises(self, service):
        with pytest.raises(NothingPlaying):
            service.now_playing(GUILD_ID)

    async def test_list_queue_head_first(self, service, make_channel):
        for source in ("x", "y", "z"):
            await service.play(GUILD_ID, make_channel(), source, USER_ID)

        assert [t.source for t in service.list_queue(GUILD_ID)] == ["x", "y", "z"]

    def test_list_queue_without_session_is_empty(self, service):
        assert service.list_queue(GUILD_ID) == []
        assert service.get_state(GUILD_ID) is None


class TestShutdown:
    async def test_shutdown_stops_every_session(
        self, service, make_channel, transport, registry, until
    ):
        await service.play(1, make_channel(guild_id=1), "a", USER_ID)
        await service.play(2, make_channel(guild_id=2), "b", USER_ID)
        await until(is_playing(service, 2, "b"))

        await service.shutdown()

        assert registry.count() == 0
        assert all(c.destroyed for c in transport.connections)

    async def test_shutdown_without_sessions(self, service):
        await service.shutdown()
