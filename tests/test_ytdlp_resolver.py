"""
Unit Tests for YtDlpResolver

Tests for the yt-dlp based audio resolver:
- Info dict parsing (search results, format fallback)
- Info to AudioResource conversion
- Resolve for URLs and free-text queries
- Caching behaviour
- Error translation to ResourceError

YoutubeDL is patched out; nothing touches the network.
"""

from unittest.mock import MagicMock, patch

import pytest
from yt_dlp.utils import DownloadError

from discord_playback_scheduler.config.settings import AudioSettings
from discord_playback_scheduler.domain.shared.exceptions import ResourceError
from discord_playback_scheduler.infrastructure.audio.models import (
    AudioFormatInfo,
    CacheEntry,
    YtDlpTrackInfo,
)
from discord_playback_scheduler.infrastructure.audio.ytdlp_resolver import YtDlpResolver

YOUTUBE_DL = "discord_playback_scheduler.infrastructure.audio.ytdlp_resolver.YoutubeDL"

VIDEO_INFO = {
    "webpage_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "url": "https://rr1.googlevideo.com/videoplayback?id=1",
    "title": "Never Gonna Give You Up",
    "duration": 213,
    "is_live": False,
}


@pytest.fixture
def resolver():
    return YtDlpResolver(AudioSettings())


def _patch_ydl(result=None, side_effect=None):
    """Patch YoutubeDL so extract_info returns ``result`` or raises ``side_effect``."""
    patcher = patch(YOUTUBE_DL)
    ydl_cls = patcher.start()
    ydl = MagicMock()
    ydl.extract_info.return_value = result
    ydl.extract_info.side_effect = side_effect
    ydl_cls.return_value.__enter__.return_value = ydl
    return patcher, ydl_cls, ydl


class TestParsing:
    def test_parse_plain_info(self):
        info = YtDlpResolver._parse_info(dict(VIDEO_INFO))

        assert info.title == "Never Gonna Give You Up"
        assert info.duration == 213

    def test_parse_search_result_takes_first_entry(self):
        data = {"entries": [None, dict(VIDEO_INFO), {"title": "second"}]}

        info = YtDlpResolver._parse_info(data)

        assert info.title == "Never Gonna Give You Up"

    def test_parse_empty_search_raises_lookup_error(self):
        with pytest.raises(LookupError):
            YtDlpResolver._parse_info({"entries": []})

    def test_stream_from_formats_prefers_last_audio(self):
        formats = [
            AudioFormatInfo(url="https://a.example/1", acodec="opus"),
            AudioFormatInfo(url="https://a.example/2", acodec="mp4a"),
            AudioFormatInfo(url="https://a.example/video", acodec="none"),
        ]

        assert YtDlpResolver._extract_stream_from_formats(formats) == "https://a.example/2"

    def test_stream_from_formats_none(self):
        assert YtDlpResolver._extract_stream_from_formats([]) is None

    def test_garbage_fields_coerced(self):
        info = YtDlpTrackInfo.model_validate(
            {"title": "", "duration": "abc", "url": "  ", "is_live": None}
        )

        assert info.title == "Unknown Title"
        assert info.duration is None
        assert info.url is None
        assert info.is_live is False


class TestInfoToResource:
    def test_builds_resource(self, resolver):
        info = YtDlpTrackInfo.model_validate(VIDEO_INFO)

        resource = resolver._info_to_resource("never gonna", info)

        assert resource.title == "Never Gonna Give You Up"
        assert resource.stream_url == VIDEO_INFO["url"]
        assert resource.webpage_url == VIDEO_INFO["webpage_url"]
        assert resource.duration_seconds == 213

    def test_falls_back_to_formats(self, resolver):
        info = YtDlpTrackInfo.model_validate(
            {
                "title": "t",
                "formats": [{"url": "https://a.example/opus", "acodec": "opus"}],
            }
        )

        assert resolver._info_to_resource("t", info).stream_url == "https://a.example/opus"

    def test_no_stream_raises_resource_error(self, resolver):
        info = YtDlpTrackInfo.model_validate({"title": "silent"})

        with pytest.raises(ResourceError, match="No stream URL"):
            resolver._info_to_resource("silent", info)

    def test_live_stream_has_no_duration(self, resolver):
        info = YtDlpTrackInfo.model_validate({**VIDEO_INFO, "is_live": True, "duration": 50})

        assert resolver._info_to_resource("live", info).duration_seconds is None

    def test_absurd_duration_dropped(self, resolver):
        info = YtDlpTrackInfo.model_validate({**VIDEO_INFO, "duration": 10**6})

        assert resolver._info_to_resource("long", info).duration_seconds is None

    def test_non_http_stream_rejected(self, resolver):
        info = YtDlpTrackInfo.model_validate({**VIDEO_INFO, "url": "rtmp://live.example/x"})

        with pytest.raises(ResourceError):
            resolver._info_to_resource("rtmp", info)


class TestResolve:
    async def test_url_passed_through(self, resolver):
        patcher, _, ydl = _patch_ydl(dict(VIDEO_INFO))
        try:
            resource = await resolver.resolve("https://youtu.be/dQw4w9WgXcQ")
        finally:
            patcher.stop()

        ydl.extract_info.assert_called_once_with("https://youtu.be/dQw4w9WgXcQ", download=False)
        assert resource.title == "Never Gonna Give You Up"

    async def test_query_searched(self, resolver):
        patcher, _, ydl = _patch_ydl({"entries": [dict(VIDEO_INFO)]})
        try:
            await resolver.resolve("rick astley")
        finally:
            patcher.stop()

        ydl.extract_info.assert_called_once_with("ytsearch1:rick astley", download=False)

    async def test_options_passed_to_youtube_dl(self, resolver):
        patcher, ydl_cls, _ = _patch_ydl(dict(VIDEO_INFO))
        try:
            await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        params = ydl_cls.call_args.kwargs["params"]
        assert params["format"] == "251/140/bestaudio[protocol^=http]/bestaudio/best"
        assert params["noplaylist"] is True
        assert params["quiet"] is True

    async def test_format_comes_from_settings(self):
        resolver = YtDlpResolver(AudioSettings(ytdlp_format="bestaudio"))
        patcher, ydl_cls, _ = _patch_ydl(dict(VIDEO_INFO))
        try:
            await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert ydl_cls.call_args.kwargs["params"]["format"] == "bestaudio"

    async def test_download_error_wrapped(self, resolver):
        patcher, _, _ = _patch_ydl(side_effect=DownloadError("Video unavailable"))
        try:
            with pytest.raises(ResourceError, match="Video unavailable") as exc_info:
                await resolver.resolve("https://youtu.be/gone")
        finally:
            patcher.stop()

        assert exc_info.value.source == "https://youtu.be/gone"

    async def test_no_search_results(self, resolver):
        patcher, _, _ = _patch_ydl({"entries": []})
        try:
            with pytest.raises(ResourceError, match="No playable result"):
                await resolver.resolve("zzzzzz")
        finally:
            patcher.stop()

    async def test_non_dict_result(self, resolver):
        patcher, _, _ = _patch_ydl(None)
        try:
            with pytest.raises(ResourceError):
                await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

    async def test_unexpected_error_wrapped(self, resolver):
        patcher, _, _ = _patch_ydl(side_effect=KeyError("formats"))
        try:
            with pytest.raises(ResourceError):
                await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()


class TestCache:
    async def test_second_resolve_hits_cache(self, resolver):
        patcher, _, ydl = _patch_ydl(dict(VIDEO_INFO))
        try:
            first = await resolver.resolve("https://youtu.be/x")
            second = await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert ydl.extract_info.call_count == 1
        assert first == second

    async def test_zero_ttl_disables_cache(self):
        resolver = YtDlpResolver(AudioSettings(cache_ttl_seconds=0))
        patcher, _, ydl = _patch_ydl(dict(VIDEO_INFO))
        try:
            await resolver.resolve("https://youtu.be/x")
            await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert ydl.extract_info.call_count == 2

    async def test_expired_entry_refetched(self, resolver):
        patcher, _, ydl = _patch_ydl(dict(VIDEO_INFO))
        try:
            await resolver.resolve("https://youtu.be/x")
            key, entry = next(iter(resolver._cache.items()))
            resolver._cache[key] = CacheEntry(info=entry.info, cached_at=entry.cached_at - 1801)
            await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert ydl.extract_info.call_count == 2

    async def test_clear_cache(self, resolver):
        patcher, _, ydl = _patch_ydl(dict(VIDEO_INFO))
        try:
            await resolver.resolve("https://youtu.be/x")
            resolver.clear_cache()
            await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert ydl.extract_info.call_count == 2

    async def test_failures_not_cached(self, resolver):
        patcher, _, ydl = _patch_ydl(side_effect=[DownloadError("flaky"), dict(VIDEO_INFO)])
        try:
            with pytest.raises(ResourceError):
                await resolver.resolve("https://youtu.be/x")
            resource = await resolver.resolve("https://youtu.be/x")
        finally:
            patcher.stop()

        assert resource.title == "Never Gonna Give You Up"
