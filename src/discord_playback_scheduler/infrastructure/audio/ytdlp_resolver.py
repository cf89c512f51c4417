"""AudioResolver implementation using yt-dlp for URL resolution and search."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Final, cast

from pydantic import ValidationError
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from discord_playback_scheduler.application.interfaces.audio_resolver import AudioResolver
from discord_playback_scheduler.config.settings import AudioSettings
from discord_playback_scheduler.domain.music.entities import AudioResource
from discord_playback_scheduler.domain.shared.exceptions import ResourceError
from discord_playback_scheduler.domain.shared.messages import ErrorMessages, LogTemplates
from discord_playback_scheduler.domain.shared.validators import is_url
from discord_playback_scheduler.infrastructure.audio.models import (
    CACHE_MAX_SIZE,
    LOG_URL_TRUNCATE,
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

MAX_DURATION_SECONDS: Final[int] = 86_400
SEARCH_PREFIX: Final[str] = "ytsearch1:"


class YtDlpResolver(AudioResolver):
    """Resolves http(s) URLs and free-text queries to a direct stream URL.

    Extraction runs in a worker thread. Successful extractions are cached for
    ``AudioSettings.cache_ttl_seconds``; stream URLs expire upstream, so the
    TTL should stay well under an hour.
    """

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()
        self._format = self._settings.ytdlp_format
        self._base_opts = YtDlpOpts(format=self._format)
        self._cache: dict[str, CacheEntry] = {}
        self._cache_lock = threading.Lock()

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    # ── Parsing ─────────────────────────────────────────────────────

    @staticmethod
    def _parse_info(data: dict[str, Any]) -> YtDlpTrackInfo:
        """Parse a raw yt-dlp info dict, unwrapping a search result to its first entry."""
        entries = data.get("entries")
        if entries is not None:
            first = next((e for e in entries if isinstance(e, dict)), None)
            if first is None:
                raise LookupError(ErrorMessages.RESOLVER_NO_RESULT)
            data = first
        return YtDlpTrackInfo.model_validate(data)

    @staticmethod
    def _extract_stream_from_formats(formats: list[AudioFormatInfo]) -> str | None:
        audio_formats = [f for f in formats if f.acodec != "none" and f.url]
        if audio_formats:
            return audio_formats[-1].url
        return None

    def _info_to_resource(self, source: str, info: YtDlpTrackInfo) -> AudioResource:
        stream_url = info.url or self._extract_stream_from_formats(info.formats)
        if not stream_url:
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, info.title)
            raise ResourceError(source, ErrorMessages.RESOLVER_NO_STREAM_URL.format(title=info.title))

        duration = info.duration
        if info.is_live or (duration is not None and duration > MAX_DURATION_SECONDS):
            duration = None

        try:
            return AudioResource(
                title=info.title[:500],
                stream_url=stream_url,
                webpage_url=info.webpage_url,
                duration_seconds=duration,
            )
        except ValidationError as e:
            raise ResourceError(source, str(e)) from e

    # ── Extraction ──────────────────────────────────────────────────

    def _cached(self, key: str, now: float) -> YtDlpTrackInfo | None:
        ttl = self._settings.cache_ttl_seconds
        with self._cache_lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if now - entry.cached_at < ttl:
                logger.debug(LogTemplates.CACHE_HIT_URL, key[:LOG_URL_TRUNCATE])
                return entry.info
            self._cache.pop(key, None)
            return None

    def _store(self, key: str, info: YtDlpTrackInfo, now: float) -> None:
        ttl = self._settings.cache_ttl_seconds
        if ttl <= 0:
            return
        with self._cache_lock:
            self._cache[key] = CacheEntry(info=info, cached_at=now)
            if len(self._cache) > CACHE_MAX_SIZE:
                expired = [k for k, e in self._cache.items() if now - e.cached_at >= ttl]
                for k in expired:
                    self._cache.pop(k, None)
                if expired:
                    logger.debug(LogTemplates.CACHE_EXPIRED_CLEANED, len(expired))

    def _extract_info_sync(self, source: str) -> YtDlpTrackInfo:
        query = source if is_url(source) else f"{SEARCH_PREFIX}{source}"
        now = time.time()
        cached = self._cached(query, now)
        if cached is not None:
            return cached

        with YoutubeDL(params=cast(Any, self._get_opts().model_dump())) as ydl:
            data = ydl.extract_info(query, download=False)

        if not isinstance(data, dict):
            raise LookupError(ErrorMessages.RESOLVER_NO_RESULT)

        info = self._parse_info(dict(data))
        self._store(query, info, now)
        return info

    async def resolve(self, source: str) -> AudioResource:
        try:
            info = await asyncio.to_thread(self._extract_info_sync, source)
        except DownloadError as e:
            logger.warning(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, source[:LOG_URL_TRUNCATE])
            raise ResourceError(source, str(e)) from e
        except LookupError as e:
            raise ResourceError(source, str(e)) from e
        except Exception as e:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, source[:LOG_URL_TRUNCATE])
            raise ResourceError(source, str(e)) from e

        resource = self._info_to_resource(source, info)
        logger.debug(LogTemplates.YTDLP_RESOLVED, source[:LOG_URL_TRUNCATE], resource.title)
        return resource

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()
