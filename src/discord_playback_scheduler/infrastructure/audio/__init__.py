"""Audio infrastructure - yt-dlp resolver and its data models."""

from discord_playback_scheduler.infrastructure.audio.models import (
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)
from discord_playback_scheduler.infrastructure.audio.ytdlp_resolver import YtDlpResolver

__all__ = [
    "AudioFormatInfo",
    "CacheEntry",
    "YtDlpOpts",
    "YtDlpResolver",
    "YtDlpTrackInfo",
]
