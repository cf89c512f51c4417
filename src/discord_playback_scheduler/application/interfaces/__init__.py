"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discord_playback_scheduler.application.interfaces.audio_resolver import AudioResolver
from discord_playback_scheduler.application.interfaces.voice_adapter import (
    TrackEndCallback,
    VoiceConnection,
    VoiceTransport,
)

__all__ = [
    "AudioResolver",
    "VoiceConnection",
    "VoiceTransport",
    "TrackEndCallback",
]
