"""
Shared Domain Kernel

Contains types and exceptions shared across all bounded contexts.
"""

from discord_playback_scheduler.domain.shared.exceptions import (
    ConnectError,
    DomainError,
    InvalidOperationError,
    InvalidSource,
    NothingPlaying,
    PermissionDenied,
    ResourceError,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "InvalidSource",
    "PermissionDenied",
    "ConnectError",
    "ResourceError",
    "NothingPlaying",
]
