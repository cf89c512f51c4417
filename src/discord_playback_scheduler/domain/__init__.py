# ruff: noqa: N999
"""
Domain Layer

Contains pure business logic organized by bounded contexts:
- shared/: Cross-cutting types, validators, events and exceptions
- music/: Track, queue and playback session logic
"""

from discord_playback_scheduler.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
