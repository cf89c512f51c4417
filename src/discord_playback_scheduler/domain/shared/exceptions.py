"""Base exception classes for domain-level errors."""

from __future__ import annotations

from discord_playback_scheduler.domain.shared.messages import ErrorMessages


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class InvalidSource(DomainError):
    """Raised when a source locator is malformed or unsupported."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Invalid source {source!r}: {reason}", code="INVALID_SOURCE")
        self.source = source
        self.reason = reason


class PermissionDenied(DomainError):
    """Raised when the bot lacks connect/speak permission for a voice channel."""

    def __init__(self, channel_id: int, missing: list[str]) -> None:
        super().__init__(
            ErrorMessages.MISSING_VOICE_PERMISSIONS.format(missing=", ".join(missing)),
            code="PERMISSION_DENIED",
        )
        self.channel_id = channel_id
        self.missing = missing


class ConnectError(DomainError):
    """Raised when joining a voice channel fails or times out."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason, code="CONNECT_ERROR")
        self.reason = reason


class ResourceError(DomainError):
    """Raised when audio for a single track cannot be acquired or played."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Could not play {source!r}: {reason}", code="RESOURCE_ERROR")
        self.source = source
        self.reason = reason


class NothingPlaying(DomainError):
    """Raised when a control operation needs an active track and there is none."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or ErrorMessages.NOTHING_PLAYING, code="NOTHING_PLAYING")
