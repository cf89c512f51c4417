"""Shared validators for domain models.

Reusable checks for Discord snowflake IDs and for the source locators users
hand to ``/play``.
"""

from __future__ import annotations

from typing import Final
from urllib.parse import urlsplit

from discord_playback_scheduler.domain.shared.exceptions import InvalidSource
from discord_playback_scheduler.domain.shared.messages import ErrorMessages

MAX_SOURCE_LENGTH: Final[int] = 500
SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})


def validate_discord_snowflake(value: int) -> int:
    """Validate a Discord snowflake ID.

    Discord snowflake IDs are 64-bit unsigned integers representing unique
    identifiers for users, guilds, channels, messages, etc.

    Args:
        value: The snowflake ID to validate.

    Returns:
        The validated snowflake ID.

    Raises:
        ValueError: If the snowflake ID is invalid.
    """
    if value <= 0:
        raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
    if value >= 2**64:
        raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
    return value


def is_url(source: str) -> bool:
    return "://" in source


def validate_source_locator(source: str) -> str:
    """Validate and normalise a source locator.

    A locator is either an http(s) URL or a free-text search query. The
    locator itself stays opaque; only its shape is checked here.

    Args:
        source: Raw locator as typed by the user.

    Returns:
        The stripped locator.

    Raises:
        InvalidSource: If the locator is empty, too long, contains control
            characters, or is a URL with an unsupported scheme or no host.
    """
    if not isinstance(source, str):
        raise InvalidSource(repr(source), ErrorMessages.EMPTY_SOURCE)

    value = source.strip()
    if not value:
        raise InvalidSource(source, ErrorMessages.EMPTY_SOURCE)
    if len(value) > MAX_SOURCE_LENGTH:
        raise InvalidSource(
            value[:60], ErrorMessages.SOURCE_TOO_LONG.format(max_length=MAX_SOURCE_LENGTH)
        )
    if any(not ch.isprintable() for ch in value):
        raise InvalidSource(value, ErrorMessages.SOURCE_CONTROL_CHARS)

    if is_url(value):
        parts = urlsplit(value)
        scheme = parts.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise InvalidSource(
                value, ErrorMessages.SOURCE_UNSUPPORTED_SCHEME.format(scheme=scheme or "<none>")
            )
        if not parts.hostname:
            raise InvalidSource(value, ErrorMessages.SOURCE_MISSING_HOST)

    return value
