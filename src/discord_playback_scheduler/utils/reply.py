"""Utility functions for formatting Discord messages."""

from __future__ import annotations

from functools import cache


@cache
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def escape_source(source: str, max_length: int = 80) -> str:
    """Shorten a source locator and neutralise Discord markdown in it."""
    from discord.utils import escape_markdown

    return escape_markdown(truncate(source, max_length))
