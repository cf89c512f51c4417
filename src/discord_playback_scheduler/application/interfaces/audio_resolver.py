"""Port interface for resolving source locators to streamable audio."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_playback_scheduler.domain.shared.types import NonEmptyStr

if TYPE_CHECKING:
    from ...domain.music.entities import AudioResource


class AudioResolver(ABC):
    """Interface for resolving URLs and search queries to playable audio."""

    @abstractmethod
    async def resolve(self, source: NonEmptyStr) -> "AudioResource":
        """Resolve a URL or search query to a streamable resource.

        Raises:
            ResourceError: If nothing playable could be found.
        """
        ...
