"""In-memory implementation of the session registry."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from discord_playback_scheduler.domain.music.repository import SessionRegistry
from discord_playback_scheduler.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

S = TypeVar("S")


class InMemorySessionRegistry(SessionRegistry[S]):
    """Lock-protected ``guild_id -> session`` store.

    Sessions are never persisted; a restart starts with an empty registry.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, S] = {}
        self._lock = threading.Lock()

    def get(self, guild_id: int) -> S | None:
        with self._lock:
            return self._sessions.get(guild_id)

    def get_or_create(
        self, guild_id: int, factory: Callable[[int], S]
    ) -> tuple[S, bool]:
        with self._lock:
            existing = self._sessions.get(guild_id)
            if existing is not None:
                return existing, False

            session = factory(guild_id)
            self._sessions[guild_id] = session

        logger.info(LogTemplates.SESSION_CREATED, guild_id)
        return session, True

    def remove(self, guild_id: int, session: S | None = None) -> bool:
        with self._lock:
            current = self._sessions.get(guild_id)
            if current is None:
                return False
            if session is not None and current is not session:
                return False
            del self._sessions[guild_id]
            return True

    def all(self) -> list[S]:
        with self._lock:
            return list(self._sessions.values())

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
