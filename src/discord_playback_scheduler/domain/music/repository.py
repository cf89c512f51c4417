"""
Music Domain Repository Interfaces

Abstract base classes defining the contracts for session storage.
Implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar

S = TypeVar("S")


class SessionRegistry(ABC, Generic[S]):
    """Process-wide mapping from guild ID to its single active session.

    At most one session exists per guild. The stored object is whatever the
    application uses to drive a guild's PlaybackSession. Methods are
    synchronous so that a session can unregister itself in the same step
    that ends it.
    """

    @abstractmethod
    def get(self, guild_id: int) -> S | None:
        """Retrieve the session for a guild.

        Args:
            guild_id: The Discord guild ID.

        Returns:
            The session if found, None otherwise.
        """
        ...

    @abstractmethod
    def get_or_create(
        self, guild_id: int, factory: Callable[[int], S]
    ) -> tuple[S, bool]:
        """Get the existing session or create one, atomically per guild.

        Args:
            guild_id: The Discord guild ID.
            factory: Builds a new session for ``guild_id``; only called when
                no session exists.

        Returns:
            ``(session, created)``. Concurrent callers for the same guild all
            receive the same session and exactly one sees ``created=True``.
        """
        ...

    @abstractmethod
    def remove(self, guild_id: int, session: S | None = None) -> bool:
        """Remove a guild's session. Removing an absent guild is a no-op.

        Args:
            guild_id: The Discord guild ID.
            session: If given, only remove when the registry still maps the
                guild to this exact session.

        Returns:
            True if an entry was removed.
        """
        ...

    @abstractmethod
    def all(self) -> list[S]:
        """Snapshot of every registered session."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...
