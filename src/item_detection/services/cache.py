"""Key-value and counter store abstractions."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class KeyValueStore(Protocol):
    """Shared store for cached payloads and usage counters."""

    async def get(self, key: str) -> str | None:
        """Return a stored value if present and not expired."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL in seconds."""

    async def delete(self, key: str) -> None:
        """Remove a key if present."""

    async def exists(self, key: str) -> bool:
        """Return True if the key is present and not expired."""

    async def increment(self, key: str, amount: int) -> int:
        """Atomically add to an integer counter and return the new value."""

    async def expire(self, key: str, ttl_seconds: int) -> None:
        """Set a TTL on an existing key."""


@dataclass
class _StoreEntry:
    value: str
    expires_at: datetime | None


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class InMemoryStore(KeyValueStore):
    """In-process store for local runs and tests.

    Operations never await, so each one runs to completion on the event loop
    and counter increments cannot interleave.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._entries: dict[str, _StoreEntry] = {}
        self._clock = clock

    def _live_entry(self, key: str) -> _StoreEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry

    async def get(self, key: str) -> str | None:
        """Return a stored value if it hasn't expired."""
        entry = self._live_entry(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        self._entries[key] = _StoreEntry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        """Remove a key."""
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        """Return True if the key is live."""
        return self._live_entry(key) is not None

    async def increment(self, key: str, amount: int) -> int:
        """Add to a counter, keeping any existing expiry."""
        entry = self._live_entry(key)
        current = int(entry.value) if entry else 0
        new_value = current + amount
        self._entries[key] = _StoreEntry(
            value=str(new_value),
            expires_at=entry.expires_at if entry else None,
        )
        return new_value

    async def expire(self, key: str, ttl_seconds: int) -> None:
        """Set a TTL on a live key."""
        entry = self._live_entry(key)
        if entry is None:
            return
        entry.expires_at = self._clock() + timedelta(seconds=ttl_seconds)
