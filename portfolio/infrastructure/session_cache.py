import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


def repos_key(username: str) -> str:
    return f"repos:{username}"


def orgs_key(username: str) -> str:
    return f"orgs:{username}"


def contributions_key(username: str, year: int) -> str:
    return f"contributions:{username}:{year}"


def readme_key(full_name: str) -> str:
    return f"readme:{full_name}"


def languages_key(full_name: str) -> str:
    return f"languages:{full_name}"


def contributors_key(full_name: str) -> str:
    return f"contributors:{full_name}"


class SessionCache(Protocol):
    """Key/value store of serialized JSON that lives as long as the browsing session."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def invalidate(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemorySessionCache:
    """Process-local session cache. A key is written once until it is invalidated."""

    def __init__(self):
        self._entries: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class ReadThroughCache:
    """
    Wraps a SessionCache with the check / produce / store / return pattern.

    Concurrent callers asking for the same key share one producer call: the
    first one fetches, the others wait on the key's lock and then read the
    stored value.
    """

    def __init__(self, store: Optional[SessionCache] = None):
        self.store = store if store is not None else InMemorySessionCache()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def _lookup(self, key: str) -> Any:
        cached = self.store.get(key)
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry '{key}'.")
            self.store.invalidate(key)
            return None

    async def read_through(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """
        Returns the cached JSON value for `key`, calling `producer` on a miss.
        The producer's result must be JSON-serializable. A None result is
        returned but not stored, and exceptions from the producer propagate
        without storing anything.
        """
        value = self._lookup(key)
        if value is not None:
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                value = self._lookup(key)
                if value is not None:
                    return value

                value = await producer()
                if value is None:
                    return None
                self.store.set(key, json.dumps(value))
                logger.debug(f"Cached '{key}'.")
                return value
        finally:
            # The last caller out drops the key's lock.
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def invalidate(self, key: str) -> None:
        self.store.invalidate(key)
