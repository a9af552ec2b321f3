"""
Application Layer: Keyed State Cache
One cache for approval flags and metadata, addressed by tagged keys.
The ledger stays the source of truth; entries are only an optimization.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import structlog

from src.domain import TokenId

logger = structlog.get_logger()

V = TypeVar("V")


def approve_all_key(owner: str) -> str:
    return f"approveAll:{owner.lower()}"


def approve_single_key(owner: str, token_id: TokenId) -> str:
    return f"approveSingle:{owner.lower()}:{token_id}"


def metadata_key(cid: str) -> str:
    return f"metadata:{cid}"


class KeyedCache:
    """
    Read-fill / write-through cache.
    Misses are filled by exactly one loader call per key, even when
    several coroutines ask for the same key at once. A load that was
    overtaken by `invalidate` or `write_through` is not stored.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._pending: Dict[str, object] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        if key in self._entries:
            return self._entries[key]

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another coroutine may have filled it while we waited
                if key in self._entries:
                    return self._entries[key]

                logger.debug("cache_miss", key=key)
                ticket = object()
                self._pending[key] = ticket
                try:
                    value = await loader()
                finally:
                    current = self._pending.get(key) is ticket
                    if current:
                        del self._pending[key]

                if not current:
                    logger.debug("cache_fill_discarded", key=key)
                    return self._entries.get(key, value)

                self._entries[key] = value
                return value
        finally:
            self._release(key, lock)

    def peek(self, key: str) -> Optional[Any]:
        return self._entries.get(key)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        self._pending.pop(key, None)

    def write_through(self, key: str, value: Any) -> None:
        """Replace the entry with a value the ledger just confirmed."""
        self.invalidate(key)
        self._entries[key] = value
        logger.debug("cache_write_through", key=key, value=value)

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()

    def _release(self, key: str, lock: asyncio.Lock) -> None:
        remaining = self._waiters.get(key, 1) - 1
        if remaining > 0:
            self._waiters[key] = remaining
            return
        self._waiters.pop(key, None)
        if self._locks.get(key) is lock:
            del self._locks[key]
