import time
from collections.abc import Callable
from typing import Any, Protocol


class TTLStore(Protocol):
    """Key-value store with per-key expiry, shared by the rate limiter."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: float) -> None: ...

    async def incr(self, key: str, ttl: float) -> int: ...

    async def ttl(self, key: str) -> float | None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


class InMemoryTTLStore:
    """Process-local TTL store. One instance lives on ``app.state``."""

    def __init__(
        self, clock: Callable[[], float] = time.monotonic, sweep_every: int = 256
    ) -> None:
        self._store: dict[str, tuple[Any, float]] = {}
        self._clock = clock
        self._sweep_every = sweep_every
        self._writes = 0

    def __len__(self) -> int:
        return len(self._store)

    async def get(self, key: str) -> Any | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: Any, ttl: float) -> None:
        self._maybe_sweep()
        self._store[key] = (value, self._clock() + ttl)

    async def incr(self, key: str, ttl: float) -> int:
        """Increment a counter; the expiry is set when the counter is created."""
        self._maybe_sweep()
        entry = self._live(key)
        if entry is None:
            self._store[key] = (1, self._clock() + ttl)
            return 1

        count, expires_at = entry
        self._store[key] = (count + 1, expires_at)
        return count + 1

    async def ttl(self, key: str) -> float | None:
        entry = self._live(key)
        if entry is None:
            return None
        return max(entry[1] - self._clock(), 0.0)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def clear(self) -> None:
        self._store.clear()

    def cleanup(self) -> int:
        """Remove expired entries. Returns number removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._store.items() if now >= expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _maybe_sweep(self) -> None:
        # Expired keys that are never read again are only removed here.
        self._writes += 1
        if self._writes >= self._sweep_every:
            self._writes = 0
            self.cleanup()

    def _live(self, key: str) -> tuple[Any, float] | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() >= entry[1]:
            del self._store[key]
            return None
        return entry
