from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from billing_mcp.domain.entities import CacheStats
from billing_mcp.domain.exceptions import InvalidKeyError

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300  # seconds
SWEEP_INTERVAL = 60  # seconds between background sweeps

Producer = Callable[[], Union[Any, Awaitable[Any]]]

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    stored_at: float  # time.monotonic() at write
    ttl: float  # seconds

    def is_stale(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache:
    """In-process TTL cache shared by everything that talks to Zoho.

    Entries expire lazily on read and are also reclaimed by a periodic sweep
    task. No locking: all access happens on one asyncio event loop, and the
    only suspension point is the producer call inside get_or_set.

    With single_flight enabled, concurrent misses for the same key share one
    producer call. With it disabled, interleaved misses each run the producer
    and the last write wins.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        sweep_interval: float | None = SWEEP_INTERVAL,
        single_flight: bool = True,
    ) -> None:
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._single_flight = single_flight
        self._store: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Any | None:
        """Return cached value or None if missing or expired."""
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value with given TTL (seconds). Uses default_ttl when ttl is None or not positive."""
        _check_key(key)
        effective_ttl = ttl if ttl is not None and ttl > 0 else self._default_ttl
        self._store[key] = CacheEntry(value, time.monotonic(), effective_ttl)
        logger.debug("Cache SET for key: %s (TTL: %ss)", key, effective_ttl)
        self._ensure_sweeper()

    def delete(self, key: str) -> bool:
        """Remove a specific key. Returns True when an entry was removed."""
        _check_key(key)
        deleted = self._store.pop(key, None) is not None
        if deleted:
            logger.info("Cache DELETED for key: %s", key)
        return deleted

    def clear(self) -> None:
        """Remove all cached entries."""
        self._store.clear()
        logger.info("All cache entries CLEARED")

    def stats(self) -> CacheStats:
        """Return count and names of live entries; stale ones are not reported."""
        now = time.monotonic()
        keys = [k for k, entry in self._store.items() if not entry.is_stale(now)]
        return CacheStats(size=len(keys), keys=keys)

    def sweep(self) -> int:
        """Remove all expired entries from the store. Returns how many were removed."""
        now = time.monotonic()
        expired_keys = [k for k, entry in self._store.items() if entry.is_stale(now)]
        for k in expired_keys:
            del self._store[k]
        if expired_keys:
            logger.info("Cleaned up %d expired cache entries", len(expired_keys))
        return len(expired_keys)

    async def get_or_set(
        self, key: str, producer: Producer, ttl: float | None = None
    ) -> tuple[Any, bool]:
        """Return (value, from_cache), running producer only when no live entry exists.

        producer may be a plain callable or return an awaitable. Its exceptions
        propagate unchanged and nothing is cached for the key.
        """
        while True:
            cached = self._lookup(key)
            if cached is not _MISSING:
                logger.debug("Cache HIT for key: %s", key)
                return cached, True

            pending = self._inflight.get(key) if self._single_flight else None
            if pending is None:
                break
            logger.debug("Waiting on in-flight fetch for key: %s", key)
            try:
                return await asyncio.shield(pending), True
            except asyncio.CancelledError:
                task = asyncio.current_task()
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise
                # The leading caller was cancelled; look again.

        logger.info("Cache MISS for key: %s - fetching fresh data", key)
        if not self._single_flight:
            value = await _produce(producer)
            self.set(key, value, ttl)
            return value, False

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await _produce(producer)
        except Exception as exc:
            future.set_exception(exc)
            future.exception()  # mark retrieved when nobody else is waiting
            raise
        else:
            self.set(key, value, ttl)
            future.set_result(value)
            return value, False
        finally:
            if not future.done():
                # Leader cancelled or interrupted; waiters retry the lookup
                future.cancel()
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop (no-op if already running)."""
        if self._sweep_interval is None:
            return
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop(self._sweep_interval))

    async def stop_sweeper(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed; expired entries remain until read")

    def _ensure_sweeper(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop yet (sync caller); the next write inside a loop starts it
        self.start_sweeper()

    def _lookup(self, key: str) -> Any:
        _check_key(key)
        entry = self._store.get(key)
        if entry is None:
            return _MISSING
        if entry.is_stale(time.monotonic()):
            del self._store[key]
            return _MISSING
        return entry.value


def _check_key(key: Any) -> None:
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"Cache key must be a non-empty string, got {key!r}")


async def _produce(producer: Producer) -> Any:
    result = producer()
    if inspect.isawaitable(result):
        result = await result
    return result
