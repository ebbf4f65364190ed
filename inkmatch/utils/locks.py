# inkmatch/utils/locks.py
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
import uuid, asyncio, logging, weakref

from inkmatch.core.errors import ConflictError

logger = logging.getLogger(__name__)

# per-process locks for runs without Redis; entries vanish once no holder is left
_local_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

class RedisLock:
    """
    Simple, single-instance lock using SET NX EX.
    Serializes writes to one artist-day or one customer-artist pair across workers.
    """
    def __init__(self, redis: Redis, key: str, ttl: int = 10):
        self.redis = redis
        self.key = f"lock:{key}"
        self.ttl = ttl
        self._token: Optional[str] = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        ok = await self.redis.set(self.key, token, nx=True, ex=self.ttl)
        if ok:
            self._token = token
            return True
        return False

    async def release(self) -> None:
        # only delete our own token; an expired lock may belong to someone else now
        if self._token and await self.redis.get(self.key) == self._token:
            await self.redis.delete(self.key)
        self._token = None

    async def wait(self, timeout: int = 10) -> None:
        """Wait for another worker to release the lock."""
        for _ in range(timeout * 10):
            if not await self.redis.exists(self.key):
                return
            await asyncio.sleep(0.1)


@asynccontextmanager
async def optional_lock(redis: Optional[Redis], key: str, ttl: int = 10, wait_s: int = 5):
    """
    Hold a RedisLock for the block when Redis is configured, otherwise an
    in-process asyncio.Lock for the same key.
    Gives up with ConflictError if the lock stays busy for `wait_s` seconds.
    """
    if redis is None:
        lock = _local_locks.get(key)
        if lock is None:
            lock = _local_locks[key] = asyncio.Lock()
        async with lock:
            yield
        return
    lock = RedisLock(redis, key, ttl=ttl)
    try:
        acquired = await lock.acquire()
        if not acquired:
            await lock.wait(timeout=wait_s)
            acquired = await lock.acquire()
    except RedisError as e:
        # the store-level version check still guards the write
        logger.warning("lock unavailable key=%s err=%s; continuing without it", key, e)
        yield
        return
    if not acquired:
        raise ConflictError(f"resource busy: {key}", {"lock": key})
    try:
        yield
    finally:
        try:
            await lock.release()
        except RedisError as e:
            logger.warning("lock release failed key=%s err=%s; ttl will expire it", key, e)
