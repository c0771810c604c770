import asyncio
from contextlib import asynccontextmanager


class KeyedLock:
    """One asyncio.Lock per key, dropped once nobody holds or waits for it."""

    def __init__(self):
        # key -> [lock, holders + waiters]
        self._locks: dict[object, list] = {}

    @asynccontextmanager
    async def hold(self, key):
        entry = self._locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]


advertisement_locks = KeyedLock()
influencer_locks = KeyedLock()
contract_locks = KeyedLock()
