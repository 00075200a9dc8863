"""In-process Shop Lock

Serializes subscription mutations per shop inside one service process.
Multi-instance deployments additionally rely on the shop row lock taken
with SELECT FOR UPDATE.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict
from src.app.services.shop_lock import ShopLock

logger = logging.getLogger(__name__)


class InProcessShopLock(ShopLock):
    """
    asyncio.Lock per shop id

    Locks are reference counted and dropped once no task holds or waits
    for them, so the registry does not grow with the number of shops.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._waiters: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, shop_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(shop_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[shop_id] = lock
        self._waiters[shop_id] = self._waiters.get(shop_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._waiters[shop_id] -= 1
            if self._waiters[shop_id] == 0:
                del self._waiters[shop_id]
                del self._locks[shop_id]

    def __len__(self) -> int:
        return len(self._locks)
