"""Shop Lock Interface

Mutual exclusion keyed by shop id. Every subscription mutation of a shop
runs while holding its lock.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class ShopLock(ABC):
    @abstractmethod
    def hold(self, shop_id: int) -> AsyncContextManager[None]:
        """
        Acquire the lock of a shop for the duration of an async with block

        Args:
            shop_id: Shop identifier
        """
        pass
